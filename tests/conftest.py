"""Shared fixtures: configuration, token minting and a stubbed REST API."""

import json
import logging
import time
from typing import Any

import httpx
import jwt
import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.storage.memory.StorageMemory import StorageMemory

API_PREFIX = "/api"
TOKEN_SECRET = "docqa-test-secret-0123456789abcdef"

logger = logging.getLogger("docqa.tests")


def make_config(**env: Any) -> HelperConfig:
    return HelperConfig(logger=logger, env={key: str(value) for key, value in env.items()})


def mint_token(expires_in: float | None = 3600, **claims) -> str:
    """A signed JWT; ``expires_in=None`` leaves out the exp claim."""
    payload = {"sub": "u-1", **claims}
    if expires_in is not None:
        payload["exp"] = int(time.time() + expires_in)
    return jwt.encode(payload, TOKEN_SECRET, algorithm="HS256")


def user_payload(role: str = "user", permissions: list[str] | None = None, user_id: str = "u-1") -> dict:
    return {
        "id": user_id,
        "email": f"{role}@example.com",
        "name": f"{role.title()} Example",
        "role": role,
        "permissions": ["qa_access", "document_read"] if permissions is None else permissions,
    }


def auth_payload(expires_in: float = 3600, role: str = "user", permissions: list[str] | None = None, refresh_token: str = "refresh-1") -> dict:
    return {
        "token": mint_token(expires_in),
        "refreshToken": refresh_token,
        "user": user_payload(role, permissions),
        "expiresIn": int(expires_in),
    }


class ApiStub:
    """httpx.MockTransport handler keyed by (method, path below /api).

    Each route holds a list of responders used in order; the last one repeats.
    A responder is ``(status, body)`` or a callable taking the request, which may
    be a coroutine function.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responders) -> "ApiStub":
        self._routes[(method.upper(), path)] = list(responders)
        return self

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method.upper() and self._path(r) == path]

    def body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)

    def _path(self, request: httpx.Request) -> str:
        return request.url.path.removeprefix(API_PREFIX)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responders = self._routes.get((request.method, self._path(request)))
        if not responders:
            return httpx.Response(404, json={"message": f"no stub for {request.method} {request.url.path}"})
        responder = responders.pop(0) if len(responders) > 1 else responders[0]
        if callable(responder):
            result = responder(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        status, body = responder
        if isinstance(body, (bytes, str)):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def helper_config() -> HelperConfig:
    return make_config()


@pytest.fixture
def storage(helper_config) -> StorageMemory:
    return StorageMemory(helper_config=helper_config)


@pytest.fixture
def api() -> ApiStub:
    return ApiStub()

