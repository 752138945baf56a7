from abc import ABC, abstractmethod

import httpx
from httpx._types import QueryParamTypes, RequestContent, RequestData, RequestFiles
from typing import Any

from shared.clients.AuthSessionInterface import AuthSessionInterface
from shared.exceptions.errors import TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_API_URL = "http://localhost:3000/api"


class ClientInterface(ABC):
    def __init__(self, helper_config: HelperConfig, auth_session: AuthSessionInterface | None = None):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.validate_full_configuration()
        self.timeout = self.get_config_val("TIMEOUT", default=30.0, val_type="number")
        self._base_url = helper_config.get_string_val("API_URL", default=DEFAULT_API_URL)

        # bearer token source, None for unauthenticated clients
        self._auth = auth_session
        self._client: httpx.AsyncClient | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Validates that all required configuration values for the client are set and valid.

        Raises:
            ValueError: If any required configuration value is missing or invalid.
        """
        for config in self._get_required_config():
            if config.shared:
                _ = self._read_config(config.env_key, config.default, config.val_type)
            else:
                _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "qa"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "qa"
        """
        pass

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns all configurations the client reads. Subclasses extend this list.
        """
        return [
            EnvConfig(env_key="API_URL", val_type="string", default=DEFAULT_API_URL, shared=True),
            EnvConfig(env_key="TIMEOUT", val_type="number", default=30.0),
        ]

    def _get_config_key_name(self, raw_key: str) -> str:
        """
        Returns:
            str: The full configuration key name for the client. E.g. "QA_TIMEOUT"
        """
        return f"{self.get_client_type().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Retrieves the value of a client-prefixed configuration key.

        Args:
            raw_key (str): The raw configuration key name, e.g. "TIMEOUT"
            default (Any): The default value to return if the configuration key is not set
            val_type (str): The type of the configuration value ("string", "number", "bool", "list")
        """
        return self._read_config(self._get_config_key_name(raw_key), default, val_type)

    def _read_config(self, key: str, default: Any, val_type: str) -> Any:
        if val_type == "string":
            return self._helper_config.get_string_val(key, default=default)
        elif val_type == "number":
            return self._helper_config.get_number_val(key, default=default)
        elif val_type == "bool":
            return self._helper_config.get_bool_val(key, default=default)
        elif val_type == "list":
            return self._helper_config.get_list_val(key, default=default)
        else:
            raise ValueError(f"Unsupported config value type '{val_type}' for env key '{key}' in {self.get_client_type().upper()} client.")

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        """
        Returns the bearer header of the current session, {} for unauthenticated clients.
        """
        if self._auth is None:
            return {}
        return self._auth.get_auth_header()

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _build_url(self, endpoint: str) -> str:
        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""
        return f"{self._get_base_url().rstrip('/')}{endpoint}"

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests (e.g. "/qa/popular-questions").
        """
        pass

    ################ ERRORS ##################
    def _extract_error_message(self, response: httpx.Response, fallback: str) -> str:
        """
        Extracts the human-readable ``message`` field of an error body.

        Args:
            response (httpx.Response): The failed response.
            fallback (str): Returned when the body carries no message.
        """
        try:
            body = response.json()
        except ValueError:
            return fallback
        if isinstance(body, dict):
            message = body.get("message")
            if isinstance(message, str) and message.strip():
                return message
            error = body.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
        return fallback

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check if the API is reachable by sending a test request."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialise the HTTP client.

        Args:
            transport: Optional httpx transport, e.g. ``httpx.MockTransport`` in tests.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        data: RequestData | None = None,
        files: RequestFiles | None = None,
        json: Any = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
        retry_on_unauthorized: bool = True,
    ) -> httpx.Response:
        """Send an HTTP request to the API.

        The bearer header is attached when an auth session is present. A 401
        answer triggers exactly one credential refresh followed by one retry.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE, …).
            content: Raw bytes / stream body.
            data: Form-encoded body (dict or list of tuples).
            files: Multipart file upload.
            json: JSON-serialisable body (sets Content-Type automatically).
            params: URL query parameters.
            endpoint: Path to append to the base URL (leading slash optional).
            additional_headers: Extra headers that override the defaults.
            raise_on_error: Raise TransportError on a non-2xx status.
            retry_on_unauthorized: Refresh and retry once on 401. Must be False for
                one-shot bodies such as streamed uploads.

        Returns:
            The raw httpx.Response.

        Raises:
            TransportError: If the client is not booted, the request fails on the network,
                or (with raise_on_error) the API answers with a non-2xx status.
            AuthError: If the 401 refresh is rejected (the session is logged out).
        """
        if self._client is None:
            raise TransportError("HTTP client not initialised. Call boot() before making requests.")

        url = self._build_url(endpoint)
        kwargs: dict = {
            "url": url,
            "timeout": self.timeout,
            "params": params,
        }

        # add exactly one body argument
        if content is not None:
            kwargs["content"] = content
        elif data is not None:
            kwargs["data"] = data
        elif files is not None:
            kwargs["files"] = files
        elif json is not None:
            kwargs["json"] = json

        response = await self._send(method, additional_headers, kwargs)

        if response.status_code == 401 and self._auth is not None and retry_on_unauthorized:
            self.logging.info("Request to %s answered 401, refreshing credentials and retrying once.", url)
            await self._auth.do_refresh()
            response = await self._send(method, additional_headers, kwargs)

        if raise_on_error and response.status_code >= 300:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                url,
                response.status_code,
                response.text,
            )
            message = self._extract_error_message(
                response, fallback=f"Request to {url} failed with status {response.status_code}"
            )
            raise TransportError(message, status_code=response.status_code)

        return response

    async def do_request_json(self, method: str = "GET", endpoint: str = "", **kwargs) -> Any:
        """Send a request that must succeed and return its decoded JSON body (None when empty).

        Raises:
            TransportError: On any failure, including an undecodable body.
        """
        response = await self.do_request(method=method, endpoint=endpoint, raise_on_error=True, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise TransportError(f"Invalid JSON in response from {self._build_url(endpoint)}", status_code=response.status_code)

    async def _send(self, method: str, additional_headers: dict | None, kwargs: dict) -> httpx.Response:
        # Do NOT set a default Content-Type: httpx sets it automatically for json/data/files.
        headers: dict = {}
        headers.update(self._get_auth_header())
        if additional_headers:
            headers.update(additional_headers)
        try:
            return await self._client.request(method, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            self.logging.error("Request to %s failed: %s", kwargs["url"], e)
            raise TransportError(f"Request to {kwargs['url']} failed: {e}") from e
