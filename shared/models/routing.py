"""Pydantic models for route guarding."""

from pydantic import BaseModel

from shared.models.auth import User


class RouteDefinition(BaseModel):
    """A navigable destination and the guards protecting it.

    Attributes:
        path:                  Route path (e.g. "/documents").
        guards:                Guard names evaluated in order (e.g. ["auth", "role"]).
        required_roles:        Roles allowed on this route, if declared.
        required_permissions:  Permissions the user must all hold, if declared.
    """

    path: str
    guards: list[str] = []
    required_roles: list[str] | None = None
    required_permissions: list[str] | None = None


class RouteContext(BaseModel):
    """Snapshot a guard chain is evaluated against."""

    path: str
    user: User | None = None
    authenticated: bool = False
    required_roles: list[str] | None = None
    required_permissions: list[str] | None = None


class GuardResult(BaseModel):
    allowed: bool
    redirect_to: str | None = None

    @classmethod
    def allow(cls) -> "GuardResult":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, path: str) -> "GuardResult":
        return cls(allowed=False, redirect_to=path)
