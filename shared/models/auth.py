"""Pydantic models for users and the credential exchange."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class UserRole(str, Enum):
    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"


class User(BaseModel):
    """The signed-in user as returned by the auth endpoints.

    Replaced wholesale on login/refresh and cleared on logout.
    """

    id: str
    email: str
    name: str
    role: UserRole
    permissions: list[str] = []


class LoginCredentials(BaseModel):
    email: str
    password: str


class SignupProfile(BaseModel):
    """Account data posted to /auth/signup. Unknown fields are forwarded verbatim."""

    model_config = ConfigDict(extra="allow")

    email: str
    password: str
    name: str


class AuthResponse(BaseModel):
    """Credential pair plus user, shared response shape of login, signup and refresh.

    Attributes:
        token:          Access token (JWT with an ``exp`` claim).
        refresh_token:  Long-lived opaque refresh token.
        user:           The authenticated user.
        expires_in:     Access token lifetime in seconds, as announced by the server.
    """

    token: str
    refresh_token: str
    user: User
    expires_in: int | None = None
