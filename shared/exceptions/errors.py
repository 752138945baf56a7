"""Error taxonomy shared by clients and services."""


class AppError(Exception):
    """Base class for all errors raised by the Q&A client core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthError(AppError):
    """Invalid credentials, missing or invalid refresh token, rejected refresh."""


class ValidationError(AppError):
    """Input rejected before anything is sent (file security, form input).

    All violated rules are carried in ``errors``, not just the first one.
    """

    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = errors


class TransportError(AppError):
    """Network or HTTP failure of a resource client.

    Carries the upstream message when the server sent one, otherwise a generic fallback.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
