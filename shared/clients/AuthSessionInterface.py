from abc import ABC, abstractmethod


class AuthSessionInterface(ABC):
    """What a resource client needs from the auth lifecycle: the bearer header and a refresh."""

    @abstractmethod
    def get_auth_header(self) -> dict:
        """
        Returns the Authorization header for the current access token, or {} when signed out.
        """
        pass

    @abstractmethod
    async def do_refresh(self):
        """
        Rotates the credential pair.

        Raises:
            AuthError: If the refresh is impossible or rejected. The session is gone afterwards.
        """
        pass
