from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.errors import AuthError, TransportError
from shared.helper.HelperConfig import HelperConfig
from shared.models.auth import AuthResponse, LoginCredentials, SignupProfile, User

GENERIC_AUTH_ERROR = "An error occurred"


class AuthClient(ClientInterface):
    """Raw credential exchange against /auth/*. Sends no bearer header and never retries."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config, auth_session=None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "auth"

    ################ ENDPOINTS ##################
    def _get_endpoint_healthcheck(self) -> str:
        return "/auth/login"

    def _get_endpoint_login(self) -> str:
        return "/auth/login"

    def _get_endpoint_signup(self) -> str:
        return "/auth/signup"

    def _get_endpoint_refresh(self) -> str:
        return "/auth/refresh"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_login(self, credentials: LoginCredentials) -> AuthResponse:
        """
        Exchanges email and password for a credential pair.

        Raises:
            AuthError: With the server's message, or a generic one.
        """
        return await self._do_exchange(self._get_endpoint_login(), credentials.model_dump())

    async def do_signup(self, profile: SignupProfile) -> AuthResponse:
        """
        Creates an account and returns its first credential pair.

        Raises:
            AuthError: With the server's message, or a generic one.
        """
        return await self._do_exchange(self._get_endpoint_signup(), profile.model_dump())

    async def do_refresh(self, refresh_token: str) -> AuthResponse:
        """
        Rotates a credential pair.

        Raises:
            AuthError: With the server's message, or a generic one.
        """
        return await self._do_exchange(self._get_endpoint_refresh(), {"refreshToken": refresh_token})

    async def _do_exchange(self, endpoint: str, payload: dict) -> AuthResponse:
        try:
            resp = await self.do_request(method="POST", endpoint=endpoint, json=payload, retry_on_unauthorized=False)
        except TransportError as e:
            raise AuthError(e.message) from e

        if resp.status_code >= 300:
            message = self._extract_error_message(resp, fallback=GENERIC_AUTH_ERROR)
            self.logging.warning("Auth request to %s rejected with status %d: %s", endpoint, resp.status_code, message)
            raise AuthError(message)

        try:
            return self._parse_auth_response(resp.json())
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logging.error("Auth response from %s could not be parsed: %s", endpoint, e)
            raise AuthError(GENERIC_AUTH_ERROR) from e

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_auth_response(self, response: dict) -> AuthResponse:
        return AuthResponse(
            token=response["token"],
            refresh_token=response["refreshToken"],
            user=self._parse_user(response["user"]),
            expires_in=response.get("expiresIn"),
        )

    def _parse_user(self, response: dict) -> User:
        return User(
            id=str(response.get("id")),
            email=response.get("email"),
            name=response.get("name"),
            role=response.get("role"),
            permissions=response.get("permissions", []),
        )
