"""Auth lifecycle manager.

Login, signup, logout and credential refresh against the auth endpoints, plus
the proactive refresh timer. Any refresh failure ends the session (fail-closed).
"""

import asyncio

from services.auth.TokenStore import TokenStore
from services.guards.Navigator import Navigator
from shared.clients.AuthSessionInterface import AuthSessionInterface
from shared.clients.auth.AuthClient import AuthClient
from shared.exceptions.errors import AuthError
from shared.helper.DeferredTask import DeferredTask
from shared.helper.HelperConfig import HelperConfig
from shared.models.auth import AuthResponse, LoginCredentials, SignupProfile, User

REFRESH_LEAD_SECONDS = 300  # refresh this long before the token expires


class AuthService(AuthSessionInterface):
    """Owns the session lifecycle and the single proactive refresh timer."""

    def __init__(
        self,
        helper_config: HelperConfig,
        auth_client: AuthClient,
        token_store: TokenStore,
        navigator: Navigator,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._auth_client = auth_client
        self._store = token_store
        self._navigator = navigator
        self.refresh_lead = float(helper_config.get_number_val("AUTH_REFRESH_LEAD_SECONDS", default=REFRESH_LEAD_SECONDS))
        self.login_path = helper_config.get_string_val("ROUTE_LOGIN_PATH", default="/auth/login")

        self._refresh_timer = DeferredTask(name="token-refresh", logger=self.logging)
        self._refresh_inflight: asyncio.Task | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_token_store(self) -> TokenStore:
        return self._store

    def get_auth_header(self) -> dict:
        token = self._store.get_token()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def is_authenticated(self) -> bool:
        return self._store.is_authenticated()

    def has_role(self, role: str) -> bool:
        user = self._store.get_current_user()
        return user is not None and user.role.value == role

    def has_permission(self, permission: str) -> bool:
        user = self._store.get_current_user()
        return user is not None and permission in user.permissions

    def is_refresh_scheduled(self) -> bool:
        return self._refresh_timer.is_pending()

    def get_refresh_delay(self) -> float | None:
        """Seconds until the proactive refresh fires, None if none is scheduled."""
        return self._refresh_timer.get_delay()

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def do_login(self, email: str, password: str) -> User:
        """
        Signs in with email and password.

        Returns:
            User: The signed-in user, already published to subscribers.

        Raises:
            AuthError: With the server's message, or "An error occurred".
        """
        response = await self._auth_client.do_login(LoginCredentials(email=email, password=password))
        self._handle_auth_success(response)
        self.logging.info("Signed in as %s (%s)", response.user.email, response.user.role.value)
        return response.user

    async def do_signup(self, profile: SignupProfile) -> User:
        """
        Creates an account and signs in with it.

        Raises:
            AuthError: With the server's message, or "An error occurred".
        """
        response = await self._auth_client.do_signup(profile)
        self._handle_auth_success(response)
        self.logging.info("Signed up as %s", response.user.email)
        return response.user

    def logout(self) -> None:
        """Clears all credential material, cancels the refresh timer and goes to the login page."""
        self._refresh_timer.cancel()
        self._store.clear()
        self.logging.info("Signed out.")
        self._navigator.navigate(self.login_path)

    async def do_refresh(self) -> User:
        """
        Rotates the credential pair with the stored refresh token.

        Concurrent callers share one in-flight exchange.

        Raises:
            AuthError: "no refresh token" or "refresh failed". The session is logged out in both cases.
        """
        if self._refresh_inflight is None or self._refresh_inflight.done():
            self._refresh_inflight = asyncio.ensure_future(self._refresh())
        # shield: one cancelled waiter must not abort the exchange for the others
        return await asyncio.shield(self._refresh_inflight)

    async def _refresh(self) -> User:
        refresh_token = self._store.get_refresh_token()
        if not refresh_token:
            self.logging.warning("No refresh token stored, signing out.")
            self.logout()
            raise AuthError("no refresh token")

        try:
            response = await self._auth_client.do_refresh(refresh_token)
        except AuthError as e:
            self.logging.warning("Token refresh rejected (%s), signing out.", e.message)
            self.logout()
            raise AuthError("refresh failed") from e

        self._handle_auth_success(response)
        self.logging.debug("Credentials refreshed for %s", response.user.email)
        return response.user

    async def do_restore(self) -> User | None:
        """
        Restores a persisted session at startup.

        A stored, unexpired token plus a stored user are published and the refresh
        timer is scheduled from the token's remaining lifetime. Anything else clears
        all persisted state.

        Returns:
            User | None: The restored user.
        """
        token = self._store.get_token()
        user = self._store.get_stored_user()
        if token and user and not self._store.is_token_expired(token):
            self._store.publish_user(user)
            self._schedule_refresh(self._store.get_token_remaining_seconds(token))
            self.logging.info("Restored session of %s", user.email)
            return user

        if token or user:
            self.logging.info("Stored session is expired or incomplete, clearing it.")
        self._refresh_timer.cancel()
        self._store.clear()
        return None

    async def close(self) -> None:
        """Cancels the refresh timer and waits for a refresh that already fired."""
        self._refresh_timer.cancel()
        await self._refresh_timer.wait_running()

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _handle_auth_success(self, response: AuthResponse) -> None:
        self._store.set_session(response)
        remaining = self._store.get_token_remaining_seconds(response.token)
        if self._store.get_token_expiry(response.token) is None and response.expires_in:
            remaining = float(response.expires_in)
        self._schedule_refresh(remaining)

    def _schedule_refresh(self, remaining: float) -> None:
        """
        Schedules the refresh ``refresh_lead`` seconds before expiry.

        When the remaining lifetime is already within the lead, the refresh fires
        at half the remaining lifetime instead, so a short-lived token still gets
        replaced before it runs out. Nothing is scheduled for a dead token.
        """
        if remaining <= 0:
            self._refresh_timer.cancel()
            self.logging.warning("Token has no remaining lifetime, no refresh scheduled.")
            return
        delay = remaining - self.refresh_lead
        if delay <= 0:
            delay = remaining / 2
        self._refresh_timer.schedule(delay, self._on_refresh_timer)

    async def _on_refresh_timer(self) -> None:
        self.logging.info("Proactive token refresh due.")
        await self.do_refresh()
