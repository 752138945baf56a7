"""Session/token store.

Persists the credential pair and the user profile, and publishes the current
user to subscribers. The only I/O is the storage engine; no network calls.
"""

import json
import time
from typing import Callable

import jwt

from shared.helper.HelperConfig import HelperConfig
from shared.helper.ObservableValue import ObservableValue
from shared.models.auth import AuthResponse, User
from shared.storage.StorageInterface import StorageInterface

TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user_data"


class TokenStore:
    """Holds the credential pair and the current user.

    Every write goes to storage in a single ``set_many``/``remove_many`` call and
    is published afterwards, so an observer reading the store from its callback
    always sees the new user together with the new token.
    """

    def __init__(self, helper_config: HelperConfig, storage: StorageInterface, clock: Callable[[], float] = time.time) -> None:
        self.logging = helper_config.get_logger()
        self._storage = storage
        self._clock = clock
        self._current_user: ObservableValue[User | None] = ObservableValue(None)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_current_user(self) -> User | None:
        """Synchronous snapshot of the current user."""
        return self._current_user.value

    def current_user_changes(self) -> ObservableValue[User | None]:
        """Live current-user stream; new subscribers get the latest value immediately."""
        return self._current_user

    def get_token(self) -> str | None:
        return self._storage.get_item(TOKEN_KEY)

    def get_refresh_token(self) -> str | None:
        return self._storage.get_item(REFRESH_TOKEN_KEY)

    def get_stored_user(self) -> User | None:
        """The persisted user profile, or None when absent or unreadable."""
        raw = self._storage.get_item(USER_KEY)
        if not raw:
            return None
        try:
            return User.model_validate(json.loads(raw))
        except ValueError as e:
            self.logging.warning("Stored user profile is unreadable: %s", e)
            return None

    def get_token_expiry(self, token: str) -> float | None:
        """Epoch seconds of the token's ``exp`` claim, or None when it cannot be decoded."""
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return None
        exp = payload.get("exp")
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        return float(exp)

    def get_token_remaining_seconds(self, token: str) -> float:
        """Seconds until the token expires; 0 when already expired or undecodable."""
        expiry = self.get_token_expiry(token)
        if expiry is None:
            return 0.0
        return max(expiry - self._clock(), 0.0)

    def is_token_expired(self, token: str) -> bool:
        expiry = self.get_token_expiry(token)
        return expiry is None or self._clock() >= expiry

    def is_authenticated(self) -> bool:
        """True iff a token is stored and its expiry claim lies strictly in the future."""
        token = self.get_token()
        return bool(token) and not self.is_token_expired(token)

    ##########################################
    ################ SETTER ##################
    ##########################################

    def set_session(self, auth_response: AuthResponse) -> None:
        """Persist a new credential pair and user, then publish the user."""
        self._storage.set_many({
            TOKEN_KEY: auth_response.token,
            REFRESH_TOKEN_KEY: auth_response.refresh_token,
            USER_KEY: auth_response.user.model_dump_json(),
        })
        self._current_user.publish(auth_response.user)

    def publish_user(self, user: User | None) -> None:
        """Publish a user without touching storage (startup restore)."""
        self._current_user.publish(user)

    def clear(self) -> None:
        """Remove all persisted credential material and publish None."""
        self._storage.remove_many([TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY])
        self._current_user.publish(None)
