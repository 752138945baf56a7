from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig
from shared.models.routing import GuardResult, RouteContext


class GuardInterface(ABC):
    """A navigation predicate evaluated against a RouteContext snapshot."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self.login_path = helper_config.get_string_val("ROUTE_LOGIN_PATH", default="/auth/login")
        self.unauthorized_path = helper_config.get_string_val("ROUTE_UNAUTHORIZED_PATH", default="/unauthorized")

    def get_guard_name(self) -> str:
        """
        Returns the guard name used in route definitions. E.g. "auth"
        """
        return self._get_guard_name().lower()

    @abstractmethod
    def _get_guard_name(self) -> str:
        pass

    @abstractmethod
    def can_activate(self, context: RouteContext) -> GuardResult:
        """
        Decides whether navigation to ``context.path`` may proceed.

        Returns:
            GuardResult: Allowed, or a redirect destination.
        """
        pass
