from services.guards.GuardInterface import GuardInterface
from shared.models.routing import GuardResult, RouteContext


class AuthGuard(GuardInterface):
    """Lets signed-in users with an unexpired token through, sends everyone else to login."""

    def _get_guard_name(self) -> str:
        return "auth"

    def can_activate(self, context: RouteContext) -> GuardResult:
        if context.user is not None and context.authenticated:
            return GuardResult.allow()
        self.logging.debug("AuthGuard: %s requires a session, redirecting to %s", context.path, self.login_path)
        return GuardResult.redirect(self.login_path)
