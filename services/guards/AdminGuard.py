from services.guards.GuardInterface import GuardInterface
from shared.models.auth import UserRole
from shared.models.routing import GuardResult, RouteContext


class AdminGuard(GuardInterface):
    def _get_guard_name(self) -> str:
        return "admin"

    def can_activate(self, context: RouteContext) -> GuardResult:
        if context.user is not None and context.user.role == UserRole.ADMIN:
            return GuardResult.allow()
        self.logging.debug("AdminGuard: %s is admin-only, redirecting to %s", context.path, self.unauthorized_path)
        return GuardResult.redirect(self.unauthorized_path)
