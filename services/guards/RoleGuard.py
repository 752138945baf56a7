from services.guards.GuardInterface import GuardInterface
from shared.models.routing import GuardResult, RouteContext


class RoleGuard(GuardInterface):
    """Checks the route's declared roles, then its declared permissions.

    Undeclared requirements are not checked. Every declared permission must be
    held by the user (exact string match).
    """

    def _get_guard_name(self) -> str:
        return "role"

    def can_activate(self, context: RouteContext) -> GuardResult:
        user = context.user
        if user is None:
            return GuardResult.redirect(self.login_path)

        if context.required_roles is not None and user.role.value not in context.required_roles:
            self.logging.debug("RoleGuard: role '%s' not in %s for %s", user.role.value, context.required_roles, context.path)
            return GuardResult.redirect(self.unauthorized_path)

        if context.required_permissions is not None:
            missing = [p for p in context.required_permissions if p not in user.permissions]
            if missing:
                self.logging.debug("RoleGuard: missing permissions %s for %s", missing, context.path)
                return GuardResult.redirect(self.unauthorized_path)

        return GuardResult.allow()
