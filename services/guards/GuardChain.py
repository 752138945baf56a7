"""Ordered guard evaluation over the route table."""

from services.auth.TokenStore import TokenStore
from services.guards.AdminGuard import AdminGuard
from services.guards.AuthGuard import AuthGuard
from services.guards.GuardInterface import GuardInterface
from services.guards.Navigator import Navigator
from services.guards.RoleGuard import RoleGuard
from services.guards.routes import DEFAULT_PATH, DEFAULT_ROUTES
from shared.helper.HelperConfig import HelperConfig
from shared.models.routing import GuardResult, RouteContext, RouteDefinition


class GuardChain:
    """Evaluates a route's guards in declaration order; the first redirect wins.

    All guards of one evaluation see the same RouteContext, built from a single
    snapshot of the token store.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        token_store: TokenStore,
        navigator: Navigator,
        guards: list[GuardInterface] | None = None,
        routes: list[RouteDefinition] | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._store = token_store
        self._navigator = navigator
        self.not_found_path = helper_config.get_string_val("ROUTE_NOT_FOUND_PATH", default="/not-found")

        if guards is None:
            guards = [AuthGuard(helper_config), AdminGuard(helper_config), RoleGuard(helper_config)]
        self._guards: dict[str, GuardInterface] = {guard.get_guard_name(): guard for guard in guards}
        self._routes: list[RouteDefinition] = list(DEFAULT_ROUTES if routes is None else routes)
        self._validate_routes()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _validate_routes(self) -> None:
        """
        Raises:
            ValueError: If a route names a guard that is not registered.
        """
        for route in self._routes:
            unknown = [name for name in route.guards if name not in self._guards]
            if unknown:
                raise ValueError(f"Route '{route.path}' uses unknown guards: {unknown}")

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_route(self, path: str) -> RouteDefinition | None:
        """
        Finds the route for ``path``. Nested paths ("/documents/42") resolve to their
        closest declared parent ("/documents").
        """
        path = "/" + path.strip("/")
        best: RouteDefinition | None = None
        for route in self._routes:
            if path == route.path or path.startswith(route.path.rstrip("/") + "/"):
                if best is None or len(route.path) > len(best.path):
                    best = route
        return best

    def build_context(self, path: str, route: RouteDefinition) -> RouteContext:
        return RouteContext(
            path=path,
            user=self._store.get_current_user(),
            authenticated=self._store.is_authenticated(),
            required_roles=route.required_roles,
            required_permissions=route.required_permissions,
        )

    ##########################################
    ############### EVALUATION ###############
    ##########################################

    def evaluate(self, route: RouteDefinition, path: str | None = None) -> GuardResult:
        context = self.build_context(path or route.path, route)
        for name in route.guards:
            result = self._guards[name].can_activate(context)
            if not result.allowed:
                return result
        return GuardResult.allow()

    def can_activate(self, path: str) -> GuardResult:
        """
        Evaluates the guards protecting ``path``.

        Returns:
            GuardResult: Allowed, or the redirect destination (the default page for
            "/", the not-found page for unknown paths).
        """
        if path.strip("/") == "":
            return GuardResult.redirect(DEFAULT_PATH)
        route = self.get_route(path)
        if route is None:
            return GuardResult.redirect(self.not_found_path)
        return self.evaluate(route, path)

    def navigate(self, path: str) -> str:
        """
        Navigates to ``path`` or to where its guards redirect.

        Returns:
            str: The destination actually navigated to.
        """
        result = self.can_activate(path)
        destination = path if result.allowed else result.redirect_to
        if path.strip("/") == "" and not result.allowed:
            # the default page has guards of its own
            return self.navigate(destination)
        if not result.allowed:
            self.logging.info("Navigation to %s redirected to %s", path, destination)
        self._navigator.navigate(destination)
        return destination
