"""Default route table of the Q&A application."""

from shared.models.routing import RouteDefinition

DEFAULT_ROUTES: list[RouteDefinition] = [
    RouteDefinition(path="/auth/login"),
    RouteDefinition(path="/auth/signup"),
    RouteDefinition(path="/unauthorized"),
    RouteDefinition(path="/dashboard", guards=["auth"]),
    RouteDefinition(path="/users", guards=["auth", "admin"], required_roles=["admin"]),
    RouteDefinition(path="/documents", guards=["auth", "role"], required_permissions=["document_read"]),
    RouteDefinition(
        path="/ingestion",
        guards=["auth", "role"],
        required_roles=["admin", "user"],
        required_permissions=["ingestion_access"],
    ),
    RouteDefinition(path="/qa", guards=["auth", "role"], required_permissions=["qa_access"]),
]

DEFAULT_PATH = "/dashboard"
