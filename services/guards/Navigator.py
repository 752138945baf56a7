import logging
from typing import Callable


class Navigator:
    """Navigation collaborator.

    Records where the application was sent and forwards each destination to an
    optional callback (a UI router, a console prompt).
    """

    def __init__(self, logger: logging.Logger, on_navigate: Callable[[str], None] | None = None) -> None:
        self.logging = logger
        self._on_navigate = on_navigate
        self.current_path: str | None = None
        self.history: list[str] = []

    def navigate(self, path: str) -> None:
        self.logging.debug("Navigating to %s", path)
        self.current_path = path
        self.history.append(path)
        if self._on_navigate is not None:
            self._on_navigate(path)
