from shared.helper.HelperConfig import HelperConfig
from shared.storage.StorageInterface import StorageInterface


class StorageMemory(StorageInterface):
    """Process-local storage. Nothing survives a restart."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._items: dict[str, str] = {}

    def _get_engine_name(self) -> str:
        return "Memory"

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_many(self, items: dict[str, str]) -> None:
        self._items.update(items)

    def remove_many(self, keys: list[str]) -> None:
        for key in keys:
            self._items.pop(key, None)
