import json
import os
import tempfile

from shared.helper.HelperConfig import HelperConfig
from shared.storage.StorageInterface import StorageInterface


class StorageFile(StorageInterface):
    """JSON file storage.

    Every write rewrites the whole file through a temporary file and
    ``os.replace``, so the file on disk is always a complete snapshot.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        default_path = os.path.join(helper_config.get_string_val("ROOT_DIR", default=os.getcwd()), "data", "session.json")
        self._path = helper_config.get_string_val("STORAGE_FILE_PATH", default=default_path)
        self._items = self._load()

    def _get_engine_name(self) -> str:
        return "File"

    def get_path(self) -> str:
        return self._path

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_many(self, items: dict[str, str]) -> None:
        updated = {**self._items, **items}
        self._write(updated)
        self._items = updated

    def remove_many(self, keys: list[str]) -> None:
        updated = {k: v for k, v in self._items.items() if k not in keys}
        self._write(updated)
        self._items = updated

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self._path):
            return {}
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            self.logging.warning("Storage file %s is unreadable, starting empty: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            self.logging.warning("Storage file %s does not hold an object, starting empty.", self._path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, items: dict[str, str]) -> None:
        directory = os.path.dirname(self._path) or "."
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.replace(tmp_path, self._path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
