from abc import ABC, abstractmethod

from shared.helper.HelperConfig import HelperConfig


class StorageInterface(ABC):
    """Persistent string key/value store for client-side session material.

    ``set_many`` and ``remove_many`` apply all their keys in one write, so a
    reader never sees half of a credential update.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_engine_name(self) -> str:
        """Returns the storage engine name in lowercase. E.g. "file" """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored value for ``key`` or None."""
        pass

    ##########################################
    ################ SETTER ##################
    ##########################################

    def set_item(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def remove_item(self, key: str) -> None:
        self.remove_many([key])

    @abstractmethod
    def set_many(self, items: dict[str, str]) -> None:
        """Write all ``items`` at once."""
        pass

    @abstractmethod
    def remove_many(self, keys: list[str]) -> None:
        """Remove all ``keys`` at once. Missing keys are ignored."""
        pass
