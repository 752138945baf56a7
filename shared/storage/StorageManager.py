from shared.helper.HelperConfig import HelperConfig
from shared.storage.StorageInterface import StorageInterface


class StorageManager:
    """
    Instantiates the storage engine named by STORAGE_ENGINE (default "memory").
    """

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.storage = self._initialize_storage()

    def _get_engine_from_env(self) -> str:
        """
        Reads the storage engine name from configuration.

        Returns:
            str: Capitalised engine name (e.g. "File").
        """
        engine = self.helper_config.get_string_val("STORAGE_ENGINE", default="memory")
        return engine.strip().lower().capitalize()

    def _initialize_storage(self) -> StorageInterface:
        """
        Imports shared.storage.{engine}.Storage{Engine} and instantiates it.

        Raises:
            ValueError: If the engine is unsupported or cannot be imported.
        """
        engine = self._get_engine_from_env()
        class_name = f"Storage{engine}"
        try:
            module = __import__(
                f"shared.storage.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            storage_class = getattr(module, class_name)
            storage = storage_class(helper_config=self.helper_config)
            self.logging.debug("Instantiated storage engine: %s", engine)
            return storage
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported storage engine specified: '{engine}'. Error: {e}")

    def get_storage(self) -> StorageInterface:
        return self.storage
