"""
Application paths and store startup.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .models.config import DataStoreSettings
from .runtime.comparers import EqualityComparerService
from .runtime.registry import GlobalStoreRegistry

logger = logging.getLogger(__name__)


def _require_name(value: str, what: str) -> str:
    if value is None or not str(value).strip():
        raise ValueError(f"{what} cannot be empty")
    return str(value).strip()


def _with_suffix(name: str, suffix: str) -> str:
    return name if name.lower().endswith(suffix) else f"{name}{suffix}"


class DataStorePathProvider:
    """
    Directory layout for an application's store files.

    Layout under the application root:
        Data/      store files (JSON, SQLite)
        Settings/  settings files
        Logs/      log files
        Cache/     disposable cached data
        Temp/      temporary files
    """

    def __init__(self, application_name: str, root_path: Optional[Union[str, Path]] = None):
        self.application_name = _require_name(application_name, "Application name")
        if root_path is not None:
            self._root = Path(root_path)
        else:
            self._root = Path.home() / f".{self.application_name}"

    @classmethod
    def from_settings(cls, settings: DataStoreSettings) -> 'DataStorePathProvider':
        return cls(settings.application_name, settings.root_path)

    # Core paths

    @property
    def application_path(self) -> Path:
        return self._root

    @property
    def data_path(self) -> Path:
        return self._root / "Data"

    @property
    def settings_path(self) -> Path:
        return self._root / "Settings"

    @property
    def logs_path(self) -> Path:
        return self._root / "Logs"

    @property
    def cache_path(self) -> Path:
        return self._root / "Cache"

    @property
    def temp_path(self) -> Path:
        return self._root / "Temp"

    # File name formatters

    def format_json_file_name(self, name: str) -> Path:
        return self.data_path / _with_suffix(_require_name(name, "Name"), ".json")

    def format_sqlite_file_name(self, database: str) -> Path:
        return self.data_path / _with_suffix(_require_name(database, "Database name"), ".db")

    def format_settings_file_name(self, name: str) -> Path:
        return self.settings_path / _require_name(name, "Name")

    def format_log_file_name(self, name: str) -> Path:
        return self.logs_path / _with_suffix(_require_name(name, "Name"), ".log")

    # Utilities

    def all_paths(self) -> List[Path]:
        return [
            self.application_path,
            self.data_path,
            self.settings_path,
            self.logs_path,
            self.cache_path,
            self.temp_path
        ]

    def ensure_directories_exist(self) -> None:
        for directory in self.all_paths():
            directory.mkdir(parents=True, exist_ok=True)

    def get_custom_path(self, subdirectory: str) -> Path:
        return self._root / _require_name(subdirectory, "Subdirectory")

    def __repr__(self) -> str:
        return f"DataStorePathProvider({self.application_name!r}, root={str(self._root)!r})"


class DataStoreBootstrap:
    """Runs registrars against a registry and initializes the registered stores"""

    def __init__(
        self,
        registry: GlobalStoreRegistry,
        path_provider: DataStorePathProvider,
        comparer_service: Optional[EqualityComparerService] = None,
        settings: Optional[DataStoreSettings] = None
    ):
        if registry is None:
            raise ValueError("Registry is required")
        if path_provider is None:
            raise ValueError("Path provider is required")

        self.registry = registry
        self.path_provider = path_provider
        self.comparer_service = comparer_service or EqualityComparerService()
        self.settings = settings

    @classmethod
    def from_settings(
        cls,
        registry: GlobalStoreRegistry,
        settings: DataStoreSettings,
        comparer_service: Optional[EqualityComparerService] = None
    ) -> 'DataStoreBootstrap':
        """Bootstrap whose paths and store defaults come from settings"""
        if settings is None:
            raise ValueError("Settings are required")
        return cls(registry, DataStorePathProvider.from_settings(settings), comparer_service, settings)

    def register(self, registrars: Iterable) -> None:
        """Register the stores of every registrar, in order"""
        for registrar in registrars:
            registrar.register(self.registry, self.path_provider, self.comparer_service, self.settings)

    async def initialize(self) -> None:
        """Initialize every store that needs it; the first failure propagates"""
        stores = self.registry.get_initializable_stores()
        for store in stores:
            await store.initialize()
        logger.info(f"Initialized {len(stores)} persistent stores")

    async def run(self, registrars: Iterable) -> None:
        self.register(registrars)
        await self.initialize()
