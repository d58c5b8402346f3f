"""
Store builders and registrars.

A registrar declares the global stores of an application inside
configure_stores(); each builder creates one store and registers it.

Builder options left as None are taken from the DataStoreSettings passed
at registration, then from the built-in defaults.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional, Type, Union

from .models.config import DataStoreSettings
from .persistence.decorator import PersistentStoreDecorator
from .persistence.json_file import JsonFilePersistenceStrategy
from .persistence.sqlite_document import SqliteDocumentPersistenceStrategy
from .runtime.comparers import EqualityComparer, EqualityComparerService
from .runtime.dispatch import DispatchContext
from .runtime.registry import GlobalStoreRegistry
from .runtime.store import DataStore, InMemoryDataStore

logger = logging.getLogger(__name__)

# Used when neither the builder nor the settings give a value
DEFAULT_AUTO_LOAD = True
DEFAULT_AUTO_SAVE = True
DEFAULT_JSON_INDENT = 2


def _resolve(value: Any, settings: Optional[DataStoreSettings], field: str, default: Any) -> Any:
    if value is not None:
        return value
    if settings is not None:
        return getattr(settings, field)
    return default


class DataStoreBuilder(ABC):
    """Builds and registers the global store for one entity type"""

    def __init__(
        self,
        entity_type: Type,
        comparer: Optional[EqualityComparer] = None,
        dispatch_context: Optional[DispatchContext] = None
    ):
        if entity_type is None:
            raise ValueError("Entity type is required")

        self.entity_type = entity_type
        self.comparer = comparer
        self.dispatch_context = dispatch_context

    def register(
        self,
        registry: GlobalStoreRegistry,
        comparer_service: EqualityComparerService,
        settings: Optional[DataStoreSettings] = None,
        path_provider=None
    ) -> DataStore:
        comparer = self.comparer or comparer_service.get_comparer(self.entity_type)
        store = self.build(comparer, settings, path_provider)
        registry.register_global(self.entity_type, store)
        return store

    def _create_inner(self, comparer: EqualityComparer) -> InMemoryDataStore:
        return InMemoryDataStore(comparer=comparer, dispatch_context=self.dispatch_context)

    @abstractmethod
    def build(
        self,
        comparer: EqualityComparer,
        settings: Optional[DataStoreSettings] = None,
        path_provider=None
    ) -> DataStore:
        pass


class InMemoryDataStoreBuilder(DataStoreBuilder):
    """Global store without persistence"""

    def build(self, comparer, settings=None, path_provider=None) -> DataStore:
        return self._create_inner(comparer)


class JsonDataStoreBuilder(DataStoreBuilder):
    """Global store persisted to a JSON file"""

    def __init__(
        self,
        entity_type: Type,
        file_path: Union[str, Path],
        auto_load: Optional[bool] = None,
        auto_save: Optional[bool] = None,
        comparer: Optional[EqualityComparer] = None,
        dispatch_context: Optional[DispatchContext] = None,
        indent: Optional[int] = None
    ):
        super().__init__(entity_type, comparer, dispatch_context)
        if file_path is None or not str(file_path).strip():
            raise ValueError("File path cannot be empty")

        self.file_path = Path(file_path)
        self.auto_load = auto_load
        self.auto_save = auto_save
        self.indent = indent

    def build(self, comparer, settings=None, path_provider=None) -> DataStore:
        indent = _resolve(self.indent, settings, "json_indent", DEFAULT_JSON_INDENT)
        strategy = JsonFilePersistenceStrategy(self.file_path, self.entity_type, indent=indent)
        return PersistentStoreDecorator(
            self._create_inner(comparer),
            strategy,
            auto_load=_resolve(self.auto_load, settings, "auto_load", DEFAULT_AUTO_LOAD),
            auto_save_on_change=_resolve(self.auto_save, settings, "auto_save", DEFAULT_AUTO_SAVE)
        )


class SqliteDataStoreBuilder(DataStoreBuilder):
    """
    Global store persisted as documents in a SQLite database.

    Without a database path the store goes to the shared application
    database: settings.sqlite_file_name under the path provider's data
    directory.
    """

    def __init__(
        self,
        entity_type: Type,
        database_path: Optional[Union[str, Path]] = None,
        collection_name: Optional[str] = None,
        auto_load: Optional[bool] = None,
        auto_save: Optional[bool] = None,
        comparer: Optional[EqualityComparer] = None,
        dispatch_context: Optional[DispatchContext] = None
    ):
        super().__init__(entity_type, comparer, dispatch_context)
        if database_path is not None and not str(database_path).strip():
            raise ValueError("Database path cannot be empty")

        self.database_path = Path(database_path) if database_path is not None else None
        self.collection_name = collection_name
        self.auto_load = auto_load
        self.auto_save = auto_save

    def _resolve_database_path(self, settings, path_provider) -> Path:
        if self.database_path is not None:
            return self.database_path
        if settings is None or path_provider is None:
            raise ValueError(
                f"No database path for {self.entity_type.__name__}: "
                f"pass one or register with settings and a path provider"
            )
        return path_provider.format_sqlite_file_name(settings.sqlite_file_name)

    def build(self, comparer, settings=None, path_provider=None) -> DataStore:
        strategy = SqliteDocumentPersistenceStrategy(
            self._resolve_database_path(settings, path_provider),
            self.entity_type,
            self.collection_name
        )
        return PersistentStoreDecorator(
            self._create_inner(comparer),
            strategy,
            auto_load=_resolve(self.auto_load, settings, "auto_load", DEFAULT_AUTO_LOAD),
            auto_save_on_change=_resolve(self.auto_save, settings, "auto_save", DEFAULT_AUTO_SAVE)
        )


class DataStoreRegistrar(ABC):
    """
    Base class for application registrars.

    Subclasses implement configure_stores() and call add_store() for every
    global store the application needs:

        class AppRegistrar(DataStoreRegistrar):
            def configure_stores(self, path_provider):
                self.add_store(JsonDataStoreBuilder(
                    Customer, path_provider.format_json_file_name("customers")
                ))
    """

    def __init__(self):
        self._builders: List[DataStoreBuilder] = []
        self.settings: Optional[DataStoreSettings] = None

    @property
    def builders(self) -> List[DataStoreBuilder]:
        return list(self._builders)

    def add_store(self, builder: DataStoreBuilder) -> None:
        if builder is None:
            raise ValueError("Builder is required")
        self._builders.append(builder)

    @abstractmethod
    def configure_stores(self, path_provider) -> None:
        pass

    def register(
        self,
        registry: GlobalStoreRegistry,
        path_provider,
        comparer_service: EqualityComparerService,
        settings: Optional[DataStoreSettings] = None
    ) -> List[DataStore]:
        """Configure the builders and register their stores"""
        # configure_stores may read self.settings
        self.settings = settings
        self._builders.clear()
        self.configure_stores(path_provider)

        stores = [
            builder.register(registry, comparer_service, settings, path_provider)
            for builder in self._builders
        ]
        logger.info(f"{type(self).__name__} registered {len(stores)} stores")
        return stores
