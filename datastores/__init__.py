"""
datastores

Type-indexed in-memory data stores with change notification, optional
JSON or SQLite persistence and bidirectional synchronization.
"""

__version__ = "1.0.0"

from .exceptions import (
    DataStoreError,
    DuplicateItemError,
    GlobalStoreAlreadyRegisteredError,
    GlobalStoreNotRegisteredError,
    InvalidOperationError,
    LoadError,
    PersistenceError,
    SaveError,
)
from .models import ChangeEvent, ChangeKind, DataStoreSettings, EntityBase, ObservableEntity, SyncOptions
from .runtime import (
    DataStore,
    DataStoresFacade,
    EqualityComparerService,
    GlobalStoreRegistry,
    InMemoryDataStore,
    LocalDataStoreFactory,
)
from .persistence import PersistentStoreDecorator
from .sync import SyncSubscription, synchronize
from .bootstrap import DataStoreBootstrap, DataStorePathProvider
from .registration import (
    DataStoreRegistrar,
    InMemoryDataStoreBuilder,
    JsonDataStoreBuilder,
    SqliteDataStoreBuilder,
)
from .relations import (
    MultipleChildrenPolicy,
    OneToManyRelationView,
    OneToOneRelationView,
    ParentChildRelationService,
    ParentChildRelationship,
    RelationDefinition,
    RelationViewService,
)

__all__ = [
    # Errors
    "DataStoreError",
    "DuplicateItemError",
    "GlobalStoreAlreadyRegisteredError",
    "GlobalStoreNotRegisteredError",
    "InvalidOperationError",
    "LoadError",
    "PersistenceError",
    "SaveError",

    # Models
    "ChangeEvent",
    "ChangeKind",
    "DataStoreSettings",
    "EntityBase",
    "ObservableEntity",
    "SyncOptions",

    # Runtime
    "DataStore",
    "DataStoresFacade",
    "EqualityComparerService",
    "GlobalStoreRegistry",
    "InMemoryDataStore",
    "LocalDataStoreFactory",
    "PersistentStoreDecorator",
    "SyncSubscription",
    "synchronize",

    # Application setup
    "DataStoreBootstrap",
    "DataStorePathProvider",
    "DataStoreRegistrar",
    "InMemoryDataStoreBuilder",
    "JsonDataStoreBuilder",
    "SqliteDataStoreBuilder",

    # Relations
    "MultipleChildrenPolicy",
    "OneToManyRelationView",
    "OneToOneRelationView",
    "ParentChildRelationService",
    "ParentChildRelationship",
    "RelationDefinition",
    "RelationViewService",
    "__version__"
]
