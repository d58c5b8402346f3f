"""
Persistence for data stores

Strategies load and save the items of one store; the decorator adds
initialization and auto-save to an in-memory store.
"""

from .base import PersistenceStrategy
from .binder import PropertyChangedBinder
from .decorator import LOAD_ORIGIN, LifecycleState, PersistentStoreDecorator
from .json_file import JsonFilePersistenceStrategy
from .sqlite_document import SqliteDocumentPersistenceStrategy

__all__ = [
    "PersistenceStrategy",
    "PropertyChangedBinder",
    "LOAD_ORIGIN",
    "LifecycleState",
    "PersistentStoreDecorator",
    "JsonFilePersistenceStrategy",
    "SqliteDocumentPersistenceStrategy"
]
