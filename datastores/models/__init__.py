"""
Data models for datastores

Change events, entity base classes and configuration models.
"""

from .events import ChangeEvent, ChangeKind
from .entities import EntityBase, ObservableEntity
from .config import DataStoreSettings, SyncOptions

__all__ = [
    # Events
    "ChangeEvent",
    "ChangeKind",

    # Entities
    "EntityBase",
    "ObservableEntity",

    # Configuration
    "DataStoreSettings",
    "SyncOptions"
]
