"""
Runtime components: stores, comparers, dispatch, registry and facade.
"""

from .comparers import (
    DefaultEqualityComparer,
    EntityIdComparer,
    EqualityComparer,
    EqualityComparerService,
    KeyEqualityComparer,
    ReferenceEqualityComparer,
)
from .diff import DataStoreDiff, DataStoreDiffService
from .dispatch import (
    DispatchContext,
    EventLoopDispatchContext,
    ExecutorDispatchContext,
    ImmediateDispatchContext,
)
from .facade import DataStoresFacade, LocalDataStoreFactory
from .registry import GlobalStoreRegistry
from .store import ChangeHandler, DataStore, InMemoryDataStore

__all__ = [
    "DefaultEqualityComparer",
    "EntityIdComparer",
    "EqualityComparer",
    "EqualityComparerService",
    "KeyEqualityComparer",
    "ReferenceEqualityComparer",
    "DataStoreDiff",
    "DataStoreDiffService",
    "DispatchContext",
    "EventLoopDispatchContext",
    "ExecutorDispatchContext",
    "ImmediateDispatchContext",
    "DataStoresFacade",
    "LocalDataStoreFactory",
    "GlobalStoreRegistry",
    "ChangeHandler",
    "DataStore",
    "InMemoryDataStore"
]
