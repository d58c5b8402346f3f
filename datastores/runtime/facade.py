"""
Facade for application code: global stores and local stores.
"""

import logging
from typing import Any, Callable, Optional, Type

from .comparers import EqualityComparer, EqualityComparerService
from .dispatch import DispatchContext
from .registry import GlobalStoreRegistry
from .store import DataStore, InMemoryDataStore

logger = logging.getLogger(__name__)


class LocalDataStoreFactory:
    """Creates unregistered in-memory stores"""

    def create_local(
        self,
        comparer: Optional[EqualityComparer] = None,
        dispatch_context: Optional[DispatchContext] = None
    ) -> InMemoryDataStore:
        return InMemoryDataStore(comparer=comparer, dispatch_context=dispatch_context)


class DataStoresFacade:
    """Single entry point for resolving global stores and creating local ones"""

    def __init__(
        self,
        registry: GlobalStoreRegistry,
        local_factory: LocalDataStoreFactory,
        comparer_service: EqualityComparerService
    ):
        if registry is None:
            raise ValueError("Registry is required")
        if local_factory is None:
            raise ValueError("Local store factory is required")
        if comparer_service is None:
            raise ValueError("Comparer service is required")

        self._registry = registry
        self._local_factory = local_factory
        self._comparer_service = comparer_service

    @property
    def comparer_service(self) -> EqualityComparerService:
        return self._comparer_service

    def get_global(self, entity_type: Type) -> DataStore:
        return self._registry.resolve_global(entity_type)

    def create_local(
        self,
        entity_type: Type,
        comparer: Optional[EqualityComparer] = None
    ) -> InMemoryDataStore:
        effective_comparer = comparer or self._comparer_service.get_comparer(entity_type)
        return self._local_factory.create_local(effective_comparer)

    def create_local_snapshot_from_global(
        self,
        entity_type: Type,
        predicate: Optional[Callable[[Any], bool]] = None,
        comparer: Optional[EqualityComparer] = None
    ) -> InMemoryDataStore:
        """Local store pre-filled with (optionally filtered) global items"""
        global_store = self._registry.resolve_global(entity_type)
        local_store = self.create_local(entity_type, comparer)

        items = global_store.items
        if predicate is not None:
            items = [item for item in items if predicate(item)]

        local_store.add_range(items)
        logger.debug(f"Created local snapshot of {entity_type.__name__} with {len(items)} items")
        return local_store
