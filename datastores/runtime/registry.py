"""
Registry of global stores, one per entity type.

The registry is an explicit object handed to its consumers; there is no
module-level instance.
"""

import logging
import threading
from typing import Dict, List, Optional, Type

from ..exceptions import GlobalStoreAlreadyRegisteredError, GlobalStoreNotRegisteredError
from .store import DataStore

logger = logging.getLogger(__name__)


class GlobalStoreRegistry:
    """Maps entity types to their single global store"""

    def __init__(self):
        self._stores: Dict[Type, DataStore] = {}
        self._lock = threading.Lock()

    def register_global(self, entity_type: Type, store: DataStore) -> None:
        """
        Register the global store for a type.

        Raises:
            GlobalStoreAlreadyRegisteredError: a store for the type exists;
                the existing registration is left untouched
        """
        if entity_type is None:
            raise ValueError("Entity type is required")
        if store is None:
            raise ValueError("Store is required")

        with self._lock:
            if entity_type in self._stores:
                raise GlobalStoreAlreadyRegisteredError(entity_type)
            self._stores[entity_type] = store

        logger.info(f"Registered global store for {entity_type.__name__}: {type(store).__name__}")

    def resolve_global(self, entity_type: Type) -> DataStore:
        with self._lock:
            store = self._stores.get(entity_type)

        if store is None:
            raise GlobalStoreNotRegisteredError(entity_type)
        return store

    def try_resolve_global(self, entity_type: Type) -> Optional[DataStore]:
        with self._lock:
            return self._stores.get(entity_type)

    def is_registered(self, entity_type: Type) -> bool:
        with self._lock:
            return entity_type in self._stores

    def registered_types(self) -> List[Type]:
        with self._lock:
            return list(self._stores.keys())

    def get_initializable_stores(self) -> List[DataStore]:
        """Stores that need an asynchronous initialize() before use"""
        with self._lock:
            stores = list(self._stores.values())
        return [store for store in stores if callable(getattr(store, 'initialize', None))]
