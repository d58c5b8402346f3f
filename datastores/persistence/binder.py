"""
Binds property-change notifications of observable entities.

Binding is tracked per instance (by identity), so attaching the same
entity twice still yields a single subscription.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Optional

from ..models.entities import ObservableEntity
from ..models.events import ChangeEvent, ChangeKind
from ..runtime.store import DataStore

logger = logging.getLogger(__name__)


class PropertyChangedBinder:
    """Calls on_entity_changed(entity) whenever a bound entity changes a field"""

    def __init__(self, on_entity_changed: Callable[[Any], None], enabled: bool = True):
        if on_entity_changed is None:
            raise ValueError("on_entity_changed callback is required")

        self._on_entity_changed = on_entity_changed
        self._enabled = enabled
        self._bound: Dict[int, ObservableEntity] = {}
        self._lock = threading.Lock()
        self._store: Optional[DataStore] = None
        self._closed = False

    @property
    def bound_count(self) -> int:
        with self._lock:
            return len(self._bound)

    def attach(self, entity: Any) -> None:
        if not self._enabled or not isinstance(entity, ObservableEntity):
            return

        with self._lock:
            if id(entity) in self._bound:
                return
            self._bound[id(entity)] = entity
        entity.subscribe_property_changed(self._handle_property_changed)

    def attach_range(self, entities: Iterable[Any]) -> None:
        for entity in entities:
            self.attach(entity)

    def detach(self, entity: Any) -> None:
        if not self._enabled or not isinstance(entity, ObservableEntity):
            return

        with self._lock:
            bound = self._bound.pop(id(entity), None)
        if bound is not None:
            bound.unsubscribe_property_changed(self._handle_property_changed)

    def detach_all(self) -> None:
        with self._lock:
            bound = list(self._bound.values())
            self._bound.clear()
        for entity in bound:
            entity.unsubscribe_property_changed(self._handle_property_changed)

    def attach_to_store(self, store: DataStore) -> None:
        """Bind all current items and follow the store's changes"""
        if store is None:
            raise ValueError("Store is required")
        if not self._enabled:
            return

        self.attach_range(store.items)
        store.subscribe(self._handle_store_changed)
        self._store = store

    def _handle_store_changed(self, store: DataStore, event: ChangeEvent) -> None:
        if event.kind in (ChangeKind.ADD, ChangeKind.BULK_ADD, ChangeKind.UPDATE):
            self.attach_range(event.items)
        elif event.kind == ChangeKind.REMOVE:
            remaining = {id(item) for item in store.items}
            for item in event.items:
                if id(item) not in remaining:
                    self.detach(item)
        elif event.kind == ChangeKind.CLEAR:
            self.detach_all()

    def _handle_property_changed(self, entity: ObservableEntity, name: str) -> None:
        logger.debug(f"{type(entity).__name__} changed field '{name}'")
        self._on_entity_changed(entity)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._store is not None:
            self._store.unsubscribe(self._handle_store_changed)
            self._store = None
        self.detach_all()
