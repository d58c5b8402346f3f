"""
Bidirectional synchronization between two data stores.

Add, BulkAdd, Remove and Clear are mirrored from one store to the other.
In-place updates (UPDATE events) are not propagated.
"""

import logging
import threading
from typing import Any, Iterable, Optional, Type

from ..exceptions import DuplicateItemError
from ..models.config import SyncOptions
from ..models.events import ChangeEvent, ChangeKind
from ..runtime.comparers import DefaultEqualityComparer, EqualityComparer, EqualityComparerService
from ..runtime.store import DataStore

logger = logging.getLogger(__name__)


class SyncSubscription:
    """
    Live link between two stores.

    A single is_syncing flag covers both directions: while a change from
    one store is applied to the other, the resulting events are ignored.
    The flag is only read and toggled while holding the subscription lock;
    the propagated mutation itself runs outside the lock.
    """

    def __init__(
        self,
        source: DataStore,
        target: DataStore,
        comparer: EqualityComparer,
        options: SyncOptions
    ):
        self._source = source
        self._target = target
        self._comparer = comparer
        self._options = options

        self._lock = threading.Lock()
        self._is_syncing = False
        self._closed = False
        self._attached = False

    @property
    def source(self) -> DataStore:
        return self._source

    @property
    def target(self) -> DataStore:
        return self._target

    @property
    def comparer(self) -> EqualityComparer:
        return self._comparer

    @property
    def options(self) -> SyncOptions:
        return self._options

    @property
    def is_syncing(self) -> bool:
        with self._lock:
            return self._is_syncing

    @property
    def is_closed(self) -> bool:
        return self._closed

    def start(self) -> 'SyncSubscription':
        """Attach the handlers and run the initial sync if enabled"""
        with self._lock:
            if self._closed:
                return self
            if not self._attached:
                if self._options.sync_source_to_target:
                    self._source.subscribe(self._on_source_changed)
                if self._options.sync_target_to_source:
                    self._target.subscribe(self._on_target_changed)
                self._attached = True

        if self._options.initial_sync:
            self._run_guarded(self._copy_missing, self._source.items, self._target)
        return self

    def _on_source_changed(self, store: DataStore, event: ChangeEvent) -> None:
        self._propagate(event, self._target)

    def _on_target_changed(self, store: DataStore, event: ChangeEvent) -> None:
        self._propagate(event, self._source)

    def _propagate(self, event: ChangeEvent, other: DataStore) -> None:
        if event.is_addition:
            self._run_guarded(self._copy_missing, event.items, other)
        elif event.kind == ChangeKind.REMOVE:
            self._run_guarded(self._remove_all, event.items, other)
        elif event.kind == ChangeKind.CLEAR:
            self._run_guarded(self._clear, other)

    def _run_guarded(self, action, *args) -> None:
        with self._lock:
            if self._closed or self._is_syncing:
                return
            self._is_syncing = True

        try:
            action(*args)
        finally:
            with self._lock:
                self._is_syncing = False

    def _copy_missing(self, items: Iterable[Any], other: DataStore) -> None:
        for item in items:
            if self._contains(other, item):
                continue
            try:
                other.add(item)
            except DuplicateItemError:
                logger.debug(f"Item already present in target store, skipped: {item!r}")

    def _remove_all(self, items: Iterable[Any], other: DataStore) -> None:
        for item in items:
            match = self._find(other, item)
            if match is not None:
                other.remove(match)

    @staticmethod
    def _clear(other: DataStore) -> None:
        # Skipping an already empty store stops clears from bouncing back
        # when events are delivered asynchronously
        if len(other.items) == 0:
            return
        other.clear()

    def _contains(self, store: DataStore, item: Any) -> bool:
        return self._find(store, item) is not None

    def _find(self, store: DataStore, item: Any) -> Optional[Any]:
        for existing in store.items:
            if self._comparer.equals(existing, item):
                return existing
        return None

    def close(self) -> None:
        """Stop synchronizing; safe to call more than once"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            attached = self._attached
            self._attached = False

        if attached:
            if self._options.sync_source_to_target:
                self._source.unsubscribe(self._on_source_changed)
            if self._options.sync_target_to_source:
                self._target.unsubscribe(self._on_target_changed)
        logger.debug("Store synchronization stopped")

    dispose = close

    def __enter__(self) -> 'SyncSubscription':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def synchronize(
    source: DataStore,
    target: DataStore,
    comparer: Optional[EqualityComparer] = None,
    comparer_service: Optional[EqualityComparerService] = None,
    options: Optional[SyncOptions] = None,
    entity_type: Optional[Type] = None
) -> SyncSubscription:
    """
    Keep two stores in sync until the returned subscription is closed.

    The comparer is resolved in this order: explicit comparer, the comparer
    service for entity_type, the source store's own comparer, value
    equality.

    Args:
        source: Store whose current items seed the initial sync
        target: Store receiving the initial copy
        comparer: Equality used to detect existing items
        comparer_service: Resolves a comparer for entity_type
        options: Directions and initial sync switches
        entity_type: Item type used for comparer resolution

    Returns:
        Started SyncSubscription
    """
    if source is None:
        raise ValueError("Source store is required")
    if target is None:
        raise ValueError("Target store is required")
    if source is target:
        raise ValueError("Source and target must be different stores")

    if comparer is None:
        if comparer_service is not None and entity_type is not None:
            comparer = comparer_service.get_comparer(entity_type)
        else:
            comparer = getattr(source, 'comparer', None) or DefaultEqualityComparer()

    subscription = SyncSubscription(source, target, comparer, options or SyncOptions())
    return subscription.start()
