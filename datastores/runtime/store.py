"""
Thread-safe in-memory data store.

The store keeps an ordered list of entity references behind a single lock
and raises one ChangeEvent per mutating call. Events are always raised
after the lock is released, either synchronously on the mutating thread
or posted to a DispatchContext.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Iterator, List, Optional, Tuple

from ..models.events import ChangeEvent
from .comparers import DefaultEqualityComparer, EqualityComparer
from .dispatch import DispatchContext

logger = logging.getLogger(__name__)

ChangeHandler = Callable[['DataStore', ChangeEvent], None]


class DataStore(ABC):
    """Interface shared by every store implementation"""

    @property
    @abstractmethod
    def items(self) -> Tuple[Any, ...]:
        """Immutable point-in-time snapshot of the store contents"""
        pass

    @abstractmethod
    def subscribe(self, handler: ChangeHandler) -> None:
        pass

    @abstractmethod
    def unsubscribe(self, handler: ChangeHandler) -> None:
        pass

    @abstractmethod
    def add(self, item: Any) -> None:
        pass

    @abstractmethod
    def add_range(self, items: Iterable[Any], origin: Optional[str] = None) -> None:
        """Add all items as one change; origin tags the resulting event"""
        pass

    @abstractmethod
    def remove(self, item: Any) -> bool:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def contains(self, item: Any) -> bool:
        pass

    def find(self, predicate: Callable[[Any], bool]) -> List[Any]:
        """Linear filter over a snapshot"""
        return [item for item in self.items if predicate(item)]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __contains__(self, item: Any) -> bool:
        return self.contains(item)


class InMemoryDataStore(DataStore):
    """
    In-memory store for entities of one type.

    Features:
    - Insertion order preserved, duplicates allowed
    - Equality delegated to an injectable comparer
    - Snapshot reads that never expose the live list
    - Change events raised outside the lock, optionally posted to a
      dispatch context
    """

    def __init__(
        self,
        comparer: Optional[EqualityComparer] = None,
        dispatch_context: Optional[DispatchContext] = None
    ):
        self._items: List[Any] = []
        self._lock = threading.Lock()
        self._comparer = comparer or DefaultEqualityComparer()
        self._dispatch_context = dispatch_context

        self._handlers: List[ChangeHandler] = []
        self._handlers_lock = threading.Lock()

    @property
    def comparer(self) -> EqualityComparer:
        return self._comparer

    @property
    def dispatch_context(self) -> Optional[DispatchContext]:
        return self._dispatch_context

    @property
    def items(self) -> Tuple[Any, ...]:
        with self._lock:
            return tuple(self._items)

    def subscribe(self, handler: ChangeHandler) -> None:
        if handler is None:
            raise ValueError("Handler is required")
        with self._handlers_lock:
            self._handlers.append(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        with self._handlers_lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    @property
    def subscriber_count(self) -> int:
        with self._handlers_lock:
            return len(self._handlers)

    def add(self, item: Any) -> None:
        with self._lock:
            self._items.append(item)
        self._raise_changed(ChangeEvent.added(item))

    def add_range(self, items: Iterable[Any], origin: Optional[str] = None) -> None:
        """Append all items as one operation; empty input raises no event"""
        item_list = list(items)
        if not item_list:
            return

        with self._lock:
            self._items.extend(item_list)
        self._raise_changed(ChangeEvent.bulk_added(item_list, origin=origin))

    def add_or_replace(self, item: Any) -> bool:
        """
        Replace the first equal item or append a new one.

        Returns:
            True if an existing item was replaced (UPDATE event), False if
            the item was appended (ADD event)
        """
        with self._lock:
            index = self._index_of(item)
            if index >= 0:
                self._items[index] = item
            else:
                self._items.append(item)

        replaced = index >= 0
        self._raise_changed(ChangeEvent.updated(item) if replaced else ChangeEvent.added(item))
        return replaced

    def remove(self, item: Any) -> bool:
        with self._lock:
            index = self._index_of(item)
            if index >= 0:
                removed = self._items.pop(index)

        if index < 0:
            return False

        self._raise_changed(ChangeEvent.removed(removed))
        return True

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
        self._raise_changed(ChangeEvent.cleared())

    def contains(self, item: Any) -> bool:
        with self._lock:
            return self._index_of(item) >= 0

    def _index_of(self, item: Any) -> int:
        # Caller holds self._lock
        for index, existing in enumerate(self._items):
            if self._comparer.equals(existing, item):
                return index
        return -1

    def _raise_changed(self, event: ChangeEvent) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers)

        if not handlers:
            return

        if self._dispatch_context is not None:
            self._dispatch_context.post(lambda: self._deliver(handlers, event))
        else:
            self._deliver(handlers, event)

    def _deliver(self, handlers: List[ChangeHandler], event: ChangeEvent) -> None:
        for handler in handlers:
            try:
                handler(self, event)
            except Exception as e:
                logger.error(f"Change handler failed for {event}: {e}", exc_info=True)

    def __repr__(self) -> str:
        return f"InMemoryDataStore(count={len(self.items)}, comparer={self._comparer!r})"
