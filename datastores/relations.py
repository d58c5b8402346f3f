"""
Parent/child relations over data stores.

ParentChildRelationship selects the children of one parent from a data
source on refresh(). RelationViewService keeps live views instead: it
indexes the child store by key and follows its change events and the
property changes of observable children, so a child whose foreign key is
reassigned moves to its new parent's view.
"""

import logging
import threading
from bisect import insort_left
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, Hashable, Iterator, List, Optional, Tuple, Type

from .exceptions import InvalidOperationError
from .models.events import ChangeEvent, ChangeKind
from .persistence.binder import PropertyChangedBinder
from .runtime.facade import DataStoresFacade
from .runtime.store import DataStore, InMemoryDataStore

logger = logging.getLogger(__name__)


class ParentChildRelationship:
    """
    Children of one parent, selected from a data source by filter(parent, child).

    The data source is either the global store of child_type or a local
    snapshot of it. refresh() rebuilds `children` from the data source.
    """

    def __init__(
        self,
        facade: DataStoresFacade,
        parent: Any,
        child_type: Type,
        filter: Callable[[Any, Any], bool]
    ):
        if facade is None:
            raise ValueError("Facade is required")
        if parent is None:
            raise ValueError("Parent is required")
        if child_type is None:
            raise ValueError("Child type is required")
        if filter is None:
            raise ValueError("Filter is required")

        self._facade = facade
        self.parent = parent
        self.child_type = child_type
        self.filter = filter
        self.children = InMemoryDataStore(comparer=facade.comparer_service.get_comparer(child_type))
        self._data_source: Optional[DataStore] = None

    @property
    def data_source(self) -> DataStore:
        if self._data_source is None:
            raise InvalidOperationError(
                "Data source has not been set. Call use_global_data_source() or "
                "use_snapshot_from_global() first."
            )
        return self._data_source

    @data_source.setter
    def data_source(self, store: DataStore) -> None:
        if store is None:
            raise ValueError("Data source cannot be None")
        self._data_source = store

    def use_global_data_source(self) -> None:
        self.data_source = self._facade.get_global(self.child_type)

    def use_snapshot_from_global(self, predicate: Optional[Callable[[Any], bool]] = None) -> None:
        self.data_source = self._facade.create_local_snapshot_from_global(self.child_type, predicate)

    def refresh(self) -> None:
        source = self.data_source
        self.children.clear()
        self.children.add_range(child for child in source.items if self.filter(self.parent, child))


class MultipleChildrenPolicy(Enum):
    """What a one-to-one view does when a parent has several children"""
    THROW_IF_MULTIPLE = "throw_if_multiple"
    TAKE_FIRST = "take_first"


class RelationDefinition:
    """
    Keys linking a parent to its children.

    Args:
        get_parent_key: key of a parent, e.g. its id
        get_child_key: foreign key of a child, e.g. its parent id
        sort_key: optional key that keeps each child list sorted
    """

    def __init__(
        self,
        get_parent_key: Callable[[Any], Hashable],
        get_child_key: Callable[[Any], Hashable],
        sort_key: Optional[Callable[[Any], Any]] = None
    ):
        if get_parent_key is None:
            raise ValueError("get_parent_key is required")
        if get_child_key is None:
            raise ValueError("get_child_key is required")

        self.get_parent_key = get_parent_key
        self.get_child_key = get_child_key
        self.sort_key = sort_key

    def is_match(self, parent: Any, child: Any) -> bool:
        return self.get_parent_key(parent) == self.get_child_key(child)


class OneToManyRelationView:
    """Live children of one parent; the owning service keeps them current"""

    def __init__(self, parent: Any, children_source: Callable[[], Tuple[Any, ...]]):
        if parent is None:
            raise ValueError("Parent is required")
        if children_source is None:
            raise ValueError("Children source is required")

        self.parent = parent
        self._children_source = children_source

    @property
    def children(self) -> Tuple[Any, ...]:
        """Snapshot of the current children, in index order"""
        return self._children_source()

    def __len__(self) -> int:
        return len(self.children)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.children)

    def __repr__(self) -> str:
        return f"OneToManyRelationView({type(self.parent).__name__}, children={len(self)})"


class OneToOneRelationView:
    """At most one child of a parent, on top of a one-to-many view"""

    def __init__(
        self,
        view: OneToManyRelationView,
        policy: MultipleChildrenPolicy = MultipleChildrenPolicy.THROW_IF_MULTIPLE
    ):
        if view is None:
            raise ValueError("View is required")

        self._view = view
        self.policy = policy

    @property
    def parent(self) -> Any:
        return self._view.parent

    @property
    def child_or_none(self) -> Optional[Any]:
        """
        The single child, or None without children.

        Raises:
            InvalidOperationError: several children under THROW_IF_MULTIPLE
        """
        children = self._view.children
        if not children:
            return None
        if len(children) == 1 or self.policy == MultipleChildrenPolicy.TAKE_FIRST:
            return children[0]
        raise InvalidOperationError(
            f"Expected at most one child for parent, but found {len(children)}"
        )

    @property
    def has_child(self) -> bool:
        return self.child_or_none is not None

    def try_get_child(self) -> Optional[Any]:
        """Like child_or_none, but returns None instead of raising"""
        try:
            return self.child_or_none
        except InvalidOperationError:
            return None


class RelationViewService:
    """
    Maintains one-to-many and one-to-one views between two stores.

    Children are indexed by definition.get_child_key. Store events add,
    remove and clear index entries; property changes of observable
    children move them when their key changed. Views are cached per parent
    instance. close() stops all tracking.
    """

    def __init__(self, parent_store: DataStore, child_store: DataStore, definition: RelationDefinition):
        if parent_store is None:
            raise ValueError("Parent store is required")
        if child_store is None:
            raise ValueError("Child store is required")
        if definition is None:
            raise ValueError("Relation definition is required")

        self.parent_store = parent_store
        self.child_store = child_store
        self.definition = definition

        self._lock = threading.RLock()
        self._children_by_key: Dict[Hashable, List[Any]] = {}
        # id(child) -> (child, key it is indexed under)
        self._tracked: Dict[int, Tuple[Any, Hashable]] = {}
        self._view_cache: Dict[int, OneToManyRelationView] = {}
        self._binder = PropertyChangedBinder(self._on_child_property_changed)
        self._closed = False

        child_store.subscribe(self._on_child_store_changed)
        for child in child_store.items:
            self._index(child)

    @classmethod
    def from_global(
        cls,
        facade: DataStoresFacade,
        parent_type: Type,
        child_type: Type,
        definition: RelationDefinition
    ) -> 'RelationViewService':
        """Service over the global stores of parent_type and child_type"""
        return cls(facade.get_global(parent_type), facade.get_global(child_type), definition)

    # Views

    def get_one_to_many_relation(self, parent: Any) -> OneToManyRelationView:
        if parent is None:
            raise ValueError("Parent is required")

        with self._lock:
            view = self._view_cache.get(id(parent))
            if view is None:
                key = self.definition.get_parent_key(parent)
                view = OneToManyRelationView(parent, partial(self._children_of, key))
                # The view holds the parent, so its id stays unique while cached
                self._view_cache[id(parent)] = view
            return view

    def get_one_to_one_relation(
        self,
        parent: Any,
        policy: MultipleChildrenPolicy = MultipleChildrenPolicy.THROW_IF_MULTIPLE
    ) -> OneToOneRelationView:
        """New one-to-one view per call; the one-to-many view below it is shared"""
        return OneToOneRelationView(self.get_one_to_many_relation(parent), policy)

    def get_relation(self, parent: Any) -> OneToManyRelationView:
        return self.get_one_to_many_relation(parent)

    def get_children(self, parent: Any) -> Tuple[Any, ...]:
        return self.get_one_to_many_relation(parent).children

    def _children_of(self, key: Hashable) -> Tuple[Any, ...]:
        with self._lock:
            return tuple(self._children_by_key.get(key, ()))

    # Index maintenance

    def _insert(self, key: Hashable, child: Any) -> None:
        collection = self._children_by_key.setdefault(key, [])
        if any(existing is child for existing in collection):
            return
        if self.definition.sort_key is not None:
            insort_left(collection, child, key=self.definition.sort_key)
        else:
            collection.append(child)

    def _discard(self, key: Hashable, child: Any) -> None:
        collection = self._children_by_key.get(key)
        if collection is None:
            return
        for index, existing in enumerate(collection):
            if existing is child:
                del collection[index]
                return

    def _index(self, child: Any) -> None:
        key = self.definition.get_child_key(child)
        with self._lock:
            tracked = self._tracked.get(id(child))
            if tracked is not None and tracked[1] != key:
                self._discard(tracked[1], child)
            self._insert(key, child)
            self._tracked[id(child)] = (child, key)
        self._binder.attach(child)

    def _unindex(self, child: Any) -> None:
        self._binder.detach(child)
        with self._lock:
            tracked = self._tracked.pop(id(child), None)
            if tracked is not None:
                self._discard(tracked[1], child)

    def _unindex_missing(self, store: DataStore) -> None:
        remaining = {id(item) for item in store.items}
        with self._lock:
            missing = [child for child, _ in self._tracked.values() if id(child) not in remaining]
        for child in missing:
            self._unindex(child)

    def _clear(self) -> None:
        self._binder.detach_all()
        with self._lock:
            self._tracked.clear()
            for collection in self._children_by_key.values():
                collection.clear()

    def _on_child_store_changed(self, store: DataStore, event: ChangeEvent) -> None:
        if self._closed:
            return

        if event.is_addition:
            for child in event.items:
                self._index(child)
        elif event.kind == ChangeKind.REMOVE:
            # The same instance may still be in the store through a duplicate add
            self._unindex_missing(store)
        elif event.kind == ChangeKind.UPDATE:
            # The replaced instance is gone from the store
            self._unindex_missing(store)
            for child in event.items:
                self._index(child)
        elif event.kind == ChangeKind.CLEAR:
            self._clear()

    def _on_child_property_changed(self, child: Any) -> None:
        with self._lock:
            tracked = self._tracked.get(id(child))
            if tracked is None:
                return
            new_key = self.definition.get_child_key(child)
            old_key = tracked[1]
            if new_key == old_key:
                return

            self._discard(old_key, child)
            self._insert(new_key, child)
            self._tracked[id(child)] = (child, new_key)
        logger.debug(f"{type(child).__name__} moved from parent key {old_key!r} to {new_key!r}")

    # Lifecycle

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self.child_store.unsubscribe(self._on_child_store_changed)
        self._binder.close()
        with self._lock:
            self._tracked.clear()
            self._children_by_key.clear()
            self._view_cache.clear()

    def __enter__(self) -> 'RelationViewService':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# Alias for callers that only use get_relation() and get_children()
ParentChildRelationService = RelationViewService
