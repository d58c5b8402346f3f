"""
Unit tests for GlobalStoreRegistry and DataStoresFacade.
"""

import threading

import pytest

from datastores.exceptions import GlobalStoreAlreadyRegisteredError, GlobalStoreNotRegisteredError
from datastores.persistence.decorator import PersistentStoreDecorator
from datastores.runtime.comparers import EntityIdComparer, EqualityComparerService, KeyEqualityComparer
from datastores.runtime.facade import DataStoresFacade, LocalDataStoreFactory
from datastores.runtime.registry import GlobalStoreRegistry
from datastores.runtime.store import InMemoryDataStore
from tests.fixtures.stores import Customer, FakePersistenceStrategy, Group


class TestGlobalStoreRegistry:
    """Test registration and resolution"""

    def setup_method(self):
        self.registry = GlobalStoreRegistry()

    def test_register_and_resolve(self):
        store = InMemoryDataStore()
        self.registry.register_global(Customer, store)

        assert self.registry.resolve_global(Customer) is store
        assert self.registry.try_resolve_global(Customer) is store
        assert self.registry.is_registered(Customer)
        assert self.registry.registered_types() == [Customer]

    def test_duplicate_registration_keeps_first(self):
        first = InMemoryDataStore()
        self.registry.register_global(Customer, first)

        with pytest.raises(GlobalStoreAlreadyRegisteredError) as exc_info:
            self.registry.register_global(Customer, InMemoryDataStore())

        assert exc_info.value.entity_type is Customer
        assert "Customer" in str(exc_info.value)
        assert self.registry.resolve_global(Customer) is first

    def test_resolve_missing_type(self):
        with pytest.raises(GlobalStoreNotRegisteredError) as exc_info:
            self.registry.resolve_global(Group)

        assert exc_info.value.entity_type is Group
        assert self.registry.try_resolve_global(Group) is None

    def test_register_validates_arguments(self):
        with pytest.raises(ValueError):
            self.registry.register_global(None, InMemoryDataStore())
        with pytest.raises(ValueError):
            self.registry.register_global(Customer, None)

    def test_get_initializable_stores(self):
        decorator = PersistentStoreDecorator(InMemoryDataStore(), FakePersistenceStrategy())
        self.registry.register_global(Customer, decorator)
        self.registry.register_global(Group, InMemoryDataStore())

        assert self.registry.get_initializable_stores() == [decorator]
        decorator.close()

    def test_concurrent_registration_single_winner(self):
        winners = []
        errors = []
        barrier = threading.Barrier(8)

        def register():
            store = InMemoryDataStore()
            barrier.wait()
            try:
                self.registry.register_global(Customer, store)
                winners.append(store)
            except GlobalStoreAlreadyRegisteredError as e:
                errors.append(e)

        threads = [threading.Thread(target=register) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert len(errors) == 7
        assert self.registry.resolve_global(Customer) is winners[0]


class TestDataStoresFacade:
    """Test facade access to global and local stores"""

    def setup_method(self):
        self.registry = GlobalStoreRegistry()
        self.comparer_service = EqualityComparerService()
        self.facade = DataStoresFacade(self.registry, LocalDataStoreFactory(), self.comparer_service)

    def test_requires_collaborators(self):
        with pytest.raises(ValueError):
            DataStoresFacade(None, LocalDataStoreFactory(), self.comparer_service)
        with pytest.raises(ValueError):
            DataStoresFacade(self.registry, None, self.comparer_service)
        with pytest.raises(ValueError):
            DataStoresFacade(self.registry, LocalDataStoreFactory(), None)

    def test_get_global(self):
        store = InMemoryDataStore()
        self.registry.register_global(Customer, store)

        assert self.facade.get_global(Customer) is store

        with pytest.raises(GlobalStoreNotRegisteredError):
            self.facade.get_global(Group)

    def test_create_local_uses_resolved_comparer(self):
        local = self.facade.create_local(Customer)

        assert isinstance(local.comparer, EntityIdComparer)
        assert not self.registry.is_registered(Customer)

    def test_create_local_with_explicit_comparer(self):
        comparer = KeyEqualityComparer(lambda c: c.name)

        assert self.facade.create_local(Customer, comparer).comparer is comparer

    def test_local_stores_are_independent(self):
        first = self.facade.create_local(Customer)
        second = self.facade.create_local(Customer)

        first.add(Customer(id=1))

        assert first is not second
        assert second.items == ()

    def test_snapshot_from_global(self):
        global_store = InMemoryDataStore()
        global_store.add_range([Customer(id=1, city="Paris"), Customer(id=2, city="Rome")])
        self.registry.register_global(Customer, global_store)

        snapshot = self.facade.create_local_snapshot_from_global(Customer, lambda c: c.city == "Rome")

        assert [c.id for c in snapshot.items] == [2]
        snapshot.clear()
        assert len(global_store.items) == 2

    def test_snapshot_shares_item_references(self):
        item = Customer(id=1)
        global_store = InMemoryDataStore()
        global_store.add(item)
        self.registry.register_global(Customer, global_store)

        snapshot = self.facade.create_local_snapshot_from_global(Customer)

        assert snapshot.items[0] is item
