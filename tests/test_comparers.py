"""
Unit tests for equality comparers and comparer resolution.
"""

import pytest

from datastores.runtime.comparers import (
    DefaultEqualityComparer,
    EntityIdComparer,
    EqualityComparerService,
    KeyEqualityComparer,
    ReferenceEqualityComparer,
)
from tests.fixtures.stores import Customer, Member


class TestComparers:
    """Test individual comparers"""

    def test_default_comparer_uses_value_equality(self):
        comparer = DefaultEqualityComparer()

        assert comparer.equals({"a": 1}, {"a": 1})
        assert not comparer.equals({"a": 1}, {"a": 2})
        assert comparer.hash({"a": 1}) == 0
        assert comparer.hash("x") == hash("x")

    def test_reference_comparer(self):
        comparer = ReferenceEqualityComparer()
        first, second = Customer(name="Ada"), Customer(name="Ada")

        assert comparer.equals(first, first)
        assert not comparer.equals(first, second)

    def test_key_comparer(self):
        comparer = KeyEqualityComparer(lambda c: c.name.lower())

        assert comparer.equals(Customer(name="Ada"), Customer(name="ADA"))
        assert not comparer.equals(Customer(name="Ada"), None)
        assert comparer.hash(Customer(name="Ada")) == comparer.hash(Customer(name="ada"))

    def test_key_comparer_requires_key(self):
        with pytest.raises(ValueError):
            KeyEqualityComparer(None)

    def test_entity_id_comparer_matches_persisted_ids(self):
        comparer = EntityIdComparer()

        assert comparer.equals(Customer(id=3, name="a"), Customer(id=3, name="b"))
        assert not comparer.equals(Customer(id=3), Customer(id=4))
        assert comparer.hash(Customer(id=3)) == comparer.hash(Customer(id=3, name="x"))

    def test_entity_id_comparer_new_entities_only_equal_themselves(self):
        comparer = EntityIdComparer()
        new_entity = Customer()

        assert comparer.equals(new_entity, new_entity)
        assert not comparer.equals(new_entity, Customer())
        assert not comparer.equals(new_entity, None)


class TestEqualityComparerService:
    """Test comparer resolution"""

    def test_entity_types_get_id_comparer(self):
        service = EqualityComparerService()

        assert isinstance(service.get_comparer(Customer), EntityIdComparer)
        assert isinstance(service.get_comparer(Member), EntityIdComparer)

    def test_other_types_get_default_comparer(self):
        service = EqualityComparerService()

        assert isinstance(service.get_comparer(str), DefaultEqualityComparer)
        assert isinstance(service.get_comparer(dict), DefaultEqualityComparer)

    def test_registered_comparer_wins(self):
        service = EqualityComparerService()
        by_name = KeyEqualityComparer(lambda c: c.name)

        service.register(Customer, by_name)

        assert service.get_comparer(Customer) is by_name
        assert isinstance(service.get_comparer(Member), EntityIdComparer)

    def test_register_validates_arguments(self):
        service = EqualityComparerService()

        with pytest.raises(ValueError):
            service.register(None, DefaultEqualityComparer())
        with pytest.raises(ValueError):
            service.register(Customer, None)
