"""
Tests for JsonFilePersistenceStrategy against real files.
"""

import json

import pytest

from datastores.exceptions import PersistenceError
from datastores.persistence.decorator import PersistentStoreDecorator
from datastores.persistence.json_file import JsonFilePersistenceStrategy
from datastores.runtime.comparers import EntityIdComparer
from datastores.runtime.store import InMemoryDataStore
from tests.fixtures.stores import Customer, Member


class TestJsonFilePersistenceStrategy:
    """Test load/save behaviour"""

    def test_rejects_empty_path(self):
        with pytest.raises(ValueError):
            JsonFilePersistenceStrategy("", Customer)
        with pytest.raises(ValueError):
            JsonFilePersistenceStrategy("   ", Customer)

    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, tmp_path):
        strategy = JsonFilePersistenceStrategy(tmp_path / "missing.json", Customer)

        assert await strategy.load_all() == []

    @pytest.mark.asyncio
    async def test_blank_file_loads_empty(self, tmp_path):
        path = tmp_path / "blank.json"
        path.write_text("  \n")

        assert await JsonFilePersistenceStrategy(path, Customer).load_all() == []

    @pytest.mark.asyncio
    async def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "corrupt.json"
        path.write_text("{not json")

        assert await JsonFilePersistenceStrategy(path, Customer).load_all() == []

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "customers.json"
        strategy = JsonFilePersistenceStrategy(path, Customer)

        await strategy.save_all([Customer(id=1, name="Ada", city="London"), Customer(id=2, name="Bob")])

        assert path.exists()
        raw = json.loads(path.read_text())
        assert raw[0] == {"id": 1, "name": "Ada", "city": "London"}

        loaded = await strategy.load_all()
        assert [(c.id, c.name) for c in loaded] == [(1, "Ada"), (2, "Bob")]
        assert all(isinstance(c, Customer) for c in loaded)

    @pytest.mark.asyncio
    async def test_save_leaves_no_temp_files(self, tmp_path):
        strategy = JsonFilePersistenceStrategy(tmp_path / "c.json", Customer)

        await strategy.save_all([Customer(id=1)])
        await strategy.save_all([])

        assert [p.name for p in tmp_path.iterdir()] == ["c.json"]
        assert json.loads((tmp_path / "c.json").read_text()) == []

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_file(self, tmp_path, monkeypatch):
        """Test a failing rename removes the temp file and leaves the old content"""
        strategy = JsonFilePersistenceStrategy(tmp_path / "c.json", Customer)
        await strategy.save_all([Customer(id=1, name="Ada")])

        def fail_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("datastores.persistence.json_file.os.replace", fail_replace)

        with pytest.raises(OSError):
            await strategy.save_all([Customer(id=2, name="Bob")])

        assert [p.name for p in tmp_path.iterdir()] == ["c.json"]
        assert json.loads((tmp_path / "c.json").read_text())[0]["name"] == "Ada"

    @pytest.mark.asyncio
    async def test_plain_dicts_round_trip(self, tmp_path):
        strategy = JsonFilePersistenceStrategy(tmp_path / "d.json", dict, indent=0)

        await strategy.save_all([{"a": 1}])

        assert await strategy.load_all() == [{"a": 1}]

    @pytest.mark.asyncio
    async def test_update_single_requires_items_provider(self, tmp_path):
        strategy = JsonFilePersistenceStrategy(tmp_path / "c.json", Customer)

        with pytest.raises(PersistenceError):
            await strategy.update_single(Customer(id=1))

    @pytest.mark.asyncio
    async def test_update_single_rewrites_from_provider(self, tmp_path):
        strategy = JsonFilePersistenceStrategy(tmp_path / "c.json", Customer)
        items = [Customer(id=1, name="Ada")]
        strategy.set_items_provider(lambda: items)

        items[0].name = "Ada Lovelace"
        await strategy.update_single(items[0])

        loaded = await strategy.load_all()
        assert loaded[0].name == "Ada Lovelace"


class TestJsonPersistentStore:
    """Test a decorator persisting to a physical JSON file"""

    @pytest.mark.asyncio
    async def test_store_survives_restart(self, tmp_path):
        path = tmp_path / "customers.json"

        first = PersistentStoreDecorator(
            InMemoryDataStore(comparer=EntityIdComparer()),
            JsonFilePersistenceStrategy(path, Customer)
        )
        await first.initialize()
        first.add(Customer(id=1, name="Ada"))
        first.add(Customer(id=2, name="Bob"))
        first.remove(Customer(id=1))
        await first.flush()
        first.close()

        second = PersistentStoreDecorator(
            InMemoryDataStore(comparer=EntityIdComparer()),
            JsonFilePersistenceStrategy(path, Customer)
        )
        await second.initialize()

        assert [(c.id, c.name) for c in second.items] == [(2, "Bob")]
        second.close()

    @pytest.mark.asyncio
    async def test_property_change_is_persisted(self, tmp_path):
        path = tmp_path / "members.json"
        path.write_text(json.dumps([{"id": 1, "name": "Ada", "group_id": 0}]))

        store = PersistentStoreDecorator(
            InMemoryDataStore(comparer=EntityIdComparer()),
            JsonFilePersistenceStrategy(path, Member)
        )
        await store.initialize()

        store.items[0].group_id = 7
        await store.flush()
        store.close()

        assert json.loads(path.read_text())[0]["group_id"] == 7
