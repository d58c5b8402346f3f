"""
Test entities and persistence strategy fakes.

Strategies run on the persistence worker loop, not on the test's loop, so
coordination uses threading.Event and short polling sleeps.
"""

import asyncio
import threading
from typing import Any, List, Optional, Sequence

from datastores.models.entities import EntityBase, ObservableEntity
from datastores.persistence.base import PersistenceStrategy


class Customer(EntityBase):
    name: str = ""
    city: str = ""


class Member(ObservableEntity):
    name: str = ""
    group_id: int = 0


class Group(EntityBase):
    title: str = ""


class FakePersistenceStrategy(PersistenceStrategy):
    """Records every call; load_all returns a copy of the configured items"""

    def __init__(self, items: Optional[Sequence[Any]] = None, save_delay: float = 0.0):
        super().__init__()
        self.items = list(items or [])
        self.save_delay = save_delay
        self.load_calls = 0
        self.save_calls = 0
        self.update_calls = 0
        self.saved_snapshots: List[List[Any]] = []
        self.updated_items: List[Any] = []
        self.closed = False
        self.concurrent_writes = 0
        self.max_concurrent_writes = 0
        self._writes_lock = threading.Lock()

    async def load_all(self) -> List[Any]:
        self.load_calls += 1
        return list(self.items)

    async def save_all(self, items: Sequence[Any]) -> None:
        with self._writes_lock:
            self.concurrent_writes += 1
            self.max_concurrent_writes = max(self.max_concurrent_writes, self.concurrent_writes)
        try:
            if self.save_delay:
                await asyncio.sleep(self.save_delay)
            self.save_calls += 1
            self.saved_snapshots.append(list(items))
        finally:
            with self._writes_lock:
                self.concurrent_writes -= 1

    async def update_single(self, item: Any) -> None:
        self.update_calls += 1
        self.updated_items.append(item)

    def close(self) -> None:
        self.closed = True

    @property
    def last_saved(self) -> Optional[List[Any]]:
        return self.saved_snapshots[-1] if self.saved_snapshots else None


class SlowLoadStrategy(FakePersistenceStrategy):
    """load_all blocks until release() is called"""

    def __init__(self, items: Optional[Sequence[Any]] = None):
        super().__init__(items)
        self.load_started = threading.Event()
        self._release = threading.Event()

    def release(self) -> None:
        self._release.set()

    async def load_all(self) -> List[Any]:
        self.load_calls += 1
        self.load_started.set()
        while not self._release.is_set():
            await asyncio.sleep(0.005)
        return list(self.items)


class ThrowingPersistenceStrategy(FakePersistenceStrategy):
    """Fails loads and/or saves on demand"""

    def __init__(
        self,
        items: Optional[Sequence[Any]] = None,
        fail_load: bool = False,
        fail_save: bool = False
    ):
        super().__init__(items)
        self.fail_load = fail_load
        self.fail_save = fail_save

    async def load_all(self) -> List[Any]:
        self.load_calls += 1
        if self.fail_load:
            raise IOError("simulated load failure")
        return list(self.items)

    async def save_all(self, items: Sequence[Any]) -> None:
        if self.fail_save:
            self.save_calls += 1
            raise IOError("simulated save failure")
        await super().save_all(items)

    def close(self) -> None:
        self.closed = True
        raise RuntimeError("simulated close failure")


class GatedSaveStrategy(FakePersistenceStrategy):
    """save_all blocks until release() is called"""

    def __init__(self, items: Optional[Sequence[Any]] = None):
        super().__init__(items)
        self.save_started = threading.Event()
        self._release = threading.Event()

    def release(self) -> None:
        self._release.set()

    async def save_all(self, items: Sequence[Any]) -> None:
        self.save_started.set()
        while not self._release.is_set():
            await asyncio.sleep(0.005)
        await super().save_all(items)
