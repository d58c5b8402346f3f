"""
Persistence strategy interface.

A strategy loads and saves the complete item list of one store. Loading a
missing or empty backing resource must yield an empty list, not fail.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Sequence

ItemsProvider = Callable[[], Sequence[Any]]


class PersistenceStrategy(ABC):
    """Pluggable load/save backend for a persistent store"""

    def __init__(self):
        self._items_provider: Optional[ItemsProvider] = None

    def set_items_provider(self, provider: Optional[ItemsProvider]) -> None:
        """
        Give the strategy access to the current items of its store.

        Strategies that persist single updates by rewriting everything
        need this; others may ignore it.
        """
        self._items_provider = provider

    @abstractmethod
    async def load_all(self) -> List[Any]:
        pass

    @abstractmethod
    async def save_all(self, items: Sequence[Any]) -> None:
        pass

    @abstractmethod
    async def update_single(self, item: Any) -> None:
        pass

    def close(self) -> None:
        """Release resources held by the strategy"""
        pass
