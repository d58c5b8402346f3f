"""
Equality comparers and comparer resolution.

Stores never decide identity themselves; they delegate to an
EqualityComparer. EqualityComparerService picks the comparer per type.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Type

from ..models.entities import EntityBase

logger = logging.getLogger(__name__)


class EqualityComparer(ABC):
    """Defines equality and a compatible hash for store items"""

    @abstractmethod
    def equals(self, x: Any, y: Any) -> bool:
        pass

    @abstractmethod
    def hash(self, item: Any) -> int:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DefaultEqualityComparer(EqualityComparer):
    """Value equality via ==; falls back to a constant hash for unhashable items"""

    def equals(self, x: Any, y: Any) -> bool:
        return x is y or x == y

    def hash(self, item: Any) -> int:
        try:
            return hash(item)
        except TypeError:
            return 0


class ReferenceEqualityComparer(EqualityComparer):
    """Identity equality"""

    def equals(self, x: Any, y: Any) -> bool:
        return x is y

    def hash(self, item: Any) -> int:
        return id(item)


class KeyEqualityComparer(EqualityComparer):
    """Compares items by a key extracted from each of them"""

    def __init__(self, key: Callable[[Any], Any]):
        if key is None:
            raise ValueError("Key selector is required")
        self._key = key

    def equals(self, x: Any, y: Any) -> bool:
        if x is y:
            return True
        if x is None or y is None:
            return False
        return self._key(x) == self._key(y)

    def hash(self, item: Any) -> int:
        if item is None:
            return 0
        return hash(self._key(item))


class EntityIdComparer(EqualityComparer):
    """
    Identity comparer for EntityBase items.

    New entities (id 0) are only equal to themselves; persisted entities
    are equal when their ids match.
    """

    def equals(self, x: Any, y: Any) -> bool:
        if x is y:
            return True
        if x is None or y is None:
            return False
        if not isinstance(x, EntityBase) or not isinstance(y, EntityBase):
            return False
        if x.id == 0 or y.id == 0:
            return False
        return x.id == y.id

    def hash(self, item: Any) -> int:
        if isinstance(item, EntityBase) and item.id > 0:
            return hash(item.id)
        return id(item)


class EqualityComparerService:
    """
    Resolves the default comparer for an entity type.

    Resolution order: explicitly registered comparer, EntityIdComparer for
    EntityBase subclasses, DefaultEqualityComparer otherwise.
    """

    def __init__(self):
        self._comparers: Dict[Type, EqualityComparer] = {}
        self._lock = threading.Lock()

    def register(self, entity_type: Type, comparer: EqualityComparer) -> None:
        if entity_type is None:
            raise ValueError("Entity type is required")
        if comparer is None:
            raise ValueError("Comparer is required")

        with self._lock:
            self._comparers[entity_type] = comparer
        logger.debug(f"Registered comparer for {entity_type.__name__}: {comparer!r}")

    def get_comparer(self, entity_type: Type) -> EqualityComparer:
        with self._lock:
            registered: Optional[EqualityComparer] = self._comparers.get(entity_type)

        if registered is not None:
            return registered

        if isinstance(entity_type, type) and issubclass(entity_type, EntityBase):
            return EntityIdComparer()

        return DefaultEqualityComparer()
