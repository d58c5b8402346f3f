"""
Change event models.

Every mutating store call produces exactly one ChangeEvent describing
what happened. Events are immutable once created.
"""

from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ChangeKind(Enum):
    """Kinds of store mutations"""
    ADD = "add"
    BULK_ADD = "bulk_add"
    REMOVE = "remove"
    CLEAR = "clear"
    UPDATE = "update"


class ChangeEvent(BaseModel):
    """
    Immutable description of a single store mutation.

    `items` holds the affected entities by reference (never copies) and is
    empty for CLEAR. `origin` optionally tags the internal cause of the
    mutation, e.g. the bulk add performed when a persistent store loads.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ChangeKind
    items: Tuple[Any, ...] = Field(default_factory=tuple)
    origin: Optional[str] = None

    @classmethod
    def added(cls, item: Any) -> 'ChangeEvent':
        return cls(kind=ChangeKind.ADD, items=(item,))

    @classmethod
    def bulk_added(cls, items: Iterable[Any], origin: Optional[str] = None) -> 'ChangeEvent':
        return cls(kind=ChangeKind.BULK_ADD, items=tuple(items), origin=origin)

    @classmethod
    def removed(cls, item: Any) -> 'ChangeEvent':
        return cls(kind=ChangeKind.REMOVE, items=(item,))

    @classmethod
    def cleared(cls) -> 'ChangeEvent':
        return cls(kind=ChangeKind.CLEAR)

    @classmethod
    def updated(cls, item: Any) -> 'ChangeEvent':
        return cls(kind=ChangeKind.UPDATE, items=(item,))

    @property
    def is_addition(self) -> bool:
        """True for ADD and BULK_ADD events"""
        return self.kind in (ChangeKind.ADD, ChangeKind.BULK_ADD)

    def __str__(self) -> str:
        origin_part = f" ({self.origin})" if self.origin else ""
        return f"{self.kind.value.upper()}[{len(self.items)}]{origin_part}"
