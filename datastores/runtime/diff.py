"""
Diff computation between two item sequences.

Used by delta-based persistence strategies to find what to insert and
what to delete.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Type

from .comparers import EqualityComparer, EqualityComparerService


@dataclass(frozen=True)
class DataStoreDiff:
    """Items to insert into and delete from a target"""
    to_insert: List[Any] = field(default_factory=list)
    to_delete: List[Any] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.to_insert) or bool(self.to_delete)

    def __str__(self) -> str:
        return f"DataStoreDiff: {len(self.to_insert)} to insert, {len(self.to_delete)} to delete"


class _ComparerIndex:
    """Hash-bucketed membership test driven by an EqualityComparer"""

    def __init__(self, items: Sequence[Any], comparer: EqualityComparer):
        self._comparer = comparer
        self._buckets: Dict[int, List[Any]] = defaultdict(list)
        for item in items:
            self._buckets[comparer.hash(item)].append(item)

    def __contains__(self, item: Any) -> bool:
        bucket = self._buckets.get(self._comparer.hash(item), ())
        return any(self._comparer.equals(existing, item) for existing in bucket)


class DataStoreDiffService:
    """Computes diffs using the comparer resolved for the item type"""

    def __init__(self, comparer_service: EqualityComparerService):
        if comparer_service is None:
            raise ValueError("Comparer service is required")
        self._comparer_service = comparer_service

    def compute_diff(
        self,
        source_items: Sequence[Any],
        target_items: Sequence[Any],
        entity_type: Optional[Type] = None,
        comparer: Optional[EqualityComparer] = None
    ) -> DataStoreDiff:
        """
        Compare source against target.

        Args:
            source_items: Desired state
            target_items: Current state of the target
            entity_type: Type used to resolve the comparer when none is given
            comparer: Explicit comparer, takes precedence over resolution

        Returns:
            Items of source missing in target (insert) and items of target
            missing in source (delete)
        """
        if source_items is None or target_items is None:
            raise ValueError("Source and target items are required")

        if comparer is None:
            resolved_type = entity_type or _infer_type(source_items, target_items)
            comparer = self._comparer_service.get_comparer(resolved_type)

        target_index = _ComparerIndex(target_items, comparer)
        source_index = _ComparerIndex(source_items, comparer)

        return DataStoreDiff(
            to_insert=[item for item in source_items if item not in target_index],
            to_delete=[item for item in target_items if item not in source_index]
        )


def _infer_type(*sequences: Sequence[Any]) -> Type:
    for sequence in sequences:
        for item in sequence:
            return type(item)
    return object
