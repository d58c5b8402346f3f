"""
JSON file persistence strategy.

Stores the whole item list as one JSON array. Writes go to a temporary
file that replaces the target, so readers never see a half-written file.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Any, List, Sequence, Type, Union

import aiofiles
from pydantic import TypeAdapter, ValidationError

from ..exceptions import PersistenceError
from .base import PersistenceStrategy

logger = logging.getLogger(__name__)


class JsonFilePersistenceStrategy(PersistenceStrategy):
    """Persists items of one type to a JSON file"""

    def __init__(
        self,
        file_path: Union[str, Path],
        item_type: Type,
        indent: int = 2
    ):
        super().__init__()
        if file_path is None or not str(file_path).strip():
            raise ValueError("File path cannot be empty")
        if item_type is None:
            raise ValueError("Item type is required")

        self.file_path = Path(file_path)
        self.item_type = item_type
        self.indent = indent
        self._adapter = TypeAdapter(List[item_type])

    async def load_all(self) -> List[Any]:
        if not self.file_path.exists():
            return []

        try:
            async with aiofiles.open(self.file_path, 'rb') as f:
                raw = await f.read()
        except OSError as e:
            logger.error(f"Failed to read {self.file_path}: {e}")
            return []

        if not raw.strip():
            return []

        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            logger.error(f"Invalid JSON store file {self.file_path}: {e}")
            return []

    async def save_all(self, items: Sequence[Any]) -> None:
        if items is None:
            raise ValueError("Items are required")
        payload = self._adapter.dump_json(list(items), indent=self.indent or None)

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        # Write atomically using a temporary file next to the target
        temp_file = self.file_path.with_name(f".{self.file_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(temp_file, 'wb') as f:
                await f.write(payload)
            os.replace(temp_file, self.file_path)
        except BaseException:
            temp_file.unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {len(payload)} bytes to {self.file_path}")

    async def update_single(self, item: Any) -> None:
        if item is None:
            raise ValueError("Item is required")
        if self._items_provider is None:
            raise PersistenceError(
                "Items provider not set. update_single rewrites the whole file and "
                "needs the provider supplied by the owning store."
            )

        await self.save_all(self._items_provider())

    def __repr__(self) -> str:
        return f"JsonFilePersistenceStrategy({str(self.file_path)!r}, {self.item_type.__name__})"
