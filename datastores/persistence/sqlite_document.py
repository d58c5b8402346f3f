"""
Embedded document database strategy backed by SQLite.

Each entity is one JSON document row in a per-collection table. Saves are
deltas: new entities (id 0) are inserted and receive their generated id,
rows whose entity left the store are deleted.
"""

import asyncio
import logging
import sqlite3
import threading
from contextlib import closing
from pathlib import Path
from typing import Any, List, Optional, Sequence, Type, Union

from pydantic import TypeAdapter, ValidationError

from ..exceptions import PersistenceError
from ..models.entities import EntityBase
from .base import PersistenceStrategy

logger = logging.getLogger(__name__)


class SqliteDocumentPersistenceStrategy(PersistenceStrategy):
    """Persists EntityBase items as documents in a SQLite file"""

    def __init__(
        self,
        database_path: Union[str, Path],
        item_type: Type[EntityBase],
        collection_name: Optional[str] = None
    ):
        super().__init__()
        if database_path is None or not str(database_path).strip():
            raise ValueError("Database path cannot be empty")
        if not isinstance(item_type, type) or not issubclass(item_type, EntityBase):
            raise TypeError("Item type must be an EntityBase subclass")

        self.database_path = Path(database_path)
        self.item_type = item_type
        self.collection_name = collection_name or item_type.__name__
        if not self.collection_name.isidentifier():
            raise ValueError(f"Invalid collection name: {self.collection_name!r}")

        self._adapter = TypeAdapter(item_type)
        self._lock = threading.Lock()

    def _connect(self) -> sqlite3.Connection:
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self.database_path)
        connection.execute(
            f'CREATE TABLE IF NOT EXISTS "{self.collection_name}" '
            '(id INTEGER PRIMARY KEY AUTOINCREMENT, document TEXT NOT NULL)'
        )
        return connection

    async def load_all(self) -> List[Any]:
        return await asyncio.to_thread(self._load_all)

    def _load_all(self) -> List[Any]:
        if not self.database_path.exists():
            return []

        with self._lock:
            try:
                with closing(self._connect()) as connection:
                    rows = connection.execute(
                        f'SELECT id, document FROM "{self.collection_name}" ORDER BY id'
                    ).fetchall()
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to load from {self.database_path}: {e}", e)

        items = []
        for row_id, document in rows:
            try:
                item = self._adapter.validate_json(document)
            except ValidationError as e:
                raise PersistenceError(
                    f"Invalid document {row_id} in {self.collection_name}: {e}", e
                )
            item.id = row_id
            items.append(item)
        return items

    async def save_all(self, items: Sequence[Any]) -> None:
        if items is None:
            raise ValueError("Items are required")
        await asyncio.to_thread(self._save_all, list(items))

    def _save_all(self, items: List[Any]) -> None:
        with self._lock:
            try:
                with closing(self._connect()) as connection:
                    stored_ids = {
                        row[0] for row in connection.execute(
                            f'SELECT id FROM "{self.collection_name}"'
                        )
                    }
                    store_ids = {item.id for item in items if item.id > 0}

                    to_insert = [item for item in items if item.id == 0]
                    to_delete = sorted(stored_ids - store_ids)

                    if not to_insert and not to_delete:
                        return

                    assigned = []
                    with connection:
                        for item in to_insert:
                            cursor = connection.execute(
                                f'INSERT INTO "{self.collection_name}" (document) VALUES (?)',
                                (self._dump(item),)
                            )
                            assigned.append((item, cursor.lastrowid))
                        connection.executemany(
                            f'DELETE FROM "{self.collection_name}" WHERE id = ?',
                            [(row_id,) for row_id in to_delete]
                        )
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to save to {self.database_path}: {e}", e)

        # Ids are assigned only after the transaction committed
        for item, row_id in assigned:
            item.id = row_id

        logger.debug(
            f"Saved {self.collection_name}: {len(to_insert)} inserted, {len(to_delete)} deleted"
        )

    async def update_single(self, item: Any) -> None:
        if item is None:
            raise ValueError("Item is required")
        if item.id <= 0:
            return
        await asyncio.to_thread(self._update_single, item)

    def _update_single(self, item: Any) -> None:
        with self._lock:
            try:
                with closing(self._connect()) as connection:
                    with connection:
                        connection.execute(
                            f'UPDATE "{self.collection_name}" SET document = ? WHERE id = ?',
                            (self._dump(item), item.id)
                        )
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to update {item.id} in {self.database_path}: {e}", e)

    def _dump(self, item: Any) -> str:
        return self._adapter.dump_json(item, exclude={'id'}).decode('utf-8')

    def __repr__(self) -> str:
        return (
            f"SqliteDocumentPersistenceStrategy({str(self.database_path)!r}, "
            f"collection={self.collection_name!r})"
        )
