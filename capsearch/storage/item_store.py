"""
CRUD operations for the items table.

Mutation listeners receive (old, new) item pairs: old is None on
create, new is None on delete. They are how the result cache learns
that cached pages may be stale.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional

from capsearch.storage.connection import get_connection
from capsearch.storage.models import Item

logger = logging.getLogger(__name__)

ItemListener = Callable[[Optional[Item], Optional[Item]], None]

_INSERT_SQL = """
    INSERT INTO items
        (group_id, title, keywords, country_iso, start_date, relevance_score, created_at)
    VALUES (?, ?, ?, ?, ?, ?, ?)
"""


def _item_params(item: Item) -> tuple:
    return (
        item.group_id,
        item.title,
        item.keywords,
        item.country_iso,
        item.start_date,
        item.relevance_score,
        item.created_at,
    )


class ItemStore:
    """CRUD interface for the items table."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._db_path = db_path
        self._listeners: list[ItemListener] = []

    @property
    def _conn(self):
        return get_connection(self._db_path)

    def add_listener(self, listener: ItemListener) -> None:
        self._listeners.append(listener)

    def _notify(self, old: Optional[Item], new: Optional[Item]) -> None:
        for listener in self._listeners:
            listener(old, new)

    def _row_to_item(self, row) -> Item:
        return Item(
            id=row["id"],
            group_id=row["group_id"],
            title=row["title"],
            keywords=row["keywords"] or "",
            country_iso=row["country_iso"],
            start_date=row["start_date"],
            relevance_score=row["relevance_score"],
            created_at=row["created_at"],
        )

    # ----- Write operations -----

    def insert(self, item: Item) -> int:
        """Insert one item and return its ID."""
        with self._conn:
            cursor = self._conn.execute(_INSERT_SQL, _item_params(item))
        item.id = cursor.lastrowid
        logger.debug("Inserted item %d (group %d)", item.id, item.group_id)
        self._notify(None, item)
        return item.id

    def insert_many(self, items: list[Item]) -> int:
        """
        Bulk insert for seeding and imports. Listeners are not called
        per row; callers rebuild the index and flush caches afterwards.
        """
        with self._conn:
            cursor = self._conn.executemany(_INSERT_SQL, [_item_params(i) for i in items])
        logger.info("Bulk insert: %d items", cursor.rowcount)
        return cursor.rowcount

    def update(self, item: Item) -> bool:
        """Replace all mutable columns of an existing item."""
        if item.id is None:
            raise ValueError("Cannot update an item without an id")
        old = self.get_by_id(item.id)
        if old is None:
            return False
        with self._conn:
            self._conn.execute(
                """
                UPDATE items SET group_id = ?, title = ?, keywords = ?, country_iso = ?,
                    start_date = ?, relevance_score = ?
                WHERE id = ?
                """,
                (
                    item.group_id, item.title, item.keywords, item.country_iso,
                    item.start_date, item.relevance_score, item.id,
                ),
            )
        self._notify(old, item)
        return True

    def delete(self, item_id: int) -> bool:
        old = self.get_by_id(item_id)
        if old is None:
            return False
        with self._conn:
            self._conn.execute("DELETE FROM items WHERE id = ?", (item_id,))
        self._notify(old, None)
        return True

    # ----- Read operations -----

    def get_by_id(self, item_id: int) -> Optional[Item]:
        row = self._conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        return self._row_to_item(row) if row else None

    def get_by_ids(self, item_ids: list[int]) -> list[Item]:
        """Fetch multiple items by ID. Returns in arbitrary order."""
        if not item_ids:
            return []
        placeholders = ",".join("?" for _ in item_ids)
        rows = self._conn.execute(
            f"SELECT * FROM items WHERE id IN ({placeholders})", item_ids
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def iter_all(self, chunk_size: int = 500) -> Iterator[Item]:
        """Yield every item ordered by ID, reading in chunks."""
        last_id = 0
        while True:
            rows = self._conn.execute(
                "SELECT * FROM items WHERE id > ? ORDER BY id LIMIT ?",
                (last_id, chunk_size),
            ).fetchall()
            if not rows:
                return
            for row in rows:
                yield self._row_to_item(row)
            last_id = rows[-1]["id"]

    def count(self, group_id: Optional[int] = None) -> int:
        if group_id is not None:
            row = self._conn.execute(
                "SELECT COUNT(*) AS cnt FROM items WHERE group_id = ?", (group_id,)
            ).fetchone()
        else:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM items").fetchone()
        return row["cnt"]
