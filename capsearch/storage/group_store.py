"""
CRUD operations for the groups table.

Besides plain CRUD this store is the Group Limit Table consumed by the
cap resolver: load_all_overrides() returns a consistent snapshot of
every explicit cap. Listeners registered with add_listener() are told
whenever a cap is created, changed or removed so memoized lookups can
be dropped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from capsearch.storage.connection import get_connection
from capsearch.storage.models import Group

logger = logging.getLogger(__name__)

# (group_id, old_cap, new_cap)
CapListener = Callable[[int, Optional[int], Optional[int]], None]


class GroupStore:
    """CRUD interface for the groups table."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._db_path = db_path
        self._listeners: list[CapListener] = []

    @property
    def _conn(self):
        return get_connection(self._db_path)

    def add_listener(self, listener: CapListener) -> None:
        self._listeners.append(listener)

    def _notify(self, group_id: int, old_cap: Optional[int], new_cap: Optional[int]) -> None:
        for listener in self._listeners:
            listener(group_id, old_cap, new_cap)

    def _row_to_group(self, row) -> Group:
        return Group(
            id=row["id"],
            name=row["name"],
            item_cap=row["item_cap"],
            created_at=row["created_at"],
        )

    # ----- Write operations -----

    def insert(self, group: Group) -> int:
        """Insert a group. Returns the generated ID."""
        with self._conn:
            cursor = self._conn.execute(
                "INSERT INTO groups (name, item_cap, created_at) VALUES (?, ?, ?)",
                (group.name, group.item_cap, group.created_at),
            )
        group_id = cursor.lastrowid
        logger.debug("Inserted group %d (%s)", group_id, group.name)
        if group.item_cap is not None:
            self._notify(group_id, None, group.item_cap)
        return group_id

    def set_cap(self, group_id: int, item_cap: Optional[int]) -> bool:
        """
        Set or clear (None) the per-page cap of a group.

        Returns False if the group does not exist. Listeners fire only
        when the value actually changes.
        """
        current = self.get_by_id(group_id)
        if current is None:
            return False

        if current.item_cap == item_cap:
            return True

        with self._conn:
            self._conn.execute(
                "UPDATE groups SET item_cap = ? WHERE id = ?", (item_cap, group_id)
            )
        logger.info(
            "Group %d cap changed: %s -> %s", group_id, current.item_cap, item_cap,
        )
        self._notify(group_id, current.item_cap, item_cap)
        return True

    def clear_cap(self, group_id: int) -> bool:
        return self.set_cap(group_id, None)

    def delete(self, group_id: int) -> bool:
        """Delete a group (and, by cascade, its items)."""
        current = self.get_by_id(group_id)
        if current is None:
            return False
        with self._conn:
            self._conn.execute("DELETE FROM groups WHERE id = ?", (group_id,))
        logger.info("Deleted group %d", group_id)
        self._notify(group_id, current.item_cap, None)
        return True

    # ----- Read operations -----

    def get_by_id(self, group_id: int) -> Optional[Group]:
        row = self._conn.execute(
            "SELECT * FROM groups WHERE id = ?", (group_id,)
        ).fetchone()
        return self._row_to_group(row) if row else None

    def get_by_ids(self, group_ids: list[int]) -> list[Group]:
        if not group_ids:
            return []
        placeholders = ",".join("?" for _ in group_ids)
        rows = self._conn.execute(
            f"SELECT * FROM groups WHERE id IN ({placeholders})", group_ids
        ).fetchall()
        return [self._row_to_group(r) for r in rows]

    def list_all(self) -> list[Group]:
        rows = self._conn.execute("SELECT * FROM groups ORDER BY id").fetchall()
        return [self._row_to_group(r) for r in rows]

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) AS cnt FROM groups").fetchone()
        return row["cnt"]

    def load_all_overrides(self) -> dict[int, int]:
        """Snapshot of every explicit cap, read in a single statement."""
        rows = self._conn.execute(
            "SELECT id, item_cap FROM groups WHERE item_cap IS NOT NULL"
        ).fetchall()
        return {r["id"]: r["item_cap"] for r in rows}
