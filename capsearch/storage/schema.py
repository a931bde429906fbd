"""
SQLite schema for the master store.

Tables:
    groups  -- item owners (brands) with an optional per-page cap
    items   -- searchable catalog entries, one group each
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from capsearch.storage.connection import get_connection

logger = logging.getLogger(__name__)

# Bump when adding migrations.
SCHEMA_VERSION = 1

_GROUPS_DDL = """
CREATE TABLE IF NOT EXISTS groups (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    item_cap    INTEGER,
    created_at  TEXT NOT NULL
);
"""

_ITEMS_DDL = """
CREATE TABLE IF NOT EXISTS items (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    group_id         INTEGER NOT NULL,
    title            TEXT NOT NULL,
    keywords         TEXT DEFAULT '',
    country_iso      TEXT NOT NULL,
    start_date       TEXT NOT NULL,
    relevance_score  REAL DEFAULT 0.0,
    created_at       TEXT NOT NULL,
    FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE CASCADE
);
"""

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_items_group ON items(group_id);",
    "CREATE INDEX IF NOT EXISTS idx_items_country ON items(country_iso);",
    "CREATE INDEX IF NOT EXISTS idx_items_start_date ON items(start_date);",
    "CREATE INDEX IF NOT EXISTS idx_groups_cap ON groups(item_cap) WHERE item_cap IS NOT NULL;",
]


def initialize_database(db_path: Optional[Path] = None) -> None:
    """Create all tables and indexes. Safe to call repeatedly."""
    conn = get_connection(db_path)

    with conn:
        conn.execute(_GROUPS_DDL)
        conn.execute(_ITEMS_DDL)
        for idx_sql in _INDEXES:
            conn.execute(idx_sql)
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION}")

    logger.info("Database schema ready (version %d)", SCHEMA_VERSION)


def get_schema_version(db_path: Optional[Path] = None) -> int:
    row = get_connection(db_path).execute("PRAGMA user_version").fetchone()
    return row[0] if row else 0
