"""
SQLite connection factory.

All master-store access goes through get_connection(). One connection
is kept per database path, opened in WAL mode so readers are not
blocked by a writer, with foreign keys enforced.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from capsearch.config.settings import get_settings

logger = logging.getLogger(__name__)

_lock = threading.Lock()

_connections: dict[str, sqlite3.Connection] = {}


def _resolve(db_path: Optional[Path]) -> Path:
    return db_path if db_path is not None else get_settings().db_path


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """
    Return the shared connection for *db_path* (default: settings.db_path).

    The connection is created on first use and reused afterwards.
    """
    path = _resolve(db_path)
    db_key = str(path)

    with _lock:
        conn = _connections.get(db_key)
        if conn is not None:
            return conn

        path.parent.mkdir(parents=True, exist_ok=True)
        storage = get_settings().storage

        conn = sqlite3.connect(db_key, check_same_thread=False, timeout=10.0)
        conn.execute(f"PRAGMA journal_mode={storage.journal_mode}")
        conn.execute(f"PRAGMA busy_timeout={storage.busy_timeout_ms}")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.row_factory = sqlite3.Row

        _connections[db_key] = conn
        logger.info("Opened SQLite database %s (%s)", path, storage.journal_mode)
        return conn


def close_connection(db_path: Optional[Path] = None) -> None:
    """Close the connection for *db_path*. Used by tests and shutdown hooks."""
    db_key = str(_resolve(db_path))
    with _lock:
        conn = _connections.pop(db_key, None)
    if conn is not None:
        conn.close()
        logger.info("Closed SQLite database %s", db_key)


def close_all_connections() -> None:
    with _lock:
        conns = list(_connections.values())
        _connections.clear()
    for conn in conns:
        conn.close()
