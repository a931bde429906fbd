"""
Shared test fixtures for the capsearch test suite.

Every test that touches storage gets its own SQLite file under pytest's
tmp_path with the schema already created. Paging tests use the
in-memory fakes at the bottom of this module instead of a real index.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from capsearch.search.candidate_source import Candidate, SearchFilters
from capsearch.storage.connection import close_connection, get_connection
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore
from capsearch.storage.models import Group, Item
from capsearch.storage.schema import initialize_database


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_capsearch.db"


@pytest.fixture
def db(db_path: Path):
    """Initialized database connection, closed after the test."""
    initialize_database(db_path)
    conn = get_connection(db_path)
    yield conn
    close_connection(db_path)


@pytest.fixture
def group_store(db, db_path: Path) -> GroupStore:
    return GroupStore(db_path)


@pytest.fixture
def item_store(db, db_path: Path) -> ItemStore:
    return ItemStore(db_path)


# ---------------------------------------------------------------------------
# Sample data factories
# ---------------------------------------------------------------------------


def make_group(name: str = "Nike", item_cap: Optional[int] = None, **kwargs) -> Group:
    return Group(name=name, item_cap=item_cap, **kwargs)


def make_item(
    group_id: int = 1,
    title: str = "Nike Air Sneakers",
    keywords: str = "sneakers, running, shoes",
    **kwargs,
) -> Item:
    """Create an Item with sensible defaults. Override any field via kwargs."""
    defaults = dict(
        group_id=group_id,
        title=title,
        keywords=keywords,
        country_iso="US",
        start_date="2026-01-15",
        relevance_score=0.5,
    )
    defaults.update(kwargs)
    return Item(**defaults)


def make_candidates(group_ids: list[int]) -> list[Candidate]:
    """
    One candidate per entry, in rank order.

    Item ids are 1-based ranks, so ascending ids mean preserved order.
    """
    total = len(group_ids)
    return [
        Candidate(item_id=rank, group_id=gid, score=float(total - rank + 1), group_name=f"g{gid}")
        for rank, gid in enumerate(group_ids, start=1)
    ]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class ListCandidateSource:
    """Candidate source over a fixed ranked list; records every call."""

    def __init__(self, candidates: list[Candidate], on_fetch=None) -> None:
        self.candidates = list(candidates)
        self.fetch_calls: list[tuple[str, int, int]] = []
        self.count_calls = 0
        self.error: Optional[Exception] = None
        self._on_fetch = on_fetch

    def fetch(self, keyword: str, filters: SearchFilters, offset: int, size: int) -> list[Candidate]:
        self.fetch_calls.append((keyword, offset, size))
        if self._on_fetch is not None:
            self._on_fetch()
        if self.error is not None:
            raise self.error
        return self.candidates[offset: offset + size]

    def count(self, keyword: str, filters: SearchFilters) -> int:
        self.count_calls += 1
        if self.error is not None:
            raise self.error
        return len(self.candidates)


class StaticCapTable:
    """Group limit table returning a fixed mapping; counts loads."""

    def __init__(self, overrides: Optional[dict] = None) -> None:
        self.overrides = dict(overrides or {})
        self.loads = 0

    def load_all_overrides(self) -> dict:
        self.loads += 1
        return dict(self.overrides)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
