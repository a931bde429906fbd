"""
Tagged TTL cache for assembled pages.

Keys and tags follow one scheme:

    key   search:results:<md5 of keyword, filters, page, per_page, offset>
    tags  search
          search:keyword:<normalized keyword>
          search:country_iso:<CC>
          search:date:<YYYY-MM>

Flushing a tag drops every entry carrying it. Item changes flush the
tags derived from the item's fields (see tags_for_item).
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from capsearch.preprocessing.pipeline import is_stopword, normalize_words
from capsearch.search.candidate_source import SearchFilters
from capsearch.storage.models import Item

logger = logging.getLogger(__name__)

ALL_SEARCHES_TAG = "search"

_MAX_ITEM_WORD_TAGS = 10


def normalize_keyword(keyword: str) -> str:
    return keyword.strip().lower()


def search_cache_key(
    keyword: str,
    filters: SearchFilters,
    page: int,
    per_page: int,
    offset: Optional[int] = None,
) -> str:
    blob = json.dumps(
        {
            "keyword": normalize_keyword(keyword),
            "filters": filters.as_dict(),
            "page": page,
            "per_page": per_page,
            "offset": offset,
        },
        sort_keys=True,
    )
    return "search:results:" + hashlib.md5(blob.encode("utf-8")).hexdigest()


def search_cache_tags(keyword: str, filters: SearchFilters) -> set[str]:
    tags = {ALL_SEARCHES_TAG}
    normalized = normalize_keyword(keyword)
    if normalized:
        tags.add(f"search:keyword:{normalized}")
    if filters.country_iso:
        tags.add(f"search:country_iso:{filters.country_iso}")
    if filters.start_date:
        tags.add(f"search:date:{filters.start_date[:7]}")
    return tags


def significant_words(*texts: str) -> list[str]:
    """Distinct words of 3+ characters, stopwords removed, longest first (max 10)."""
    words = {
        w for text in texts for w in normalize_words(text)
        if len(w) >= 3 and not is_stopword(w)
    }
    return sorted(words, key=lambda w: (-len(w), w))[:_MAX_ITEM_WORD_TAGS]


def tags_for_item(item: Item) -> set[str]:
    """Tags of cached searches that a change to *item* may affect."""
    tags = {ALL_SEARCHES_TAG}
    if item.country_iso:
        tags.add(f"search:country_iso:{item.country_iso}")
    if item.start_date:
        tags.add(f"search:date:{item.start_date[:7]}")
    for word in significant_words(item.title, item.keywords):
        tags.add(f"search:keyword:{word}")
    return tags


@dataclass
class _Entry:
    value: Any
    expires_at: float
    tags: frozenset[str]


class ResultCache:
    """Thread-safe in-process cache with per-entry TTL and tag invalidation."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._tag_index: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._default_ttl > 0 and self._max_entries > 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                self._remove(key)
                return None
            return entry.value

    def put(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        tags: Iterable[str] = (),
    ) -> None:
        ttl = self._default_ttl if ttl is None else ttl
        if ttl <= 0 or self._max_entries <= 0:
            return

        entry = _Entry(value=value, expires_at=self._clock() + ttl, tags=frozenset(tags))
        with self._lock:
            if key in self._entries:
                self._remove(key)
            elif len(self._entries) >= self._max_entries:
                self._make_room()
            self._entries[key] = entry
            for tag in entry.tags:
                self._tag_index.setdefault(tag, set()).add(key)

    def invalidate(self, tags: Iterable[str]) -> int:
        """Remove every entry carrying any of *tags*. Returns the count removed."""
        tags = set(tags)
        with self._lock:
            keys = set()
            for tag in tags:
                keys |= self._tag_index.get(tag, set())
            for key in keys:
                self._remove(key)
        if keys:
            logger.info("Invalidated %d cached pages for tags %s", len(keys), sorted(tags))
        return len(keys)

    def invalidate_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._tag_index.clear()
        logger.info("Flushed result cache (%d entries)", count)
        return count

    def evict_expired(self) -> int:
        with self._lock:
            return self._evict_expired()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # Callers hold self._lock for everything below.

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(key)
            if not keys:
                del self._tag_index[tag]

    def _evict_expired(self) -> int:
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in stale:
            self._remove(key)
        return len(stale)

    def _make_room(self) -> None:
        if self._evict_expired():
            return
        # Oldest insertion first
        self._remove(next(iter(self._entries)))
