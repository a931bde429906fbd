"""Keeps cached pages and cap snapshots in step with master store mutations."""

from __future__ import annotations

import logging
from typing import Optional

from capsearch.paging.group_limits import GroupLimitResolver
from capsearch.paging.result_cache import ALL_SEARCHES_TAG, ResultCache, tags_for_item
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore
from capsearch.storage.models import Item

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Store listener that flushes whatever a mutation may have made stale."""

    def __init__(self, cache: ResultCache, resolver: GroupLimitResolver) -> None:
        self._cache = cache
        self._resolver = resolver

    def on_item_changed(self, old: Optional[Item], new: Optional[Item]) -> None:
        # Old and new values both matter: an update may move an item out
        # of one country or month and into another.
        tags: set[str] = set()
        for item in (old, new):
            if item is not None:
                tags |= tags_for_item(item)
        changed = new or old
        logger.debug("Item %s changed; flushing %d cache tags", changed.id if changed else None, len(tags))
        self._cache.invalidate(tags)

    def on_group_cap_changed(self, group_id: int, old_cap: Optional[int], new_cap: Optional[int]) -> None:
        self._resolver.on_cap_changed(group_id, old_cap, new_cap)
        self._cache.invalidate({ALL_SEARCHES_TAG})


def wire_invalidation(
    item_store: ItemStore,
    group_store: GroupStore,
    cache: ResultCache,
    resolver: GroupLimitResolver,
) -> CacheInvalidator:
    """Register a CacheInvalidator on both stores and return it."""
    invalidator = CacheInvalidator(cache, resolver)
    item_store.add_listener(invalidator.on_item_changed)
    group_store.add_listener(invalidator.on_group_cap_changed)
    return invalidator
