"""Builds the full search stack from settings; shared by the API and the CLIs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from capsearch.config.settings import Settings, get_settings
from capsearch.indexing.item_builder import ItemIndexBuilder
from capsearch.indexing.item_index import ItemIndex
from capsearch.paging.cursor import TokenCodec
from capsearch.paging.group_limits import GroupLimitResolver
from capsearch.paging.invalidation import wire_invalidation
from capsearch.paging.orchestrator import PageOrchestrator
from capsearch.paging.paginator import CappedPaginator
from capsearch.paging.result_cache import ResultCache
from capsearch.preprocessing.pipeline import TextPreprocessor
from capsearch.search.candidate_source import IndexCandidateSource
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore

logger = logging.getLogger(__name__)


@dataclass
class SearchCore:
    """Every long-lived component of one process."""

    settings: Settings
    item_store: ItemStore
    group_store: GroupStore
    source: IndexCandidateSource
    builder: ItemIndexBuilder
    resolver: GroupLimitResolver
    cache: ResultCache
    orchestrator: PageOrchestrator

    def rebuild_index(self) -> dict:
        """Rebuild from the master store, serve the new index, flush cached pages."""
        index, summary = self.builder.rebuild()
        self.source.swap(index)
        self.cache.invalidate_all()
        return summary


def _load_or_build(builder: ItemIndexBuilder, settings: Settings) -> ItemIndex:
    path: Path = builder.index_path
    if path.exists():
        try:
            index = ItemIndex.load(path, k1=settings.bm25.k1, b=settings.bm25.b)
            logger.info("Loaded item index from %s (%d items)", path, index.doc_count)
            return index
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Could not load item index %s, rebuilding: %s", path, exc)
    index, _ = builder.rebuild()
    return index


def build_search_core(
    settings: Optional[Settings] = None,
    db_path: Optional[Path] = None,
    load_index: bool = True,
) -> SearchCore:
    """
    Wire stores, index, resolver, cache and orchestrator together.

    With load_index=False the candidate source starts empty; call
    SearchCore.rebuild_index() before searching.
    """
    settings = settings or get_settings()
    db_path = db_path or settings.db_path

    item_store = ItemStore(db_path)
    group_store = GroupStore(db_path)
    preprocessor = TextPreprocessor(settings.preprocessing)

    builder = ItemIndexBuilder(
        item_store=item_store,
        group_store=group_store,
        bm25_settings=settings.bm25,
        index_path=settings.index_path,
        preprocessor=preprocessor,
    )
    source = IndexCandidateSource(
        index=_load_or_build(builder, settings) if load_index else None,
        preprocessor=preprocessor,
        fuzzy=settings.search.fuzzy_matching,
    )

    resolver = GroupLimitResolver(
        table=group_store,
        default_cap=settings.search.default_group_cap,
        refresh_ttl=settings.group_caps.refresh_ttl,
    )
    cache = ResultCache(
        default_ttl=settings.cache.ttl_seconds,
        max_entries=settings.cache.max_entries,
    )
    wire_invalidation(item_store, group_store, cache, resolver)

    codec = TokenCodec(
        secret_key=settings.token.secret_key,
        version=settings.token.version,
        max_page=settings.search.max_page,
    )
    paginator = CappedPaginator(source, resolver, settings.search)
    orchestrator = PageOrchestrator(source, paginator, codec, cache, settings.search)

    return SearchCore(
        settings=settings,
        item_store=item_store,
        group_store=group_store,
        source=source,
        builder=builder,
        resolver=resolver,
        cache=cache,
        orchestrator=orchestrator,
    )
