"""
Per-request wiring of token, cache and paginator.

    decode token -> check fingerprint -> pick offset
        -> cache hit, or assemble the page and cache it
        -> record the page's end offset -> encode token -> PageResult

The offset for page P is the end offset recorded for page P - 1 when
the token has one (exact sequential continuation), otherwise
(P - 1) * batch_size. The two can disagree after the catalog changes
between requests; the recorded value always wins.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from capsearch.config.settings import SearchSettings, get_settings
from capsearch.errors import RetrievalError
from capsearch.paging.cursor import CursorState, TokenCodec, query_fingerprint
from capsearch.paging.paginator import CappedPaginator, PageAssembly, batch_size_for
from capsearch.paging.result_cache import ResultCache, search_cache_key, search_cache_tags
from capsearch.search.candidate_source import Candidate, CandidateSource, SearchFilters

logger = logging.getLogger(__name__)


@dataclass
class PageResult:
    """One page of capped results plus what the client needs for the next request."""

    data: list[Candidate]
    current_page: int
    per_page: int
    total_pages_estimate: int
    continuation_token: str
    has_more: bool


@dataclass
class _CachedPage:
    items: list[Candidate]
    end_offset: int
    filled: bool

    def to_cache(self) -> dict[str, Any]:
        return {
            "items": [c.to_dict() for c in self.items],
            "end_offset": self.end_offset,
            "filled": self.filled,
        }

    @classmethod
    def from_cache(cls, value: dict[str, Any]) -> "_CachedPage":
        return cls(
            items=[Candidate.from_dict(row) for row in value["items"]],
            end_offset=value["end_offset"],
            filled=value["filled"],
        )

    @classmethod
    def from_assembly(cls, assembly: PageAssembly) -> "_CachedPage":
        return cls(items=assembly.items, end_offset=assembly.end_offset, filled=assembly.filled)


class PageOrchestrator:
    """Entry point of the search core: search() returns one PageResult."""

    def __init__(
        self,
        source: CandidateSource,
        paginator: CappedPaginator,
        codec: TokenCodec,
        cache: Optional[ResultCache] = None,
        settings: Optional[SearchSettings] = None,
    ) -> None:
        self._source = source
        self._paginator = paginator
        self._codec = codec
        self._cache = cache
        self._settings = settings or get_settings().search

    def search(
        self,
        keyword: str,
        filters: Optional[SearchFilters] = None,
        page: int = 1,
        page_size: Optional[int] = None,
        continuation_token: Optional[str] = None,
    ) -> PageResult:
        """
        Assemble page *page* of *keyword* under *filters*.

        Raises RetrievalError if the candidate source fails; every other
        problem (bad token, skewed groups, slow source) degrades to a
        valid, possibly short, page.
        """
        filters = filters or SearchFilters()
        if page_size is None:
            page_size = self._settings.default_page_size
        if page < 1 or page_size < 1:
            raise ValueError(f"page and page_size must be positive (got {page}, {page_size})")
        if page > self._settings.max_page:
            raise ValueError(f"page {page} exceeds the maximum of {self._settings.max_page}")

        fingerprint = query_fingerprint(keyword, filters)
        state = self._codec.decode(continuation_token).for_query(fingerprint)

        batch_size = batch_size_for(page_size, self._settings)
        offset = state.offset_after(page - 1)
        if offset is None:
            offset = (page - 1) * batch_size

        key = search_cache_key(keyword, filters, page, page_size, offset)
        cached = self._cache_get(key)
        if cached is None:
            assembly = self._paginator.assemble(keyword, filters, page_size, offset, batch_size)
            cached = _CachedPage.from_assembly(assembly)
            self._cache_put(key, cached, search_cache_tags(keyword, filters))

        state = state.with_offset(page, cached.end_offset)
        total_pages = self._estimate_total_pages(keyword, filters, batch_size)

        return PageResult(
            data=cached.items,
            current_page=page,
            per_page=page_size,
            total_pages_estimate=total_pages,
            continuation_token=self._codec.encode(state),
            has_more=cached.filled,
        )

    def _estimate_total_pages(self, keyword: str, filters: SearchFilters, batch_size: int) -> int:
        # Every page consumes at least one whole batch, so the ranking holds
        # at most one page per batch.
        try:
            total = self._source.count(keyword, filters)
        except Exception as exc:
            raise RetrievalError(f"Candidate count failed: {exc}") from exc
        if not total:
            return 0
        return min(math.ceil(total / batch_size), self._settings.max_page)

    def _cache_get(self, key: str) -> Optional[_CachedPage]:
        if self._cache is None or not self._cache.enabled:
            return None
        try:
            value = self._cache.get(key)
        except Exception:
            logger.exception("Result cache read failed for %s", key)
            return None
        if value is None:
            logger.debug("Result cache miss: %s", key)
            return None
        logger.debug("Result cache hit: %s", key)
        return _CachedPage.from_cache(value)

    def _cache_put(self, key: str, page: _CachedPage, tags: set[str]) -> None:
        if self._cache is None or not self._cache.enabled:
            return
        try:
            self._cache.put(key, page.to_cache(), tags=tags)
        except Exception:
            logger.exception("Result cache write failed for %s", key)
