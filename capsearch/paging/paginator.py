"""
Group-capped page assembly.

Turns the candidate source's relevance ranking into one page in which
no group holds more than its cap. Each page consumes whole fetch
batches: when the page fills in the middle of a batch, the rest of
that batch is dropped and the page ends at the batch boundary. That
keeps the offset reached by page N exactly where page N+1 starts, and
keeps the calculated offset of page P at (P - 1) * batch_size.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from capsearch.config.settings import SearchSettings, get_settings
from capsearch.errors import RetrievalError
from capsearch.paging.group_limits import GroupLimitResolver
from capsearch.search.candidate_source import Candidate, CandidateSource, SearchFilters

logger = logging.getLogger(__name__)


class StopReason(str, Enum):
    """Why the fetch loop ended."""

    FILLED = "filled"
    EXHAUSTED = "exhausted"
    ITERATION_CAP = "iteration_cap"
    TIME_BUDGET = "time_budget"


@dataclass
class PageAssembly:
    """Outcome of assembling one page."""

    items: list[Candidate]
    start_offset: int
    end_offset: int
    iterations: int
    stop_reason: StopReason
    group_counts: dict[int, int] = field(default_factory=dict)

    @property
    def filled(self) -> bool:
        return self.stop_reason is StopReason.FILLED


def batch_size_for(page_size: int, settings: SearchSettings) -> int:
    """Fetch size for a page size: a multiple of it, clamped to the configured window."""
    size = page_size * settings.fetch_multiplier
    size = max(settings.min_fetch_size, min(size, settings.max_fetch_size))
    return max(size, page_size)


class CappedPaginator:
    """Fills a page from successive candidate batches, honouring group caps."""

    def __init__(
        self,
        source: CandidateSource,
        resolver: GroupLimitResolver,
        settings: Optional[SearchSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._resolver = resolver
        self._settings = settings or get_settings().search
        self._clock = clock

    def assemble(
        self,
        keyword: str,
        filters: SearchFilters,
        page_size: int,
        offset: int,
        batch_size: Optional[int] = None,
    ) -> PageAssembly:
        """
        Build one page starting at fetch *offset*.

        Stops when the page is full, the source runs dry, `max_iterations`
        fetches have been made, or the wall-clock budget is spent. Only a
        failing fetch raises (RetrievalError); every other stop yields a
        possibly short page.
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        batch_size = batch_size or batch_size_for(page_size, self._settings)

        deadline = self._clock() + self._settings.time_budget_seconds
        counts: dict[int, int] = {}
        items: list[Candidate] = []
        start_offset = offset
        iterations = 0

        while True:
            if iterations >= self._settings.max_iterations:
                reason = StopReason.ITERATION_CAP
                break
            if iterations and self._clock() >= deadline:
                reason = StopReason.TIME_BUDGET
                break

            iterations += 1
            try:
                batch = self._source.fetch(keyword, filters, offset, batch_size)
            except Exception as exc:
                raise RetrievalError(f"Candidate fetch failed at offset {offset}: {exc}", offset=offset) from exc

            if not batch:
                reason = StopReason.EXHAUSTED
                break

            for candidate in batch:
                taken = counts.get(candidate.group_id, 0)
                if taken >= self._resolver.cap(candidate.group_id):
                    continue
                items.append(candidate)
                counts[candidate.group_id] = taken + 1
                if len(items) >= page_size:
                    break

            offset += batch_size

            if len(items) >= page_size:
                reason = StopReason.FILLED
                break
            if len(batch) < batch_size:
                reason = StopReason.EXHAUSTED
                break

        if reason in (StopReason.ITERATION_CAP, StopReason.TIME_BUDGET):
            logger.warning(
                "Page for %r stopped short (%s): %d/%d items after %d fetches from offset %d",
                keyword, reason.value, len(items), page_size, iterations, start_offset,
            )
        else:
            logger.debug(
                "Page for %r %s: %d items, %d fetches, offsets %d -> %d",
                keyword, reason.value, len(items), iterations, start_offset, offset,
            )

        return PageAssembly(
            items=items,
            start_offset=start_offset,
            end_offset=offset,
            iterations=iterations,
            stop_reason=reason,
            group_counts=counts,
        )
