"""
Candidate source: ranked, filtered, offset-windowed fetches.

The ordering is total and deterministic: text relevance desc, then the
item's editorial relevance weight desc, then item id asc. Repeated
fetches against the same index generation therefore agree on every
position, which is what lets the paginator address the ranking by
offset.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import Any, Optional, Protocol

from capsearch.errors import IndexNotReadyError
from capsearch.indexing.item_index import ItemIndex
from capsearch.preprocessing.pipeline import TextPreprocessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchFilters:
    """Recognized filters. Unset fields do not constrain the result."""

    country_iso: Optional[str] = None

    # Inclusive lower bound, YYYY-MM-DD
    start_date: Optional[str] = None

    def as_dict(self) -> dict[str, str]:
        """Set filters only, keys sorted; stable input for hashing."""
        return {k: v for k, v in sorted(asdict(self).items()) if v}

    def matches(self, country_iso: str, start_date: str) -> bool:
        if self.country_iso and country_iso != self.country_iso:
            return False
        if self.start_date and start_date < self.start_date:
            return False
        return True


@dataclass(frozen=True)
class Candidate:
    """One ranked item returned by a fetch."""

    item_id: int
    group_id: int
    score: float
    group_name: str = ""
    title: str = ""
    keywords: str = ""
    country_iso: str = ""
    start_date: str = ""
    relevance_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Candidate":
        return cls(**data)


class CandidateSource(Protocol):
    """What the paginator needs from a full-text index."""

    def fetch(self, keyword: str, filters: SearchFilters, offset: int, size: int) -> list[Candidate]:
        ...

    def count(self, keyword: str, filters: SearchFilters) -> int:
        ...


class IndexCandidateSource:
    """
    Candidate source backed by an in-process ItemIndex.

    Query tokens are matched typo-tolerantly unless fuzzy=False (see
    ItemIndex.expand_terms). The full ranking of a (keyword, filters) pair is memoized per index
    generation so the several fetches of one page assembly, and the
    pages that follow, do not re-score the corpus.
    """

    def __init__(
        self,
        index: Optional[ItemIndex] = None,
        preprocessor: Optional[TextPreprocessor] = None,
        max_memo_entries: int = 256,
        fuzzy: bool = True,
    ) -> None:
        self._index = index
        self._fuzzy = fuzzy
        self._preprocessor = preprocessor or TextPreprocessor()
        self._generation = 0
        self._max_memo_entries = max_memo_entries
        self._memo: OrderedDict[tuple, list[tuple[int, float]]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def index(self) -> Optional[ItemIndex]:
        return self._index

    def swap(self, index: ItemIndex) -> None:
        """Replace the served index. In-flight readers keep the old one."""
        with self._lock:
            self._index = index
            self._generation += 1
            self._memo.clear()
        logger.info("Candidate source now serving %d items (generation %d)", index.doc_count, self._generation)

    def _ranking(self, keyword: str, filters: SearchFilters) -> tuple[ItemIndex, list[tuple[int, float]]]:
        with self._lock:
            index = self._index
            generation = self._generation
        if index is None:
            raise IndexNotReadyError("Item index has not been built")

        tokens = tuple(sorted(set(self._preprocessor.preprocess(keyword))))
        key = (generation, tokens, tuple(filters.as_dict().items()))

        with self._lock:
            cached = self._memo.get(key)
            if cached is not None:
                self._memo.move_to_end(key)
                return index, cached

        items = index.items
        ranked = []
        for item_id, score in index.score(list(tokens), fuzzy=self._fuzzy).items():
            item = items[item_id]
            if filters.matches(item.country_iso, item.start_date):
                ranked.append((item_id, score))
        ranked.sort(key=lambda p: (-p[1], -items[p[0]].relevance_score, p[0]))

        with self._lock:
            if generation == self._generation:
                self._memo[key] = ranked
                while len(self._memo) > self._max_memo_entries:
                    self._memo.popitem(last=False)
        return index, ranked

    def fetch(self, keyword: str, filters: SearchFilters, offset: int, size: int) -> list[Candidate]:
        """Return at most *size* candidates starting at rank *offset*."""
        if size <= 0 or offset < 0:
            return []
        index, ranked = self._ranking(keyword, filters)

        window = []
        for item_id, score in ranked[offset: offset + size]:
            item = index.items[item_id]
            window.append(Candidate(
                item_id=item_id,
                group_id=item.group_id,
                score=round(score, 6),
                group_name=item.group_name,
                title=item.title,
                keywords=item.keywords,
                country_iso=item.country_iso,
                start_date=item.start_date,
                relevance_score=item.relevance_score,
            ))
        return window

    def count(self, keyword: str, filters: SearchFilters) -> int:
        """Number of candidates matching *keyword* and *filters*."""
        return len(self._ranking(keyword, filters)[1])
