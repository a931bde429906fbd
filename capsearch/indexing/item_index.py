"""Field-weighted BM25 inverted index over catalog items."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

import msgpack
from nltk.metrics.distance import edit_distance

FORMAT_VERSION = 1

# Query terms that differ from an indexed term only by a typo share this
# many leading characters with it
FUZZY_PREFIX_LENGTH = 1

# Score multiplier for a typo-corrected term relative to an exact match
FUZZY_TERM_WEIGHT = 0.5


def max_edits_for(term: str) -> int:
    """Allowed edit distance by term length: 0 up to 2 chars, 1 up to 5, then 2."""
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


@dataclass(frozen=True)
class IndexedItem:
    """
    The searchable projection of an item, denormalized with its group name.

    This is what the index hands back to the candidate source; the master
    store is not consulted at query time.
    """

    item_id: int
    group_id: int
    group_name: str
    title: str
    keywords: str
    country_iso: str
    start_date: str
    relevance_score: float


class ItemIndex:
    """
    In-memory BM25 index with msgpack persistence.

    Title terms are weighted by `title_boost` when computing term
    frequency and document length; keyword terms count once.
    """

    def __init__(self, k1: float = 1.2, b: float = 0.75, title_boost: float = 2.0) -> None:
        self.k1 = k1
        self.b = b
        self.title_boost = title_boost
        self.postings: dict[str, dict[int, float]] = {}
        self.doc_lengths: dict[int, float] = {}
        self.items: dict[int, IndexedItem] = {}
        self.avg_doc_len: float = 0.0
        self._terms_by_prefix: Optional[dict[str, list[str]]] = None

    @property
    def doc_count(self) -> int:
        return len(self.items)

    def build(self, documents: list[tuple[IndexedItem, list[str], list[str]]]) -> None:
        """Build postings from (item, title_tokens, keyword_tokens) triples."""
        self.postings = {}
        self.doc_lengths = {}
        self.items = {}
        self._terms_by_prefix = None

        total_len = 0.0
        for item, title_tokens, keyword_tokens in documents:
            weights: dict[str, float] = {}
            for token in title_tokens:
                weights[token] = weights.get(token, 0.0) + self.title_boost
            for token in keyword_tokens:
                weights[token] = weights.get(token, 0.0) + 1.0

            length = sum(weights.values())
            self.items[item.item_id] = item
            self.doc_lengths[item.item_id] = length
            total_len += length

            for term, tf in weights.items():
                self.postings.setdefault(term, {})[item.item_id] = tf

        self.avg_doc_len = (total_len / self.doc_count) if self.doc_count else 0.0

    def _vocabulary_by_prefix(self) -> dict[str, list[str]]:
        if self._terms_by_prefix is None:
            buckets: dict[str, list[str]] = {}
            for term in self.postings:
                buckets.setdefault(term[:FUZZY_PREFIX_LENGTH], []).append(term)
            self._terms_by_prefix = buckets
        return self._terms_by_prefix

    def expand_terms(self, query_tokens: list[str]) -> dict[str, float]:
        """
        Map each query token to the indexed terms it may stand for.

        Exact terms weigh 1.0. Indexed terms within max_edits_for(token)
        edits that share the first FUZZY_PREFIX_LENGTH characters weigh
        FUZZY_TERM_WEIGHT, so "snaker" still reaches "sneaker".
        """
        weights: dict[str, float] = {}
        vocabulary = self._vocabulary_by_prefix()
        for token in set(query_tokens):
            if token in self.postings:
                weights[token] = 1.0
            max_edits = max_edits_for(token)
            if not max_edits:
                continue
            for term in vocabulary.get(token[:FUZZY_PREFIX_LENGTH], ()):
                if term == token or abs(len(term) - len(token)) > max_edits:
                    continue
                if edit_distance(token, term) <= max_edits:
                    weights[term] = max(weights.get(term, 0.0), FUZZY_TERM_WEIGHT)
        return weights

    def score(self, query_tokens: list[str], fuzzy: bool = False) -> dict[int, float]:
        """
        BM25 score of every document matching at least one query token.

        With fuzzy=True the tokens are first widened by expand_terms().
        """
        if not query_tokens or self.doc_count == 0:
            return {}

        if fuzzy:
            term_weights = self.expand_terms(query_tokens)
        else:
            term_weights = {t: 1.0 for t in query_tokens}

        scores: dict[int, float] = {}
        for term, weight in term_weights.items():
            posting = self.postings.get(term)
            if not posting:
                continue

            df = len(posting)
            idf = math.log(1.0 + ((self.doc_count - df + 0.5) / (df + 0.5)))

            for item_id, tf in posting.items():
                dl = self.doc_lengths.get(item_id, 0.0)
                norm = (1.0 - self.b) + self.b * (dl / self.avg_doc_len) if self.avg_doc_len > 0 else 1.0
                tf_weight = (tf * (self.k1 + 1.0)) / (tf + self.k1 * norm)
                scores[item_id] = scores.get(item_id, 0.0) + weight * idf * tf_weight

        return scores

    def save(self, file_path: Path) -> None:
        """Persist index to a msgpack file."""
        file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "format": FORMAT_VERSION,
            "k1": self.k1,
            "b": self.b,
            "title_boost": self.title_boost,
            "postings": [
                [term, list(doc_tfs.items())] for term, doc_tfs in self.postings.items()
            ],
            "doc_lengths": list(self.doc_lengths.items()),
            "items": [asdict(item) for item in self.items.values()],
        }
        file_path.write_bytes(msgpack.packb(payload, use_bin_type=True))

    @classmethod
    def load(
        cls,
        file_path: Path,
        k1: Optional[float] = None,
        b: Optional[float] = None,
    ) -> "ItemIndex":
        """Load index from a msgpack file."""
        payload = msgpack.unpackb(file_path.read_bytes(), raw=False)
        if payload.get("format") != FORMAT_VERSION:
            raise ValueError(f"Unsupported index format in {file_path}: {payload.get('format')}")

        index = cls(
            k1=payload["k1"] if k1 is None else k1,
            b=payload["b"] if b is None else b,
            title_boost=payload["title_boost"],
        )
        index.postings = {
            term: {int(item_id): float(tf) for item_id, tf in doc_tfs}
            for term, doc_tfs in payload["postings"]
        }
        index.doc_lengths = {int(item_id): float(v) for item_id, v in payload["doc_lengths"]}
        index.items = {row["item_id"]: IndexedItem(**row) for row in payload["items"]}
        index.avg_doc_len = (
            sum(index.doc_lengths.values()) / len(index.doc_lengths) if index.doc_lengths else 0.0
        )
        return index
