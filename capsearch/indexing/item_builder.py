"""Builds the item index from the master store."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from capsearch.config.settings import BM25Settings, Settings, get_settings
from capsearch.indexing.item_index import IndexedItem, ItemIndex
from capsearch.preprocessing.pipeline import TextPreprocessor
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore

logger = logging.getLogger(__name__)


class ItemIndexBuilder:
    """Reads every item, tokenizes title and keywords, and persists the index."""

    def __init__(
        self,
        item_store: Optional[ItemStore] = None,
        group_store: Optional[GroupStore] = None,
        bm25_settings: Optional[BM25Settings] = None,
        index_path: Optional[Path] = None,
        preprocessor: Optional[TextPreprocessor] = None,
    ) -> None:
        settings: Settings = get_settings()
        self._item_store = item_store or ItemStore()
        self._group_store = group_store or GroupStore()
        self._bm25_settings = bm25_settings or settings.bm25
        self._index_path = index_path or settings.index_path
        self._preprocessor = preprocessor or TextPreprocessor(settings.preprocessing)

    @property
    def index_path(self) -> Path:
        return self._index_path

    def build_index(self) -> ItemIndex:
        """Build an in-memory index of the current master store contents."""
        group_names = {g.id: g.name for g in self._group_store.list_all()}

        documents = []
        for item in self._item_store.iter_all():
            indexed = IndexedItem(
                item_id=item.id,
                group_id=item.group_id,
                group_name=group_names.get(item.group_id, "Unknown"),
                title=item.title,
                keywords=item.keywords,
                country_iso=item.country_iso,
                start_date=item.start_date,
                relevance_score=float(item.relevance_score),
            )
            documents.append((
                indexed,
                self._preprocessor.preprocess(item.title),
                self._preprocessor.preprocess(item.keywords),
            ))

        index = ItemIndex(
            k1=self._bm25_settings.k1,
            b=self._bm25_settings.b,
            title_boost=self._bm25_settings.title_boost,
        )
        index.build(documents)
        return index

    def rebuild(self) -> tuple[ItemIndex, dict]:
        """Build, persist, and return the index with a summary dict."""
        started = time.monotonic()
        index = self.build_index()
        index.save(self._index_path)
        elapsed = time.monotonic() - started

        logger.info(
            "Built item index: %d items, %d terms in %.2fs -> %s",
            index.doc_count, len(index.postings), elapsed, self._index_path,
        )
        return index, {
            "doc_count": index.doc_count,
            "term_count": len(index.postings),
            "file_path": str(self._index_path),
            "seconds": round(elapsed, 3),
        }
