from capsearch.indexing.item_index import IndexedItem, ItemIndex
from capsearch.indexing.item_builder import ItemIndexBuilder

__all__ = [
    "IndexedItem",
    "ItemIndex",
    "ItemIndexBuilder",
]
