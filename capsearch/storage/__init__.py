from capsearch.storage.models import Group, Item
from capsearch.storage.connection import get_connection, close_connection
from capsearch.storage.schema import initialize_database
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore

__all__ = [
    "Group",
    "Item",
    "get_connection",
    "close_connection",
    "initialize_database",
    "GroupStore",
    "ItemStore",
]
