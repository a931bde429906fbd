"""Tests for ItemStore CRUD and mutation listeners."""

from __future__ import annotations

import pytest

from capsearch.storage.item_store import ItemStore
from tests.conftest import make_group, make_item


@pytest.fixture
def group_id(group_store) -> int:
    return group_store.insert(make_group("Nike"))


class TestInsertAndRead:
    def test_insert_sets_id(self, item_store: ItemStore, group_id: int):
        item = make_item(group_id=group_id, title="Air Max")
        item_id = item_store.insert(item)

        assert item.id == item_id
        stored = item_store.get_by_id(item_id)
        assert stored.title == "Air Max"
        assert stored.country_iso == "US"
        assert stored.start_date == "2026-01-15"

    def test_insert_many(self, item_store: ItemStore, group_id: int):
        assert item_store.insert_many([make_item(group_id=group_id) for _ in range(5)]) == 5
        assert item_store.count() == 5
        assert item_store.count(group_id=group_id) == 5
        assert item_store.count(group_id=group_id + 1) == 0

    def test_iter_all_is_ordered_across_chunks(self, item_store: ItemStore, group_id: int):
        item_store.insert_many([make_item(group_id=group_id, title=f"Item {i}") for i in range(7)])
        ids = [item.id for item in item_store.iter_all(chunk_size=3)]
        assert ids == sorted(ids)
        assert len(ids) == 7

    def test_get_by_ids(self, item_store: ItemStore, group_id: int):
        a = item_store.insert(make_item(group_id=group_id))
        b = item_store.insert(make_item(group_id=group_id))
        assert {i.id for i in item_store.get_by_ids([a, b, 999])} == {a, b}
        assert item_store.get_by_ids([]) == []


class TestMutations:
    def test_update(self, item_store: ItemStore, group_id: int):
        item = make_item(group_id=group_id)
        item_store.insert(item)
        item.title = "Renamed"
        item.relevance_score = 0.9

        assert item_store.update(item)
        stored = item_store.get_by_id(item.id)
        assert stored.title == "Renamed"
        assert stored.relevance_score == pytest.approx(0.9)

    def test_update_requires_id(self, item_store: ItemStore):
        with pytest.raises(ValueError):
            item_store.update(make_item())

    def test_update_missing(self, item_store: ItemStore, group_id: int):
        item = make_item(group_id=group_id)
        item.id = 12345
        assert not item_store.update(item)

    def test_delete(self, item_store: ItemStore, group_id: int):
        item_id = item_store.insert(make_item(group_id=group_id))
        assert item_store.delete(item_id)
        assert item_store.get_by_id(item_id) is None
        assert not item_store.delete(item_id)


class TestListeners:
    def test_old_and_new_values_are_reported(self, item_store: ItemStore, group_id: int):
        events = []
        item_store.add_listener(lambda old, new: events.append((old, new)))

        item = make_item(group_id=group_id, country_iso="US")
        item_store.insert(item)
        item.country_iso = "DE"
        item_store.update(item)
        item_store.delete(item.id)

        assert len(events) == 3
        assert events[0][0] is None and events[0][1].id == item.id
        assert events[1][0].country_iso == "US" and events[1][1].country_iso == "DE"
        assert events[2][0].country_iso == "DE" and events[2][1] is None
