"""Tests for the tagged result cache and its key scheme."""

from __future__ import annotations

from capsearch.paging.result_cache import (
    ResultCache,
    search_cache_key,
    search_cache_tags,
    significant_words,
    tags_for_item,
)
from capsearch.search.candidate_source import SearchFilters
from tests.conftest import FakeClock, make_item


class TestKeys:
    def test_key_ignores_keyword_case_and_whitespace(self):
        f = SearchFilters(country_iso="US")
        assert search_cache_key(" Shoes", f, 1, 20, 0) == search_cache_key("shoes", f, 1, 20, 0)

    def test_key_varies_with_every_component(self):
        base = search_cache_key("shoes", SearchFilters(), 1, 20, 0)
        assert base.startswith("search:results:")
        assert base != search_cache_key("boots", SearchFilters(), 1, 20, 0)
        assert base != search_cache_key("shoes", SearchFilters(country_iso="DE"), 1, 20, 0)
        assert base != search_cache_key("shoes", SearchFilters(), 2, 20, 0)
        assert base != search_cache_key("shoes", SearchFilters(), 1, 10, 0)
        assert base != search_cache_key("shoes", SearchFilters(), 1, 20, 200)

    def test_tags(self):
        tags = search_cache_tags("Shoes", SearchFilters(country_iso="US", start_date="2026-03-15"))
        assert tags == {
            "search",
            "search:keyword:shoes",
            "search:country_iso:US",
            "search:date:2026-03",
        }

    def test_tags_without_filters(self):
        assert search_cache_tags("shoes", SearchFilters()) == {"search", "search:keyword:shoes"}


class TestItemTags:
    def test_significant_words(self):
        words = significant_words("The Red Running Shoes", "run, go, sneakers")
        assert "the" not in words
        assert "go" not in words
        assert words[0] == "sneakers"
        assert set(words) == {"sneakers", "running", "shoes", "red", "run"}

    def test_significant_words_capped(self):
        text = " ".join(f"word{i:02d}" for i in range(30))
        assert len(significant_words(text)) == 10

    def test_tags_for_item(self):
        item = make_item(title="Trail Boots", keywords="hiking", country_iso="DE", start_date="2026-05-02")
        assert tags_for_item(item) == {
            "search",
            "search:country_iso:DE",
            "search:date:2026-05",
            "search:keyword:trail",
            "search:keyword:boots",
            "search:keyword:hiking",
        }


class TestResultCache:
    def test_put_and_get(self):
        cache = ResultCache()
        cache.put("k", {"v": 1})
        assert cache.get("k") == {"v": 1}
        assert cache.get("missing") is None

    def test_entries_expire(self):
        clock = FakeClock()
        cache = ResultCache(default_ttl=10, clock=clock)
        cache.put("k", 1)
        clock.advance(9)
        assert cache.get("k") == 1
        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = ResultCache(default_ttl=10, clock=clock)
        cache.put("short", 1, ttl=1)
        cache.put("long", 2)
        clock.advance(5)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_zero_ttl_disables(self):
        cache = ResultCache(default_ttl=0)
        assert not cache.enabled
        cache.put("k", 1)
        assert cache.get("k") is None

    def test_invalidate_by_tag(self):
        cache = ResultCache()
        cache.put("a", 1, tags={"search", "search:keyword:shoes"})
        cache.put("b", 2, tags={"search", "search:keyword:boots"})
        cache.put("c", 3)

        assert cache.invalidate({"search:keyword:shoes"}) == 1
        assert cache.get("a") is None
        assert cache.get("b") == 2

        assert cache.invalidate({"search"}) == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_invalidate_unknown_tag(self):
        cache = ResultCache()
        cache.put("a", 1, tags={"search"})
        assert cache.invalidate({"nope"}) == 0
        assert len(cache) == 1

    def test_replacing_entry_updates_tags(self):
        cache = ResultCache()
        cache.put("a", 1, tags={"old"})
        cache.put("a", 2, tags={"new"})
        assert cache.invalidate({"old"}) == 0
        assert cache.invalidate({"new"}) == 1

    def test_invalidate_all(self):
        cache = ResultCache()
        cache.put("a", 1, tags={"x"})
        cache.put("b", 2)
        assert cache.invalidate_all() == 2
        assert len(cache) == 0

    def test_full_cache_evicts_oldest(self):
        cache = ResultCache(max_entries=2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_full_cache_prefers_expired(self):
        clock = FakeClock()
        cache = ResultCache(default_ttl=10, max_entries=2, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2, ttl=1)
        clock.advance(2)
        cache.put("c", 3)
        assert cache.get("a") == 1
        assert cache.get("c") == 3

    def test_evict_expired(self):
        clock = FakeClock()
        cache = ResultCache(default_ttl=5, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2, ttl=100)
        clock.advance(6)
        assert cache.evict_expired() == 1
        assert len(cache) == 1
