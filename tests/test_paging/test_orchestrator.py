"""Tests for token-aware, cached page orchestration."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from capsearch.config.settings import SearchSettings
from capsearch.errors import RetrievalError
from capsearch.paging.cursor import TokenCodec
from capsearch.paging.group_limits import GroupLimitResolver
from capsearch.paging.orchestrator import PageOrchestrator
from capsearch.paging.paginator import CappedPaginator
from capsearch.paging.result_cache import ResultCache
from capsearch.search.candidate_source import SearchFilters
from tests.conftest import ListCandidateSource, StaticCapTable, make_candidates

X = 1

# batch size 10 for page size 5
SMALL_BATCHES = SearchSettings(min_fetch_size=10, fetch_multiplier=2, max_fetch_size=100)


def _dominant_source() -> ListCandidateSource:
    others = [2 + (i % 4) for i in range(40)]
    return ListCandidateSource(make_candidates([X] * 30 + others))


def _orchestrator(source, cache=None, settings=SMALL_BATCHES, overrides=None) -> PageOrchestrator:
    resolver = GroupLimitResolver(StaticCapTable(overrides or {X: 3}), default_cap=3)
    paginator = CappedPaginator(source, resolver, settings)
    return PageOrchestrator(source, paginator, TokenCodec("test-secret"), cache, settings)


def _ids(result):
    return [c.item_id for c in result.data]


class TestSequentialNavigation:
    def test_first_page(self):
        result = _orchestrator(_dominant_source()).search("shoes", page=1, page_size=5)

        assert _ids(result) == [1, 2, 3, 31, 32]
        assert result.current_page == 1
        assert result.per_page == 5
        assert result.total_pages_estimate == 7
        assert result.has_more
        assert result.continuation_token

    def test_second_page_continues_from_token(self):
        source = _dominant_source()
        orchestrator = _orchestrator(source)
        first = orchestrator.search("shoes", page=1, page_size=5)
        fetches_before = len(source.fetch_calls)

        second = orchestrator.search("shoes", page=2, page_size=5, continuation_token=first.continuation_token)

        assert source.fetch_calls[fetches_before][1] == 40
        assert not set(_ids(first)) & set(_ids(second))
        assert not {4, 5, 6} & set(_ids(second))

    def test_token_accumulates_offsets(self):
        orchestrator = _orchestrator(_dominant_source())
        first = orchestrator.search("shoes", page=1, page_size=5)
        second = orchestrator.search("shoes", page=2, page_size=5, continuation_token=first.continuation_token)

        state = TokenCodec("test-secret").decode(second.continuation_token)
        assert dict(state.offsets) == {1: 40, 2: 50}

    def test_page_without_token_uses_calculated_offset(self):
        source = _dominant_source()
        _orchestrator(source).search("shoes", page=2, page_size=5)
        assert source.fetch_calls[0][1] == 10

    def test_token_of_other_query_is_ignored(self):
        source = _dominant_source()
        orchestrator = _orchestrator(source)
        first = orchestrator.search("shoes", page=1, page_size=5)
        fetches_before = len(source.fetch_calls)

        orchestrator.search(
            "shoes", SearchFilters(country_iso="US"), page=2, page_size=5,
            continuation_token=first.continuation_token,
        )

        assert source.fetch_calls[fetches_before][1] == 10

    def test_corrupt_token_behaves_like_no_token(self):
        orchestrator = _orchestrator(_dominant_source())
        clean = orchestrator.search("shoes", page=1, page_size=5)
        corrupt = orchestrator.search("shoes", page=1, page_size=5, continuation_token="garbage!!")

        assert _ids(corrupt) == _ids(clean)
        assert corrupt.continuation_token == clean.continuation_token


class TestDeepPages:
    def test_jump_to_far_page_is_bounded(self):
        source = ListCandidateSource(make_candidates([i % 100 for i in range(10_000)]))
        result = _orchestrator(source).search("shoes", page=900, page_size=5)

        assert source.fetch_calls[0][1] == 8990
        assert len(source.fetch_calls) <= SMALL_BATCHES.max_iterations
        assert len(result.data) == 5
        assert result.total_pages_estimate == 1000

    def test_every_estimated_page_has_results(self):
        source = ListCandidateSource(make_candidates([i % 20 for i in range(95)]))
        orchestrator = _orchestrator(source)

        token = None
        result = orchestrator.search("shoes", page=1, page_size=5)
        estimate = result.total_pages_estimate
        assert estimate == 10

        for page in range(1, estimate + 1):
            result = orchestrator.search("shoes", page=page, page_size=5, continuation_token=token)
            assert result.data, f"page {page} of {estimate} is empty"
            token = result.continuation_token

        beyond = orchestrator.search("shoes", page=estimate + 1, page_size=5, continuation_token=token)
        assert beyond.data == []

    def test_estimate_is_bounded_by_max_page(self):
        settings = SearchSettings(min_fetch_size=10, fetch_multiplier=2, max_fetch_size=100, max_page=50)
        source = ListCandidateSource(make_candidates([i % 100 for i in range(10_000)]))
        result = _orchestrator(source, settings=settings).search("shoes", page=1, page_size=5)
        assert result.total_pages_estimate == 50

    def test_page_beyond_results_is_empty(self):
        result = _orchestrator(_dominant_source()).search("shoes", page=50, page_size=5)
        assert result.data == []
        assert not result.has_more

    @pytest.mark.parametrize("page,page_size", [(0, 5), (1, 0), (1001, 5)])
    def test_rejects_invalid_paging(self, page, page_size):
        with pytest.raises(ValueError):
            _orchestrator(_dominant_source()).search("shoes", page=page, page_size=page_size)


class TestEmptyAndFailing:
    def test_no_matches(self):
        result = _orchestrator(ListCandidateSource([])).search("nothing", page=1, page_size=5)

        assert result.data == []
        assert result.total_pages_estimate == 0
        assert not result.has_more

    def test_source_failure_raises(self):
        source = _dominant_source()
        source.error = ConnectionError("index unreachable")

        with pytest.raises(RetrievalError):
            _orchestrator(source).search("shoes", page=1, page_size=5)

    def test_default_page_size(self):
        result = _orchestrator(_dominant_source()).search("shoes")
        assert result.per_page == SMALL_BATCHES.default_page_size


class TestCaching:
    def test_repeat_request_is_served_from_cache(self):
        source = _dominant_source()
        orchestrator = _orchestrator(source, cache=ResultCache())

        first = orchestrator.search("shoes", page=1, page_size=5)
        fetches = len(source.fetch_calls)
        again = orchestrator.search("Shoes ", page=1, page_size=5)

        assert len(source.fetch_calls) == fetches
        assert source.count_calls == 2
        assert _ids(again) == _ids(first)
        assert again.continuation_token == first.continuation_token
        assert again.has_more == first.has_more

    def test_different_offsets_are_cached_separately(self):
        source = _dominant_source()
        cache = ResultCache()
        orchestrator = _orchestrator(source, cache=cache)
        first = orchestrator.search("shoes", page=1, page_size=5)

        orchestrator.search("shoes", page=2, page_size=5)
        orchestrator.search("shoes", page=2, page_size=5, continuation_token=first.continuation_token)

        assert len(cache) == 3

    def test_disabled_cache_is_bypassed(self):
        source = _dominant_source()
        cache = ResultCache(default_ttl=0)
        orchestrator = _orchestrator(source, cache=cache)

        orchestrator.search("shoes", page=1, page_size=5)
        fetches = len(source.fetch_calls)
        orchestrator.search("shoes", page=1, page_size=5)

        assert len(source.fetch_calls) == 2 * fetches
        assert len(cache) == 0

    def test_cache_failure_falls_back_to_assembly(self):
        cache = MagicMock()
        cache.get.side_effect = RuntimeError("cache down")
        cache.put.side_effect = RuntimeError("cache down")

        result = _orchestrator(_dominant_source(), cache=cache).search("shoes", page=1, page_size=5)

        assert _ids(result) == [1, 2, 3, 31, 32]
