"""Group-capped, cursor-based pagination."""

from capsearch.paging.cursor import CursorState, TokenCodec, query_fingerprint
from capsearch.paging.group_limits import GroupLimitResolver
from capsearch.paging.invalidation import CacheInvalidator, wire_invalidation
from capsearch.paging.orchestrator import PageOrchestrator, PageResult
from capsearch.paging.paginator import CappedPaginator, PageAssembly, StopReason, batch_size_for
from capsearch.paging.result_cache import ResultCache

__all__ = [
    "CursorState",
    "TokenCodec",
    "query_fingerprint",
    "GroupLimitResolver",
    "CacheInvalidator",
    "wire_invalidation",
    "PageOrchestrator",
    "PageResult",
    "CappedPaginator",
    "PageAssembly",
    "StopReason",
    "batch_size_for",
    "ResultCache",
]
