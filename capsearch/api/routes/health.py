"""Health and stats routes."""

from __future__ import annotations

from fastapi import APIRouter, Request

from capsearch.api.schemas import StatsResponse

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> dict:
    """Simple liveness check."""
    return {"status": "ok"}


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    """Return high-level system statistics."""
    core = request.app.state.core
    index = core.source.index

    return StatsResponse(
        item_count=core.item_store.count(),
        group_count=core.group_store.count(),
        indexed_items=index.doc_count if index is not None else 0,
        cap_overrides=len(core.resolver.snapshot()),
        cached_pages=len(core.cache),
    )
