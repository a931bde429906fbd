"""Admin API routes: group caps, index rebuild, cache flush."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from capsearch.api.schemas import (
    CacheInvalidateRequest,
    CacheInvalidateResponse,
    GroupCapRequest,
    GroupCapResponse,
    IndexRebuildResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _cap_response(request: Request, group_id: int) -> GroupCapResponse:
    core = request.app.state.core
    group = core.group_store.get_by_id(group_id)
    return GroupCapResponse(
        group_id=group_id,
        item_cap=group.item_cap if group else None,
        effective_cap=core.resolver.cap(group_id),
    )


@router.get("/groups/{group_id}/cap", response_model=GroupCapResponse)
def get_group_cap(request: Request, group_id: int) -> GroupCapResponse:
    if request.app.state.core.group_store.get_by_id(group_id) is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return _cap_response(request, group_id)


@router.put("/groups/{group_id}/cap", response_model=GroupCapResponse)
def set_group_cap(request: Request, group_id: int, body: GroupCapRequest) -> GroupCapResponse:
    """Override the per-page cap of one group."""
    if not request.app.state.core.group_store.set_cap(group_id, body.item_cap):
        raise HTTPException(status_code=404, detail="Group not found")
    return _cap_response(request, group_id)


@router.delete("/groups/{group_id}/cap", response_model=GroupCapResponse)
def clear_group_cap(request: Request, group_id: int) -> GroupCapResponse:
    """Remove a group's override so the global default applies."""
    if not request.app.state.core.group_store.clear_cap(group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return _cap_response(request, group_id)


@router.post("/index/rebuild", response_model=IndexRebuildResponse)
def rebuild_index(request: Request) -> IndexRebuildResponse:
    """Rebuild the item index from the master store and start serving it."""
    summary = request.app.state.core.rebuild_index()
    return IndexRebuildResponse(**summary)


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
def invalidate_cache(request: Request, body: CacheInvalidateRequest) -> CacheInvalidateResponse:
    cache = request.app.state.core.cache
    count = cache.invalidate(body.tags) if body.tags else cache.invalidate_all()
    return CacheInvalidateResponse(invalidated=count)
