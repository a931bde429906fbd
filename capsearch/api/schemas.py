"""Pydantic response/request models for the API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SearchHitResponse(BaseModel):
    """A single search result."""

    id: int
    group_id: int
    group_name: str
    title: str
    keywords: str = ""
    country_iso: str
    start_date: str
    relevance_score: float
    score: float


class SearchResponse(BaseModel):
    """One group-capped page."""

    data: list[SearchHitResponse]
    current_page: int
    per_page: int
    total_pages: int
    continuation_token: str
    has_more: bool


class StatsResponse(BaseModel):
    """System statistics."""

    item_count: int
    group_count: int
    indexed_items: int
    cap_overrides: int
    cached_pages: int


class GroupCapRequest(BaseModel):
    """Body for setting a group's per-page cap."""

    item_cap: int = Field(..., ge=1, description="Maximum items of this group per page")


class GroupCapResponse(BaseModel):
    group_id: int
    item_cap: Optional[int] = None
    effective_cap: int


class IndexRebuildResponse(BaseModel):
    doc_count: int
    term_count: int
    file_path: str
    seconds: float


class CacheInvalidateRequest(BaseModel):
    """Tags to flush; omit to flush everything."""

    tags: Optional[list[str]] = None


class CacheInvalidateResponse(BaseModel):
    invalidated: int


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    detail: str
