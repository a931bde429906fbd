"""Search API route."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query, Request

from capsearch.api.schemas import ErrorResponse, SearchHitResponse, SearchResponse
from capsearch.errors import RetrievalError
from capsearch.search.candidate_source import SearchFilters

logger = logging.getLogger(__name__)

router = APIRouter(tags=["search"])


def _parse_start_date(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise HTTPException(status_code=422, detail="start_date must be a valid YYYY-MM-DD date")


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={503: {"model": ErrorResponse}},
)
def search(
    request: Request,
    q: str = Query(..., min_length=1, max_length=100, description="Search keyword"),
    country_iso: str | None = Query(None, pattern=r"^[A-Z]{2}$", description="Country filter (ISO alpha-2)"),
    start_date: str | None = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Earliest start date"),
    page: int = Query(1, ge=1, le=1000, description="Page number"),
    per_page: int = Query(20, ge=1, le=100, description="Results per page"),
    token: str | None = Query(None, max_length=8192, description="Continuation token from the previous page"),
) -> SearchResponse:
    """Return one page of results with at most a group's cap of items per group."""
    settings = request.app.state.settings.search
    if page > settings.max_page:
        raise HTTPException(status_code=422, detail=f"page must be <= {settings.max_page}")

    filters = SearchFilters(country_iso=country_iso, start_date=_parse_start_date(start_date))
    orchestrator = request.app.state.core.orchestrator

    try:
        result = orchestrator.search(q, filters, page=page, page_size=per_page, continuation_token=token)
    except RetrievalError as exc:
        logger.error("Search failed for %r (page %d): %s", q, page, exc)
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable")

    return SearchResponse(
        data=[
            SearchHitResponse(
                id=c.item_id,
                group_id=c.group_id,
                group_name=c.group_name,
                title=c.title,
                keywords=c.keywords,
                country_iso=c.country_iso,
                start_date=c.start_date,
                relevance_score=c.relevance_score,
                score=c.score,
            )
            for c in result.data
        ],
        current_page=result.current_page,
        per_page=result.per_page,
        total_pages=result.total_pages_estimate,
        continuation_token=result.continuation_token,
        has_more=result.has_more,
    )
