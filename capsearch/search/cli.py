"""CLI for fetching one group-capped page, optionally continuing from a token."""

from __future__ import annotations

import argparse
import logging

from capsearch.config.logging_config import setup_logging
from capsearch.config.settings import get_settings
from capsearch.core import build_search_core
from capsearch.errors import RetrievalError
from capsearch.search.candidate_source import SearchFilters
from capsearch.storage.schema import initialize_database


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Search the item index with per-group caps.")
    parser.add_argument("--query", required=True, help="Search keyword.")
    parser.add_argument("--country", default=None, help="ISO alpha-2 country filter, e.g. US.")
    parser.add_argument("--start-date", default=None, help="Earliest start date (YYYY-MM-DD).")
    parser.add_argument("--page", type=int, default=1, help="Page number.")
    parser.add_argument("--per-page", type=int, default=20, help="Results per page.")
    parser.add_argument("--token", default=None, help="Continuation token from a previous page.")
    return parser


def main() -> int:
    """Run one search page and print the hits and the next token."""
    args = build_parser().parse_args()

    settings = get_settings()
    setup_logging(log_dir=settings.logs_dir)
    initialize_database(settings.db_path)

    logger = logging.getLogger(__name__)

    core = build_search_core(settings)
    filters = SearchFilters(country_iso=args.country, start_date=args.start_date)
    try:
        result = core.orchestrator.search(
            args.query,
            filters,
            page=args.page,
            page_size=args.per_page,
            continuation_token=args.token,
        )
    except (RetrievalError, ValueError) as exc:
        logger.error("Search failed: %s", exc)
        return 1

    if not result.data:
        print("No results.")

    start = (result.current_page - 1) * result.per_page
    for rank, hit in enumerate(result.data, start=start + 1):
        print(
            f"{rank}. score={hit.score:.4f} id={hit.item_id} "
            f"group={hit.group_name} country={hit.country_iso} title={hit.title}"
        )

    print(f"page {result.current_page} of ~{result.total_pages_estimate} (has_more={result.has_more})")
    print(f"token: {result.continuation_token}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
