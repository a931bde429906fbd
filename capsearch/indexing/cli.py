"""CLI for rebuilding the item index from the master store."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from capsearch.config.logging_config import setup_logging
from capsearch.config.settings import get_settings
from capsearch.indexing.item_builder import ItemIndexBuilder
from capsearch.storage.group_store import GroupStore
from capsearch.storage.item_store import ItemStore
from capsearch.storage.schema import initialize_database


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(description="Rebuild the item search index.")
    parser.add_argument(
        "--output",
        default=None,
        help="Write the index here instead of the configured location.",
    )
    return parser


def main() -> int:
    """Rebuild the index and print a summary."""
    args = build_parser().parse_args()

    settings = get_settings()
    setup_logging(log_dir=settings.logs_dir)
    initialize_database(settings.db_path)

    logger = logging.getLogger(__name__)

    builder = ItemIndexBuilder(
        item_store=ItemStore(settings.db_path),
        group_store=GroupStore(settings.db_path),
        index_path=Path(args.output) if args.output else None,
    )
    try:
        _, summary = builder.rebuild()
    except Exception as exc:
        logger.exception("Index build failed: %s", exc)
        return 1

    print("docs={doc_count} terms={term_count} file={file_path} seconds={seconds}".format(**summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
