"""Uvicorn entrypoint for the capsearch API."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from capsearch.config.logging_config import setup_logging
from capsearch.config.settings import get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve group-capped search over HTTP.")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
    parser.add_argument("--port", type=int, default=8000, help="Bind port.")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level for capsearch and uvicorn.",
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development).")
    return parser


def main() -> int:
    args = build_parser().parse_args()

    settings = get_settings()
    setup_logging(log_dir=settings.logs_dir, level=getattr(logging, args.log_level.upper()))
    logging.getLogger(__name__).info(
        "Serving on http://%s:%d (db=%s)", args.host, args.port, settings.db_path,
    )

    # The factory builds one search core per worker process
    uvicorn.run(
        "capsearch.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
