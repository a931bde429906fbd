"""HTTP surface: search, stats and admin routes."""

from capsearch.api.app import create_app

__all__ = [
    "create_app",
]
