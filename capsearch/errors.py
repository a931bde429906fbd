"""Exception types raised across capsearch."""

from __future__ import annotations


class CapSearchError(Exception):
    """Base class for capsearch failures."""


class RetrievalError(CapSearchError):
    """The candidate source could not serve a fetch; the request fails whole."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class IndexNotReadyError(CapSearchError):
    """No item index has been built or loaded yet."""
