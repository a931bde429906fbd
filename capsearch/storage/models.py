"""
Data models for the master store.

Plain dataclasses, one field per column. Dates are ISO 8601 strings so
that lexical comparison matches chronological order.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


@dataclass
class Group:
    """
    An owner of items, e.g. a brand.

    `item_cap` is the maximum number of the group's items allowed on a
    single result page. None means the global default applies.
    """

    id: Optional[int] = None
    name: str = ""
    item_cap: Optional[int] = None
    created_at: str = field(default_factory=_utc_now_iso)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass
class Item:
    """A searchable catalog entry belonging to exactly one group."""

    id: Optional[int] = None
    group_id: int = 0
    title: str = ""

    # Free-text keywords, space separated
    keywords: str = ""

    # ISO 3166-1 alpha-2, upper case
    country_iso: str = ""

    # YYYY-MM-DD
    start_date: str = ""

    # Editorial weight in [0, 1]; second ranking key after text relevance
    relevance_score: float = 0.0

    created_at: str = field(default_factory=_utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
