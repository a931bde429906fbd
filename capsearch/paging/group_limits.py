"""
Per-group page caps.

The resolver keeps an immutable snapshot of every explicit cap. The
snapshot is replaced whole, either when it outlives its TTL or after
invalidate() is called from a cap mutation; readers always see one
complete table.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Protocol

logger = logging.getLogger(__name__)


class GroupLimitTable(Protocol):
    def load_all_overrides(self) -> dict[int, int]:
        ...


@dataclass(frozen=True)
class _CapSnapshot:
    caps: Mapping[int, int]
    loaded_at: float


class GroupLimitResolver:
    """Answers cap(group_id) from a memoized override table."""

    def __init__(
        self,
        table: GroupLimitTable,
        default_cap: int = 3,
        refresh_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_cap < 1:
            raise ValueError(f"default_cap must be positive, got {default_cap}")
        self._table = table
        self._default_cap = default_cap
        self._refresh_ttl = refresh_ttl
        self._clock = clock
        self._snapshot: Optional[_CapSnapshot] = None
        # Bumped by invalidate(); a load that overlaps a bump is discarded
        self._generation = 0
        self._refresh_lock = threading.Lock()
        self._state_lock = threading.Lock()

    @property
    def default_cap(self) -> int:
        return self._default_cap

    def cap(self, group_id: int) -> int:
        """Maximum number of *group_id*'s items on one page. Always >= 1."""
        return self.snapshot().get(group_id, self._default_cap)

    def snapshot(self) -> Mapping[int, int]:
        """The current override table, refreshed first if it is missing or stale."""
        snap = self._snapshot
        if snap is not None and self._clock() - snap.loaded_at < self._refresh_ttl:
            return snap.caps

        with self._refresh_lock:
            while True:
                # Another thread may have refreshed while we waited
                snap = self._snapshot
                if snap is not None and self._clock() - snap.loaded_at < self._refresh_ttl:
                    return snap.caps

                generation = self._generation
                snap = self._load()
                with self._state_lock:
                    if generation == self._generation:
                        self._snapshot = snap
                        return snap.caps
                logger.debug("Group caps changed during reload; loading again")

    def _load(self) -> _CapSnapshot:
        caps: dict[int, int] = {}
        for group_id, cap in self._table.load_all_overrides().items():
            if isinstance(cap, bool) or not isinstance(cap, int) or cap < 1:
                logger.warning(
                    "Group %s has invalid cap %r; using default %d",
                    group_id, cap, self._default_cap,
                )
                continue
            caps[group_id] = cap

        logger.info("Loaded %d group cap overrides", len(caps))
        return _CapSnapshot(caps=MappingProxyType(caps), loaded_at=self._clock())

    def invalidate(self) -> None:
        """Drop the snapshot; the next lookup reloads the table."""
        with self._state_lock:
            self._generation += 1
            self._snapshot = None
        logger.debug("Group cap snapshot invalidated")

    def on_cap_changed(self, group_id: int, old_cap: Optional[int], new_cap: Optional[int]) -> None:
        """GroupStore listener."""
        logger.info("Cap of group %d changed (%s -> %s)", group_id, old_cap, new_cap)
        self.invalidate()
