"""
Central configuration for capsearch.

Every tunable of the search path lives here; module code receives the
relevant settings group through its constructor.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path


def _project_root() -> Path:
    """Nearest ancestor directory holding pyproject.toml."""
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if (current / "pyproject.toml").exists():
            return current
        current = current.parent
    return Path(__file__).resolve().parent.parent.parent


def _token_secret() -> str:
    return os.environ.get("CAPSEARCH_TOKEN_SECRET", "capsearch-development-secret")


@dataclass(frozen=True)
class StorageSettings:
    """Settings for the SQLite master store."""

    db_name: str = "capsearch.db"

    journal_mode: str = "WAL"

    # How long to wait for a locked DB (milliseconds)
    busy_timeout_ms: int = 5000


@dataclass(frozen=True)
class PreprocessingSettings:
    """Token filters shared by indexing and querying."""

    min_token_length: int = 2
    max_token_length: int = 50


@dataclass(frozen=True)
class BM25Settings:
    """Field-weighted BM25 parameters."""

    # Saturation of repeated terms
    k1: float = 1.2

    # Document length normalization (0 = none, 1 = full)
    b: float = 0.75

    # Title terms count this many times per occurrence; keywords count once
    title_boost: float = 2.0


@dataclass(frozen=True)
class SearchSettings:
    """Settings for group-capped pagination."""

    # Cap applied to any group without its own override
    default_group_cap: int = 3

    default_page_size: int = 20
    max_page_size: int = 100

    # Highest page number a client may request
    max_page: int = 1000

    max_keyword_length: int = 100

    # Match query words within a small edit distance of indexed terms
    fuzzy_matching: bool = True

    # Batch size = page_size * fetch_multiplier, clamped to [min, max]
    fetch_multiplier: int = 10
    min_fetch_size: int = 200
    max_fetch_size: int = 1000

    # Safety valves for one page assembly; enforced independently
    max_iterations: int = 10
    time_budget_seconds: float = 2.0


@dataclass(frozen=True)
class GroupCapSettings:
    """Settings for the memoized group cap table."""

    # Snapshot age (seconds) after which overrides are reloaded
    refresh_ttl: float = 300.0


@dataclass(frozen=True)
class CacheSettings:
    """Settings for the page result cache."""

    # 0 disables caching
    ttl_seconds: int = 300

    max_entries: int = 10_000


@dataclass(frozen=True)
class TokenSettings:
    """Settings for continuation tokens."""

    # Rotating the key invalidates every outstanding token
    secret_key: str = field(default_factory=_token_secret)

    version: int = 1


@dataclass
class Settings:
    """One settings group per subsystem, plus the paths derived from project_root."""

    project_root: Path = field(default_factory=_project_root)
    storage: StorageSettings = field(default_factory=StorageSettings)
    preprocessing: PreprocessingSettings = field(default_factory=PreprocessingSettings)
    bm25: BM25Settings = field(default_factory=BM25Settings)
    search: SearchSettings = field(default_factory=SearchSettings)
    group_caps: GroupCapSettings = field(default_factory=GroupCapSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    token: TokenSettings = field(default_factory=TokenSettings)

    @property
    def data_dir(self) -> Path:
        """Runtime data lives here: database, index file and logs."""
        return self.project_root / "data"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "db" / self.storage.db_name

    @property
    def index_path(self) -> Path:
        """Location of the persisted item index."""
        return self.data_dir / "indexes" / "items.msgpack"

    @property
    def logs_dir(self) -> Path:
        return self.data_dir / "logs"

    def ensure_dirs(self) -> None:
        """mkdir -p every runtime directory."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.index_path.parent.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide Settings; tests build their own Settings(project_root=tmp_path)."""
    settings = Settings()
    settings.ensure_dirs()
    return settings
