"""Runtime settings for the metadata cache and comparison engines.

Settings come from environment variables so that every frontend (CLI,
automation, tests) can tune limits without code changes. Invalid values
never raise; they fall back to the defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_DETAIL_CACHE_CAP = 200
DEFAULT_DATA_DIFF_ROW_LIMIT = 5000
DEFAULT_LOAD_WORKERS = 4


@dataclass(frozen=True)
class Settings:
    """
    Tunable limits shared by the catalog service and the diff engines.

    Attributes:
        detail_cache_cap: Maximum number of table-detail entries kept per
            connection before LRU eviction kicks in.
        data_diff_row_limit: Row ceiling applied to each side of a data diff.
        load_workers: Thread pool size used for concurrent catalog loads.
    """

    detail_cache_cap: int = DEFAULT_DETAIL_CACHE_CAP
    data_diff_row_limit: int = DEFAULT_DATA_DIFF_ROW_LIMIT
    load_workers: int = DEFAULT_LOAD_WORKERS

    _CACHE_CAP_ENV = "DBCOMPARE_DETAIL_CACHE_CAP"
    _ROW_LIMIT_ENV = "DBCOMPARE_DATA_DIFF_ROW_LIMIT"
    _WORKERS_ENV = "DBCOMPARE_LOAD_WORKERS"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables (or an explicit mapping)."""
        env = os.environ if env is None else env
        return cls(
            detail_cache_cap=_positive_int(
                env.get(cls._CACHE_CAP_ENV), DEFAULT_DETAIL_CACHE_CAP
            ),
            data_diff_row_limit=_positive_int(
                env.get(cls._ROW_LIMIT_ENV), DEFAULT_DATA_DIFF_ROW_LIMIT
            ),
            load_workers=_positive_int(env.get(cls._WORKERS_ENV), DEFAULT_LOAD_WORKERS),
        )


def _positive_int(raw: str | None, default: int) -> int:
    """Parse a positive integer, returning `default` when missing or invalid."""
    if raw is None:
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return value if value > 0 else default
