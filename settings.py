from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional


_DATA_PATH_ENV = "METERING_DATA_PATH"
_WORKER_COUNT_ENV = "IMPORT_WORKER_COUNT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    data_root_path: Optional[str]
    import_workers: int
    log_level: str

    def table_path(self, filename: str) -> Optional[Path]:
        """Location of a table's journal file, or ``None`` when persistence is off."""
        if not self.data_root_path:
            return None
        return Path(self.data_root_path) / filename


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_worker_count(default: int) -> int:
    value = os.getenv(_WORKER_COUNT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        data_root_path=_read_optional_env(_DATA_PATH_ENV, "./tmp/metering"),
        import_workers=_read_worker_count(2),
        log_level=_read_log_level("INFO"),
    )
