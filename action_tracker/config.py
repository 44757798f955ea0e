from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional


ROW_LIMIT_DEFAULT = 1000
WORKDAY_HOURS = 6.0
DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"]


@dataclass(frozen=True)
class Settings:
    bq_table: str = ""
    credentials_path: Optional[str] = None
    row_limit: int = ROW_LIMIT_DEFAULT
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"

    @property
    def table_parts(self) -> tuple[str, str, str]:
        parts = self.bq_table.split(".")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"BQ_TABLE must look like project.dataset.table, got {self.bq_table!r}")
        return parts[0], parts[1], parts[2]


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


def load_settings(env: Optional[dict] = None) -> Settings:
    env = os.environ if env is None else env
    origins = [o.strip() for o in (env.get("ACTION_TRACKER_CORS_ORIGINS") or "").split(",") if o.strip()]
    row_limit = _as_int(env.get("ACTION_TRACKER_ROW_LIMIT"), ROW_LIMIT_DEFAULT)
    return Settings(
        bq_table=(env.get("BQ_TABLE") or "").strip(),
        credentials_path=env.get("GOOGLE_APPLICATION_CREDENTIALS") or None,
        row_limit=max(1, min(ROW_LIMIT_DEFAULT, row_limit)),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        log_level=(env.get("ACTION_TRACKER_LOG_LEVEL") or "INFO").upper(),
    )
