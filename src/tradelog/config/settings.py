from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from tradelog.config.paths import default_db_path

DEFAULT_INSERT_BATCH_SIZE = 2000


def _env_int(name: str, default: int) -> int:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_path(name: str) -> Path | None:
    raw = str(os.getenv(name, "") or "").strip()
    if not raw:
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    app_env: str
    database_url: str
    log_level: str
    instruments_file: Path | None
    insert_batch_size: int


def get_settings() -> Settings:
    db_default = f"sqlite:///{default_db_path().as_posix()}"
    return Settings(
        app_env=os.getenv("APP_ENV", "development"),
        database_url=os.getenv("DATABASE_URL", db_default),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        instruments_file=_env_path("TRADELOG_INSTRUMENTS_FILE"),
        insert_batch_size=_env_int("TRADELOG_INSERT_BATCH", DEFAULT_INSERT_BATCH_SIZE),
    )
