from __future__ import annotations

import sqlite3
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from tradelog.config.settings import get_settings
from tradelog.db.models import Base
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)

IN_MEMORY_SQLITE_URLS = {"sqlite://", "sqlite:///:memory:"}


def _enable_sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, _connection_record):  # pragma: no cover - driver callback
        cursor = dbapi_connection.cursor()
        pragmas = (
            "PRAGMA foreign_keys=ON",
            "PRAGMA busy_timeout=5000",
            "PRAGMA journal_mode=WAL",
            "PRAGMA synchronous=NORMAL",
        )
        for statement in pragmas:
            try:
                cursor.execute(statement)
            except sqlite3.Error:
                # In-memory databases reject WAL; the remaining pragmas still apply.
                continue
        cursor.close()


def build_engine(database_url: str | None = None) -> Engine:
    settings = get_settings()
    url = database_url or settings.database_url

    if url.startswith("sqlite:///") and url not in IN_MEMORY_SQLITE_URLS:
        sqlite_path = Path(url.removeprefix("sqlite:///")).expanduser()
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, future=True)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_pragmas(engine)
    return engine


def migrate(database_url: str | None = None) -> Engine:
    engine = build_engine(database_url=database_url)
    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))
    return engine


if __name__ == "__main__":
    migrate()
