"""SQL-backed trade storage: existing-trade lookup, conflict-safe inserts and source listing."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, insert, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tradelog.config.settings import get_settings
from tradelog.db.models import TradeRecord
from tradelog.ingest.dedupe import dedupe_digest
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)

CONFLICT_FIELDS: tuple[str, ...] = ("owner_id", "source_account", "dedupe_key")
UNKNOWN_BROKER = "Unknown"


class StorageError(RuntimeError):
    """A storage round-trip failed; the message is the backend's own."""


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    session = Session(engine)
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageError(str(exc)) from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@dataclass(frozen=True)
class ImportSource:
    account: str
    broker: str
    latest_entry_ts: datetime | None
    trade_count: int


def _chunked(rows: list[dict], batch_size: int) -> Iterable[list[dict]]:
    for start in range(0, len(rows), batch_size):
        yield rows[start : start + batch_size]


def _filter_new_rows(session: Session, rows: list[dict], query_chunk_size: int = 1000) -> list[dict]:
    """Drop rows whose digest already exists for their owner and account, or repeats in ``rows``."""
    seen: set[tuple[str, str, str]] = set()
    batch: list[dict] = []
    grouped: dict[tuple[str, str], set[str]] = {}
    for row in rows:
        token = (str(row["owner_id"]), str(row["source_account"]), str(row["dedupe_key"]))
        if token in seen:
            continue
        seen.add(token)
        grouped.setdefault(token[:2], set()).add(token[2])
        batch.append(row)

    existing: set[tuple[str, str, str]] = set()
    for (owner, account), keys in grouped.items():
        ordered = sorted(keys)
        for start in range(0, len(ordered), query_chunk_size):
            chunk = ordered[start : start + query_chunk_size]
            found = session.scalars(
                select(TradeRecord.dedupe_key).where(
                    TradeRecord.owner_id == owner,
                    TradeRecord.source_account == account,
                    TradeRecord.dedupe_key.in_(chunk),
                )
            ).all()
            existing.update((owner, account, key) for key in found)

    return [
        row
        for row in batch
        if (str(row["owner_id"]), str(row["source_account"]), str(row["dedupe_key"])) not in existing
    ]


def _bulk_insert_ignore_conflicts(session: Session, rows: list[dict], *, batch_size: int) -> int:
    if not rows:
        return 0

    bind = session.get_bind()
    dialect_name = bind.dialect.name if bind is not None else ""
    inserted = 0
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        stmt = sqlite_insert(TradeRecord).on_conflict_do_nothing(index_elements=list(CONFLICT_FIELDS))
        for chunk in _chunked(rows, batch_size=batch_size):
            before = int(session.scalar(text("SELECT total_changes()")) or 0)
            session.execute(stmt, chunk)
            after = int(session.scalar(text("SELECT total_changes()")) or 0)
            inserted += max(after - before, 0)
        return inserted

    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as postgresql_insert

        for chunk in _chunked(rows, batch_size=batch_size):
            stmt = postgresql_insert(TradeRecord).values(chunk).on_conflict_do_nothing(
                index_elements=list(CONFLICT_FIELDS)
            )
            result = session.execute(stmt)
            inserted += max(int(result.rowcount or 0), 0)
        return inserted

    for chunk in _chunked(_filter_new_rows(session, rows), batch_size=batch_size):
        session.execute(insert(TradeRecord), chunk)
        inserted += len(chunk)
    return inserted


def _record_row(row: dict[str, Any]) -> dict[str, Any]:
    payload = {
        "owner_id": row["owner_id"],
        "entry_ts": row.get("entry_ts"),
        "trade_date": row.get("trade_date"),
        "trade_time": row.get("trade_time"),
        "side": row.get("side"),
        "trade_type": row.get("trade_type"),
        "ticker": row.get("ticker"),
        "qty": row.get("qty"),
        "pnl": row.get("pnl"),
        "change": row.get("change"),
        "source_account": row["source_account"],
        "source_broker": row.get("source_broker"),
    }
    payload["dedupe_key"] = row.get("dedupe_key") or dedupe_digest(payload)
    return payload


class SqlTradeStore:
    def __init__(self, engine: Engine, *, batch_size: int | None = None) -> None:
        self.engine = engine
        self.batch_size = batch_size or get_settings().insert_batch_size

    def query_existing(self, owner: str, account: str) -> list[dict[str, Any]]:
        stmt = select(
            TradeRecord.entry_ts,
            TradeRecord.ticker,
            TradeRecord.side,
            TradeRecord.trade_type,
            TradeRecord.qty,
            TradeRecord.pnl,
            TradeRecord.change,
        ).where(TradeRecord.owner_id == owner, TradeRecord.source_account == account)
        with session_scope(self.engine) as session:
            return [dict(row._mapping) for row in session.execute(stmt).all()]

    def insert(self, rows: list[dict[str, Any]]) -> int:
        """Insert ``rows`` in one transaction; rows already stored are skipped."""
        if not rows:
            return 0
        payload = [_record_row(row) for row in rows]
        with session_scope(self.engine) as session:
            inserted = _bulk_insert_ignore_conflicts(session, payload, batch_size=self.batch_size)
        if inserted < len(payload):
            logger.debug("Storage skipped %d already-present trades", len(payload) - inserted)
        return inserted

    def delete(self, owner: str, account: str) -> int:
        stmt = delete(TradeRecord).where(
            TradeRecord.owner_id == owner, TradeRecord.source_account == account
        )
        with session_scope(self.engine) as session:
            result = session.execute(stmt)
            return max(int(result.rowcount or 0), 0)

    def list_sources(self, owner: str) -> list[ImportSource]:
        """Accounts an owner has imported into, most recently traded first."""
        stmt = (
            select(
                TradeRecord.source_account,
                TradeRecord.source_broker,
                func.max(TradeRecord.entry_ts),
                func.count(TradeRecord.id),
            )
            .where(TradeRecord.owner_id == owner)
            .group_by(TradeRecord.source_account, TradeRecord.source_broker)
        )
        with session_scope(self.engine) as session:
            rows = session.execute(stmt).all()

        sources = [
            ImportSource(
                account=account,
                broker=broker or UNKNOWN_BROKER,
                latest_entry_ts=latest,
                trade_count=int(count or 0),
            )
            for account, broker, latest, count in rows
        ]
        dated = sorted(
            (source for source in sources if source.latest_entry_ts is not None),
            key=lambda source: source.latest_entry_ts,
            reverse=True,
        )
        undated = sorted(
            (source for source in sources if source.latest_entry_ts is None),
            key=lambda source: source.account,
        )
        return dated + undated
