"""Statement import: parse, reconcile, filter, dedupe and store in one pass."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol

from tradelog.ingest.brokers import get_broker_profile
from tradelog.ingest.csv_import import parse_statement
from tradelog.ingest.dedupe import DedupGate, dedupe_digest
from tradelog.ingest.instruments import InstrumentTable, load_instrument_table
from tradelog.ingest.records import PartialTrade
from tradelog.ingest.validators import is_futures_type
from tradelog.utils.dates import as_utc, as_utc_naive, parse_cutoff
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)


class TradeStore(Protocol):
    def query_existing(self, owner: str, account: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    def insert(self, rows: list[dict[str, Any]]) -> int:
        raise NotImplementedError

    def delete(self, owner: str, account: str) -> int:
        raise NotImplementedError


class ImportOutcome(str, Enum):
    IMPORTED = "imported"
    EMPTY_STATEMENT = "empty_statement"
    ALL_FILTERED_BY_DATE = "all_filtered_by_date"
    ALL_DUPLICATES = "all_duplicates"


@dataclass(frozen=True)
class ImportResult:
    outcome: ImportOutcome
    inserted_count: int
    parsed_count: int
    filtered_count: int
    duplicate_count: int
    message: str

    @property
    def imported(self) -> bool:
        return self.outcome == ImportOutcome.IMPORTED


def _require_text(value: str | None, message: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValueError(message)
    return text


def _validate_fee(fee_override: float | None) -> float:
    if fee_override is None:
        return 0.0
    try:
        fee = float(fee_override)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Fee override must be a number: {fee_override!r}") from exc
    if not math.isfinite(fee) or fee < 0:
        raise ValueError(f"Fee override must be a non-negative number: {fee_override!r}")
    return fee


def filter_by_cutoff(trades: list[PartialTrade], cutoff: datetime | None) -> list[PartialTrade]:
    """Drop trades before ``cutoff``; trades without a timestamp always survive."""
    if cutoff is None:
        return list(trades)
    return [trade for trade in trades if trade.entry_ts is None or as_utc(trade.entry_ts) >= cutoff]


def apply_fee_override(trade: PartialTrade, fee_per_contract: float) -> float | None:
    """PnL after the flat per-contract fee, charged on futures rows only.

    This is on top of any commission already netted out by FIFO matching.
    """
    if trade.pnl is None or not fee_per_contract or not trade.qty:
        return trade.pnl
    if not is_futures_type(trade.type):
        return trade.pnl
    return trade.pnl - fee_per_contract * abs(trade.qty)


def build_row(
    trade: PartialTrade,
    *,
    owner: str,
    account: str,
    broker: str,
    fee_per_contract: float = 0.0,
) -> dict[str, Any]:
    row: dict[str, Any] = {
        "owner_id": owner,
        "entry_ts": as_utc_naive(trade.entry_ts),
        "trade_date": trade.date or None,
        "trade_time": trade.time or None,
        "side": trade.side or None,
        "trade_type": trade.type or None,
        "ticker": trade.ticker or None,
        "qty": trade.qty,
        "pnl": apply_fee_override(trade, fee_per_contract),
        "change": trade.change,
        "source_account": account,
        "source_broker": broker,
    }
    row["dedupe_key"] = dedupe_digest(row)
    return row


def import_statement(
    store: TradeStore,
    *,
    owner: str,
    broker: str,
    account: str,
    text: str,
    fee_override: float | None = None,
    earliest_date: str | date | datetime | None = None,
    instruments: InstrumentTable | None = None,
) -> ImportResult:
    owner_id = _require_text(owner, "An owner is required to import trades.")
    account_name = _require_text(account, "Add an account name to track this source.")
    fee = _validate_fee(fee_override)
    cutoff = parse_cutoff(earliest_date)
    profile = get_broker_profile(broker)
    broker_name = (broker or "").strip() or profile.name

    trades = parse_statement(text, broker_name, instruments or load_instrument_table())
    if not trades:
        logger.info("No rows found in statement for %s (%s)", account_name, broker_name)
        return ImportResult(
            outcome=ImportOutcome.EMPTY_STATEMENT,
            inserted_count=0,
            parsed_count=0,
            filtered_count=0,
            duplicate_count=0,
            message="No rows found in CSV.",
        )

    kept = filter_by_cutoff(trades, cutoff)
    filtered = len(trades) - len(kept)
    if not kept:
        logger.info("All %d rows for %s fall before %s", len(trades), account_name, cutoff)
        return ImportResult(
            outcome=ImportOutcome.ALL_FILTERED_BY_DATE,
            inserted_count=0,
            parsed_count=len(trades),
            filtered_count=filtered,
            duplicate_count=0,
            message="No rows match the filters provided.",
        )

    try:
        existing = store.query_existing(owner_id, account_name)
    except Exception:
        logger.exception("Failed to load existing trades for %s", account_name)
        raise

    gate = DedupGate(existing)
    rows = [
        build_row(trade, owner=owner_id, account=account_name, broker=broker_name, fee_per_contract=fee)
        for trade in kept
    ]
    fresh = [row for row in rows if gate.admit(row)]
    duplicates = len(rows) - len(fresh)
    if not fresh:
        logger.info("All %d rows for %s are already stored", len(rows), account_name)
        return ImportResult(
            outcome=ImportOutcome.ALL_DUPLICATES,
            inserted_count=0,
            parsed_count=len(trades),
            filtered_count=filtered,
            duplicate_count=duplicates,
            message="All trades in this CSV already exist for this account.",
        )

    try:
        inserted = store.insert(fresh)
    except Exception:
        logger.exception("Failed to insert %d trades into %s", len(fresh), account_name)
        raise

    logger.info(
        "Imported %d of %d parsed trades into %s (%s)",
        inserted,
        len(trades),
        account_name,
        broker_name,
    )
    if inserted == 0:
        return ImportResult(
            outcome=ImportOutcome.ALL_DUPLICATES,
            inserted_count=0,
            parsed_count=len(trades),
            filtered_count=filtered,
            duplicate_count=len(rows),
            message="All trades in this CSV already exist for this account.",
        )
    return ImportResult(
        outcome=ImportOutcome.IMPORTED,
        inserted_count=inserted,
        parsed_count=len(trades),
        filtered_count=filtered,
        duplicate_count=duplicates + len(fresh) - inserted,
        message=f"Imported {inserted} trades into {account_name}.",
    )
