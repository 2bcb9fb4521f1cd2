from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from hashlib import sha256
from typing import Any

from tradelog.ingest.timestamps import parse_instant
from tradelog.utils.dates import isoformat_z

# Unit separator; never appears in statement text.
KEY_DELIMITER = "\x1f"

KEY_FIELDS: tuple[str, ...] = (
    "entry_ts",
    "ticker",
    "side",
    "trade_type",
    "qty",
    "pnl",
    "change",
)


def _normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).lower()


def _normalize_number(value: Any) -> str:
    if value is None or value == "":
        return ""
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return ""
    if parsed == 0:
        parsed = 0.0
    return f"{parsed:.4f}"


def _normalize_instant(value: Any) -> str:
    if value is None or value == "":
        return ""
    if isinstance(value, datetime):
        return isoformat_z(value)
    parsed = parse_instant(str(value))
    if parsed is None:
        return str(value).strip().lower()
    return isoformat_z(parsed)


def trade_key(row: Mapping[str, Any]) -> str:
    """Identity of a trade within one owner's account.

    Naive timestamps are UTC; numbers compare at four decimals; text compares
    case-insensitively. Two rows with equal keys are the same trade.
    """
    parts = (
        _normalize_instant(row.get("entry_ts")),
        _normalize_text(row.get("ticker")),
        _normalize_text(row.get("side")),
        _normalize_text(row.get("trade_type")),
        _normalize_number(row.get("qty")),
        _normalize_number(row.get("pnl")),
        _normalize_text(row.get("change")),
    )
    return KEY_DELIMITER.join(parts)


def dedupe_digest(row: Mapping[str, Any]) -> str:
    return sha256(trade_key(row).encode("utf-8")).hexdigest()


class DedupGate:
    """Admits each trade key once, seeded with what storage already holds."""

    def __init__(self, existing: Iterable[Mapping[str, Any]] = ()) -> None:
        self._seen: set[str] = set()
        self.seed(existing)

    def seed(self, rows: Iterable[Mapping[str, Any]]) -> None:
        for row in rows:
            self._seen.add(trade_key(row))

    def admit(self, row: Mapping[str, Any]) -> bool:
        key = trade_key(row)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def filter(self, rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return [row for row in rows if self.admit(row)]

    def __contains__(self, row: Mapping[str, Any]) -> bool:
        return trade_key(row) in self._seen

    def __len__(self) -> int:
        return len(self._seen)
