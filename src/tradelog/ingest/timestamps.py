"""Rebuild a UTC entry instant from whichever timestamp-like columns a row has."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone

from dateutil import parser as date_parser

from tradelog.utils.dates import as_utc

# Full-timestamp columns, highest priority first.
TIMESTAMP_COLUMNS: tuple[str, ...] = (
    "entry_ts",
    "timestamp",
    "fill_time",
    "closing_time",
    "placing_time",
    "close_time",
    "open_time",
    "trade_time",
)

DATE_COLUMN = "date"
TIME_COLUMN = "time"

# Two defaults that differ in year, month and day.
_FILL_A = datetime(1970, 1, 1)
_FILL_B = datetime(1971, 2, 2)


def _iso_candidate(text: str) -> str:
    candidate = text if "T" in text else text.replace(" ", "T", 1)
    if candidate[-1:] in {"Z", "z"}:
        return candidate[:-1] + "+00:00"
    return candidate


def parse_instant(raw: str | None) -> datetime | None:
    """Parse one timestamp text into an aware UTC datetime.

    Text without an explicit zone is read as UTC. Text carrying an explicit
    offset such as ``+05:00`` is converted to UTC rather than rejected.
    ISO-8601 is tried first (a space between date and time is accepted);
    other layouts such as ``11/18/2025 18:02:12`` go through dateutil, which
    must find a full year, month and day. Returns ``None`` when the text does
    not describe a complete instant.
    """
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None

    try:
        return as_utc(datetime.fromisoformat(_iso_candidate(text)))
    except ValueError:
        pass

    try:
        parsed = date_parser.parse(text, default=_FILL_A)
        check = date_parser.parse(text, default=_FILL_B)
    except (ValueError, OverflowError):
        return None
    # Differing results mean dateutil filled part of the date from the default.
    if parsed != check:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_timestamp(
    raw: str | None = None, date_part: str | None = None, time_part: str | None = None
) -> datetime | None:
    source = (raw or "").strip()
    if not source and date_part and time_part:
        source = f"{date_part.strip()} {time_part.strip()}"
    return parse_instant(source)


def reconstruct_timestamp(record: Mapping[str, str]) -> datetime | None:
    for column in TIMESTAMP_COLUMNS:
        parsed = build_timestamp(record.get(column))
        if parsed is not None:
            return parsed
    return build_timestamp(None, record.get(DATE_COLUMN), record.get(TIME_COLUMN))


def sort_instant(
    entry_ts: datetime | None, date_text: str | None, time_text: str | None
) -> datetime:
    """Ordering key for FIFO matching; rows with no usable time sort as the epoch."""
    if entry_ts is not None:
        return as_utc(entry_ts)
    if date_text:
        time_value = (time_text or "00:00").strip() or "00:00"
        if len(time_value) == 5:
            time_value = f"{time_value}:00"
        parsed = parse_instant(f"{date_text.strip()}T{time_value}")
        if parsed is not None:
            return parsed
    return datetime(1970, 1, 1, tzinfo=timezone.utc)
