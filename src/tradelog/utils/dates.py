"""UTC instant helpers shared by ingestion and storage."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_naive() -> datetime:
    return utc_now().replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive input is taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_utc_naive(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def isoformat_z(value: datetime) -> str:
    """Millisecond ISO-8601 form with a trailing ``Z``, e.g. ``2025-11-18T18:02:12.000Z``."""
    return as_utc(value).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def parse_cutoff(value: str | date | datetime | None) -> datetime | None:
    """Parse an earliest-date filter into an aware UTC instant.

    Plain dates (``2025-11-18`` or a ``date``) mean midnight UTC on that day.
    Blank input means no cutoff. Anything else unparseable raises ``ValueError``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Unable to parse cutoff date: {value}") from exc
    return as_utc(parsed)
