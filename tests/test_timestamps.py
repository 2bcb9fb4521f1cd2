from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tradelog.ingest.timestamps import parse_instant, reconstruct_timestamp, sort_instant

EXPECTED = datetime(2025, 11, 18, 18, 2, 12, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw",
    [
        "2025-11-18 18:02:12",
        "2025-11-18T18:02:12",
        "2025-11-18T18:02:12Z",
        "2025-11-18T13:02:12-05:00",
        "11/18/2025 18:02:12",
    ],
)
def test_parse_instant_reads_utc(raw):
    assert parse_instant(raw) == EXPECTED


@pytest.mark.parametrize("raw", [None, "", "   ", "garbage", "March", "10", "18:02", "Nov 2025"])
def test_parse_instant_rejects_garbage(raw):
    assert parse_instant(raw) is None


def test_timestamp_column_priority():
    record = {"fill_time": "2025-11-18 11:00:00", "timestamp": "2025-11-18 10:00:00"}
    assert reconstruct_timestamp(record) == datetime(2025, 11, 18, 10, 0, tzinfo=timezone.utc)


def test_unparseable_column_falls_through():
    record = {"timestamp": "garbage", "closing_time": "2025-11-18 12:00:00"}
    assert reconstruct_timestamp(record) == datetime(2025, 11, 18, 12, 0, tzinfo=timezone.utc)


def test_date_and_time_fallback_needs_both_parts():
    assert reconstruct_timestamp({"date": "2025-11-18", "time": "09:30"}) == datetime(
        2025, 11, 18, 9, 30, tzinfo=timezone.utc
    )
    assert reconstruct_timestamp({"date": "2025-11-18"}) is None
    assert reconstruct_timestamp({}) is None


def test_sort_instant_defaults():
    assert sort_instant(None, "2025-11-18", "") == datetime(2025, 11, 18, tzinfo=timezone.utc)
    assert sort_instant(None, "2025-11-18", "09:30") == datetime(
        2025, 11, 18, 9, 30, tzinfo=timezone.utc
    )
    assert sort_instant(None, "", "") == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert sort_instant(datetime(2025, 1, 2, 3, 4), "", "") == datetime(
        2025, 1, 2, 3, 4, tzinfo=timezone.utc
    )


def test_date_fragment_in_timestamp_column_keeps_date_time_fallback():
    record = {"timestamp": "March", "date": "2025-11-18", "time": "09:30"}
    assert reconstruct_timestamp(record) == datetime(2025, 11, 18, 9, 30, tzinfo=timezone.utc)
