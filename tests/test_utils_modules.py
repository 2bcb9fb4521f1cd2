from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from tradelog.config.paths import DEFAULT_DATA_DIR, data_dir, default_db_path, ensure_data_dirs
from tradelog.config.settings import DEFAULT_INSERT_BATCH_SIZE, get_settings
from tradelog.utils.dates import as_utc_naive, isoformat_z, parse_cutoff, utc_now, utc_now_naive
from tradelog.utils.logging import get_logger


def test_dates_helpers_return_utc_shapes():
    aware_now = utc_now()
    naive_now = utc_now_naive()

    assert aware_now.tzinfo is not None
    assert naive_now.tzinfo is None

    eastern = timezone(timedelta(hours=-5))
    converted = as_utc_naive(datetime(2025, 2, 10, 4, 0, 0, tzinfo=eastern))
    assert converted == datetime(2025, 2, 10, 9, 0, 0)
    assert as_utc_naive(None) is None


def test_isoformat_z_uses_milliseconds():
    assert isoformat_z(datetime(2025, 11, 18, 18, 2, 12)) == "2025-11-18T18:02:12.000Z"
    assert isoformat_z(datetime(2025, 11, 18, 18, 2, 12, 345678, tzinfo=timezone.utc)) == (
        "2025-11-18T18:02:12.345Z"
    )


def test_parse_cutoff_accepts_dates_and_instants():
    midnight = datetime(2025, 11, 18, tzinfo=timezone.utc)
    assert parse_cutoff("2025-11-18") == midnight
    assert parse_cutoff(date(2025, 11, 18)) == midnight
    assert parse_cutoff("2025-11-18T05:00:00-05:00") == datetime(2025, 11, 18, 10, tzinfo=timezone.utc)
    assert parse_cutoff(" ") is None
    assert parse_cutoff(None) is None
    with pytest.raises(ValueError):
        parse_cutoff("18th of November")


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("TRADELOG_INSERT_BATCH", "250")
    monkeypatch.setenv("TRADELOG_INSTRUMENTS_FILE", str(tmp_path / "instruments.json"))
    settings = get_settings()
    assert settings.database_url == "sqlite:///:memory:"
    assert settings.log_level == "debug"
    assert settings.insert_batch_size == 250
    assert settings.instruments_file == tmp_path / "instruments.json"


@pytest.mark.parametrize("raw", ["", "zero", "0", "-5"])
def test_invalid_batch_size_falls_back(monkeypatch, raw):
    monkeypatch.setenv("TRADELOG_INSERT_BATCH", raw)
    assert get_settings().insert_batch_size == DEFAULT_INSERT_BATCH_SIZE


def test_data_dir_override(monkeypatch, tmp_path):
    monkeypatch.delenv("TRADELOG_DATA_DIR", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert data_dir() == DEFAULT_DATA_DIR

    monkeypatch.setenv("TRADELOG_DATA_DIR", str(tmp_path / "store"))
    assert ensure_data_dirs() == tmp_path / "store"
    assert (tmp_path / "store").is_dir()
    assert default_db_path() == tmp_path / "store" / "tradelog.db"
    assert get_settings().database_url.endswith("store/tradelog.db")


def test_get_logger_returns_named_logger():
    logger = get_logger("tradelog.test")
    assert isinstance(logger, logging.Logger)
    assert logger.name == "tradelog.test"
