from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tradelog.ingest.csv_import import map_record, parse_statement, read_statement
from tradelog.ingest.instruments import InstrumentTable


def test_read_statement_normalizes_headers_and_pads_ragged_rows():
    text = "\ufeffSymbol,Side,Qty\nNQ,Buy,1,extra\n\nMNQ,Sell\n"
    statement = read_statement(text)
    assert statement.columns == ["symbol", "side", "qty"]
    assert statement.records == [
        {"symbol": "NQ", "side": "Buy", "qty": "1"},
        {"symbol": "MNQ", "side": "Sell", "qty": ""},
    ]


def test_read_statement_handles_quotes_and_blank_input():
    statement = read_statement('Symbol,Margin\n"NQ","49,152.00 USD"\n')
    assert statement.records == [{"symbol": "NQ", "margin": "49,152.00 USD"}]
    assert read_statement("").records == []
    assert read_statement("Symbol,Side\n").records == []


def test_map_record_for_fill_row():
    record = {
        "fill_time": "11/18/2025 18:02:12",
        "b_s": "Buy",
        "contract": "MNQZ5",
        "product": "MNQ",
        "filledqty": "2",
        "avgprice": "21000.25",
        "commission": "1.04",
        "status": "Filled",
    }
    row = map_record(record, InstrumentTable())
    assert row is not None
    trade, meta = row.trade, row.meta
    assert trade.entry_ts == datetime(2025, 11, 18, 18, 2, 12, tzinfo=timezone.utc)
    assert (trade.date, trade.time) == ("2025-11-18", "18:02")
    assert trade.side == "Long"
    assert trade.ticker == "MNQ"
    assert trade.qty == 2.0
    assert trade.pnl is None
    assert trade.change == "Filled"
    assert meta.fill_price == pytest.approx(21000.25)
    assert meta.fee_per_unit == pytest.approx(0.52)
    assert meta.total_fee == pytest.approx(1.04)
    assert meta.multiplier == 1.0


def test_map_record_keeps_raw_date_text_without_timestamp():
    row = map_record({"date": "11/18", "ticker": "AAPL", "qty": "-5"}, InstrumentTable())
    assert row is not None
    assert row.trade.entry_ts is None
    assert row.trade.date == "11/18"
    assert row.trade.qty == 5.0


def test_map_record_drops_rows_without_content():
    assert map_record({"symbol": "", "side": "", "notes": "x"}, InstrumentTable()) is None


def test_reported_pnl_passes_through(generic_pnl_csv):
    trades = parse_statement(generic_pnl_csv, "Generic CSV Format")
    assert [trade.pnl for trade in trades] == [150.25, -80.0]
    assert trades[0].type == "Stock"
    assert trades[0].entry_ts == datetime(2025, 11, 18, 18, 2, tzinfo=timezone.utc)
    assert trades[1].side == "Short"
    assert trades[1].change == "Closed"


def test_fill_brokers_get_fifo_pnl(tradovate_round_trip_csv):
    trades = parse_statement(tradovate_round_trip_csv, "Tradovate")
    assert [trade.ticker for trade in trades] == ["NQ", "NQ"]
    assert [trade.pnl for trade in trades] == [pytest.approx(0.0), pytest.approx(196.0)]


def test_other_brokers_leave_missing_pnl_alone(tradovate_round_trip_csv):
    trades = parse_statement(tradovate_round_trip_csv, "Some Other Broker")
    assert [trade.pnl for trade in trades] == [None, None]


def test_read_statement_accepts_crlf_and_doubled_quotes():
    statement = read_statement('Symbol,Notes\r\nNQ,"said ""hi"", then left"\r\nMNQ,plain\r\n')
    assert statement.records == [
        {"symbol": "NQ", "notes": 'said "hi", then left'},
        {"symbol": "MNQ", "notes": "plain"},
    ]


def test_unterminated_quote_only_spoils_its_own_row():
    text = 'Symbol,Side,Qty,Status\nNQ,Buy,1,"Filled\nNQ,Sell,1,Filled\n'
    statement = read_statement(text)
    assert statement.columns == ["symbol", "side", "qty", "status"]
    assert statement.records == [
        {"symbol": "NQ", "side": "Buy", "qty": "1", "status": "Filled"},
        {"symbol": "NQ", "side": "Sell", "qty": "1", "status": "Filled"},
    ]

    trades = parse_statement(text, "Generic CSV Format")
    assert [(trade.side, trade.qty, trade.change) for trade in trades] == [
        ("Long", 1.0, "Filled"),
        ("Short", 1.0, "Filled"),
    ]
