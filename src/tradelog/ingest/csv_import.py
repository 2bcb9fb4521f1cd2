from __future__ import annotations

import csv
import io
from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd

from tradelog.analytics.lots import reconcile_fifo_pnl
from tradelog.ingest.brokers import get_broker_profile
from tradelog.ingest.csv_mapping import (
    CHANGE_MATCHERS,
    COMMISSION_MATCHERS,
    FILL_PRICE_MATCHERS,
    PNL_MATCHERS,
    QUANTITY_MATCHERS,
    SIDE_MATCHERS,
    TICKER_MATCHERS,
    TYPE_MATCHERS,
    file_signature,
    normalize_header,
    resolve_field,
)
from tradelog.ingest.instruments import InstrumentTable
from tradelog.ingest.records import MappedRow, PartialTrade, RowMeta
from tradelog.ingest.timestamps import DATE_COLUMN, TIME_COLUMN, reconstruct_timestamp
from tradelog.ingest.validators import normalize_side, parse_number
from tradelog.utils.dates import isoformat_z
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Statement:
    columns: list[str]
    records: list[dict[str, str]]
    signature: str


def _read_frame(text: str, quoting: int = csv.QUOTE_MINIMAL) -> pd.DataFrame:
    options = {
        "header": None,
        "dtype": str,
        "keep_default_na": False,
        "skip_blank_lines": True,
        "engine": "python",
        "quoting": quoting,
    }
    head = pd.read_csv(io.StringIO(text), nrows=1, **options)
    width = head.shape[1]
    # Cells past the header width are ignored rather than failing the statement.
    return pd.read_csv(
        io.StringIO(text),
        on_bad_lines=lambda fields: fields[:width],
        **options,
    ).fillna("")


def _unquote(cell: str) -> str:
    text = cell.strip()
    if text.startswith('"'):
        text = text[1:]
        if text.endswith('"'):
            text = text[:-1]
    return text.replace('""', '"')


def read_statement(text: str) -> Statement:
    body = (text or "").lstrip("\ufeff")
    if not body.strip():
        return Statement(columns=[], records=[], signature=file_signature([]))
    unquote = False
    try:
        frame = _read_frame(body)
    except pd.errors.EmptyDataError:
        return Statement(columns=[], records=[], signature=file_signature([]))
    except pd.errors.ParserError as exc:
        # Unbalanced quotes: read every line literally so the open quote only spoils its own cell.
        logger.debug("Re-reading statement without quote handling: %s", exc)
        frame = _read_frame(body, quoting=csv.QUOTE_NONE)
        unquote = True

    rows = frame.values.tolist()
    if unquote:
        rows = [[_unquote(str(cell)) for cell in values] for values in rows]
    if not rows:
        return Statement(columns=[], records=[], signature=file_signature([]))

    raw_headers = [str(value) for value in rows[0]]
    columns = [normalize_header(header) for header in raw_headers]
    records: list[dict[str, str]] = []
    for values in rows[1:]:
        record: dict[str, str] = {}
        for index, column in enumerate(columns):
            cell = values[index] if index < len(values) else ""
            record[column] = str(cell).strip()
        records.append(record)

    return Statement(columns=columns, records=records, signature=file_signature(raw_headers))


def map_record(record: Mapping[str, str], instruments: InstrumentTable) -> MappedRow | None:
    """Map one normalized row to a partial trade plus its fill metadata.

    Returns ``None`` for rows that carry nothing recognizable.
    """
    entry_ts = reconstruct_timestamp(record)
    qty = parse_number(resolve_field(record, QUANTITY_MATCHERS))
    qty_value = abs(qty) if qty is not None else None
    pnl = parse_number(resolve_field(record, PNL_MATCHERS))
    ticker = instruments.normalize_ticker(resolve_field(record, TICKER_MATCHERS))
    side = normalize_side(resolve_field(record, SIDE_MATCHERS) or "")
    fill_price = parse_number(resolve_field(record, FILL_PRICE_MATCHERS))
    commission = parse_number(resolve_field(record, COMMISSION_MATCHERS))

    if entry_ts is not None:
        stamp = isoformat_z(entry_ts)
        date_text, time_text = stamp[:10], stamp[11:16]
    else:
        date_text = record.get(DATE_COLUMN, "") or ""
        time_text = record.get(TIME_COLUMN, "") or ""

    trade = PartialTrade(
        entry_ts=entry_ts,
        date=date_text,
        time=time_text,
        side=side,
        type=resolve_field(record, TYPE_MATCHERS) or "",
        ticker=ticker,
        qty=qty_value,
        pnl=pnl,
        change=resolve_field(record, CHANGE_MATCHERS) or "",
    )
    if not trade.has_content():
        return None

    meta = RowMeta(
        side=side,
        qty=qty_value,
        fill_price=fill_price,
        fee_per_unit=(commission / qty_value) if qty_value and commission else 0.0,
        total_fee=commission or 0.0,
        multiplier=instruments.multiplier_for(ticker),
    )
    return MappedRow(trade=trade, meta=meta)


def map_statement(statement: Statement, instruments: InstrumentTable) -> list[MappedRow]:
    mapped: list[MappedRow] = []
    dropped = 0
    for record in statement.records:
        row = map_record(record, instruments)
        if row is None:
            dropped += 1
            continue
        mapped.append(row)
    if dropped:
        logger.debug("Dropped %d empty statement rows", dropped)
    return mapped


def parse_statement(
    text: str, broker: str, instruments: InstrumentTable | None = None
) -> list[PartialTrade]:
    """Parse statement text into partial trades, rebuilding PnL for fill-level brokers."""
    table = instruments or InstrumentTable()
    statement = read_statement(text)
    rows = map_statement(statement, table)
    if get_broker_profile(broker).reports_fills:
        reconcile_fifo_pnl(rows)
    return [row.trade for row in rows]
