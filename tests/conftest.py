from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from tradelog.db.models import Base
from tradelog.db.repository import SqlTradeStore


def build_csv(header: list[str], rows: list[list[str]]) -> str:
    lines = [",".join(header)]
    lines.extend(",".join(row) for row in rows)
    return "\n".join(lines) + "\n"


TRADOVATE_HEADER = [
    "Timestamp",
    "B/S",
    "Contract",
    "Product",
    "Type",
    "filledQty",
    "avgPrice",
    "commission",
    "Status",
]


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine: Engine) -> SqlTradeStore:
    return SqlTradeStore(engine, batch_size=50)


@pytest.fixture
def tradovate_round_trip_csv() -> str:
    return build_csv(
        TRADOVATE_HEADER,
        [
            ["11/18/2025 10:00:00", "Buy", "NQZ5", "NQ", "Future", "1", "100", "2", "Filled"],
            ["11/18/2025 10:05:00", "Sell", "NQZ5", "NQ", "Future", "1", "110", "2", "Filled"],
        ],
    )


@pytest.fixture
def generic_pnl_csv() -> str:
    return build_csv(
        ["Date", "Time", "Ticker", "Side", "Asset Type", "Quantity", "P&L", "Status"],
        [
            ["2025-11-18", "18:02", "AAPL", "Long", "Stock", "10", "150.25", "Closed"],
            ["2025-11-19", "09:30", "NQ", "Short", "Future", "2", "-80", "Closed"],
        ],
    )


@pytest.fixture
def csv_text():
    return build_csv
