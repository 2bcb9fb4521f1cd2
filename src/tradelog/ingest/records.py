from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class PartialTrade:
    entry_ts: datetime | None = None
    date: str = ""
    time: str = ""
    side: str = ""
    type: str = ""
    ticker: str = ""
    qty: float | None = None
    pnl: float | None = None
    change: str = ""

    def has_content(self) -> bool:
        if self.entry_ts or self.ticker or self.side or self.type or self.change:
            return True
        return self.qty is not None or self.pnl is not None


@dataclass(frozen=True)
class RowMeta:
    """Per-row fill facts used only while rebuilding realized PnL."""

    side: str
    qty: float | None
    fill_price: float | None
    fee_per_unit: float
    total_fee: float
    multiplier: float


@dataclass
class MappedRow:
    trade: PartialTrade
    meta: RowMeta
