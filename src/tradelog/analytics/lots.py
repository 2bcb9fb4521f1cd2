"""FIFO lot matching that rebuilds realized PnL from raw fills."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from tradelog.ingest.records import MappedRow
from tradelog.ingest.timestamps import sort_instant
from tradelog.ingest.validators import LONG, SHORT, side_direction
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)

LOT_EPSILON = 1e-8


@dataclass(slots=True)
class Lot:
    qty: float
    price: float
    fee_per_unit: float
    multiplier: float


def close_lots(lots: deque[Lot], qty: float, price: float, *, closing_long: bool) -> tuple[float, float]:
    """Consume ``lots`` oldest first and return ``(realized, closed_qty)``.

    Closing a long (a sell) realizes ``price - lot.price`` per unit; closing
    a short realizes ``lot.price - price``. Each matched slice carries its
    lot's multiplier and pays the lot's opening fee share.
    """
    remaining = qty
    realized = 0.0
    while remaining > LOT_EPSILON and lots:
        lot = lots[0]
        matched = min(remaining, lot.qty)
        move = (price - lot.price) if closing_long else (lot.price - price)
        realized += move * matched * lot.multiplier
        realized -= lot.fee_per_unit * matched
        lot.qty -= matched
        remaining -= matched
        if lot.qty <= LOT_EPSILON:
            lots.popleft()
    return realized, qty - remaining


class LotBook:
    """Open lots per ticker, one FIFO queue for each direction."""

    def __init__(self) -> None:
        self._queues: dict[tuple[str, str], deque[Lot]] = {}

    def queue(self, ticker: str, direction: str) -> deque[Lot]:
        return self._queues.setdefault((ticker, direction), deque())

    def open_lots(self, ticker: str, direction: str) -> list[Lot]:
        return list(self._queues.get((ticker, direction), ()))

    def open_qty(self, ticker: str, direction: str) -> float:
        return sum(lot.qty for lot in self._queues.get((ticker, direction), ()))

    def tickers(self) -> list[str]:
        return sorted({ticker for (ticker, _), lots in self._queues.items() if lots})

    def close(self, ticker: str, closing: str, qty: float, price: float) -> tuple[float, float]:
        return close_lots(self.queue(ticker, closing), qty, price, closing_long=closing == LONG)

    def open(self, ticker: str, direction: str, lot: Lot) -> None:
        self.queue(ticker, direction).append(lot)

    def apply(self, row: MappedRow) -> float:
        """Run one fill through the book and return the PnL it realizes."""
        trade, meta = row.trade, row.meta
        ticker = trade.ticker
        qty = meta.qty
        price = meta.fill_price
        if not ticker or not qty or price is None:
            logger.debug("Fill without ticker, quantity or price; PnL set to 0")
            return 0.0

        direction = side_direction(meta.side)
        if direction is None:
            logger.debug("Unrecognized side %r for %s; PnL set to 0", meta.side, ticker)
            return 0.0

        total_fee = meta.total_fee or 0.0
        opposite = SHORT if direction == LONG else LONG
        realized, closed_qty = self.close(ticker, opposite, qty, price)
        leftover = qty - closed_qty
        if leftover > LOT_EPSILON:
            self.open(
                ticker,
                direction,
                Lot(
                    qty=leftover,
                    price=price,
                    fee_per_unit=total_fee / qty,
                    multiplier=meta.multiplier or 1.0,
                ),
            )

        if closed_qty <= 0:
            return 0.0
        return realized - total_fee * (closed_qty / qty)


def reconcile_fifo_pnl(rows: list[MappedRow]) -> LotBook:
    """Fill in ``pnl`` for rows that lack it by FIFO matching in time order.

    Rows that already report PnL are left untouched and do not move the
    book. Rows with no usable timestamp sort as the epoch. The book is
    returned so callers can inspect what remains open.
    """
    book = LotBook()
    ordered = sorted(
        rows,
        key=lambda row: sort_instant(row.trade.entry_ts, row.trade.date, row.trade.time),
    )
    for row in ordered:
        if row.trade.pnl is not None:
            continue
        row.trade.pnl = book.apply(row)
    return book
