from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tradelog.utils.dates import utc_now_naive


class Base(DeclarativeBase):
    pass


class TradeRecord(Base):
    __tablename__ = "trades"
    __table_args__ = (
        UniqueConstraint(
            "owner_id", "source_account", "dedupe_key", name="ux_trades_owner_account_dedupe"
        ),
        Index("ix_trades_owner_account_entry", "owner_id", "source_account", "entry_ts"),
        Index("ix_trades_owner_broker", "owner_id", "source_broker"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)
    # Naive UTC.
    entry_ts: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    trade_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    trade_time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    side: Mapped[str | None] = mapped_column(String(32), nullable=True)
    trade_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ticker: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    qty: Mapped[float | None] = mapped_column(Float, nullable=True)
    pnl: Mapped[float | None] = mapped_column(Float, nullable=True)
    change: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_account: Mapped[str] = mapped_column(String(128), nullable=False)
    source_broker: Mapped[str | None] = mapped_column(String(64), nullable=True)
    dedupe_key: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)
