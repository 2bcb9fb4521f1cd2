"""Broker profiles: statement conventions and user-facing schema documentation.

The schema columns are documentation only; parsing relies on the matcher
tables in ``csv_mapping``. What a profile does drive is ``reports_fills``:
brokers that export raw fills get their realized PnL rebuilt by FIFO lot
matching, while the rest pass their reported PnL through unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SideConvention(str, Enum):
    BUY_SELL = "buy_sell"
    LONG_SHORT = "long_short"


@dataclass(frozen=True)
class SchemaColumn:
    label: str
    description: str
    required: bool = False
    sample: str | None = None
    maps_to: str | None = None


@dataclass(frozen=True)
class BrokerProfile:
    name: str
    reports_fills: bool
    side_convention: SideConvention
    file_pattern: str | None = None
    notes: str | None = None
    columns: tuple[SchemaColumn, ...] = field(default_factory=tuple)
    instructions: tuple[str, ...] = field(default_factory=tuple)


DEFAULT_INSTRUCTIONS = (
    "Log into your broker account.",
    "Export your order or trade history as CSV.",
    "Upload the CSV here to import trades.",
)

TRADINGVIEW = BrokerProfile(
    name="TradingView",
    reports_fills=True,
    side_convention=SideConvention.BUY_SELL,
    file_pattern="paper-trading-order-history-*.csv",
    notes=(
        "TradingView exports include both placing and closing timestamps. "
        "The closing time is used for the trade timestamp when available."
    ),
    columns=(
        SchemaColumn("Symbol", "Instrument identifier including market prefix.", True, "CME_MINI:NQ1!", "ticker"),
        SchemaColumn("Side", "Direction of the order (Buy, Sell, Long, Short).", True, "Buy / Sell", "side"),
        SchemaColumn("Type", "Order type such as Market, Limit, Stop.", True, "Market", "type"),
        SchemaColumn("Qty", "Filled quantity for the order.", True, "1", "qty"),
        SchemaColumn("Limit Price", "Limit price attached to conditional orders.", sample="24576"),
        SchemaColumn("Stop Price", "Stop trigger price for stop or stop-limit orders.", sample="24656"),
        SchemaColumn("Fill Price", "Actual fill price recorded by TradingView.", sample="24576"),
        SchemaColumn("Status", "Filled, Cancelled, or other order status.", sample="Filled", maps_to="change"),
        SchemaColumn("Commission", "Commission paid for the order in account currency.", sample="0.85"),
        SchemaColumn(
            "Placing Time", "ISO timestamp for when the order was submitted.",
            sample="2025-11-18T18:02:12Z", maps_to="entry_ts",
        ),
        SchemaColumn(
            "Closing Time", "ISO timestamp for when the order completed.",
            sample="2025-11-18T18:02:12Z", maps_to="entry_ts",
        ),
        SchemaColumn("Order ID", "Numeric identifier for each order instance.", sample="2479188880"),
        SchemaColumn("Level ID", "Internal TradingView level reference.", sample="10:1"),
        SchemaColumn("Leverage", "Leverage applied to the order.", sample="10:1"),
        SchemaColumn("Margin", "Margin requirement recorded in the export.", sample="49,152.00 USD"),
    ),
    instructions=(
        "Go to the Trading or Paper Trading tab.",
        "Click the TradingView logo in the top-left corner.",
        "Open History, then choose Export to download the CSV.",
    ),
)

TRADOVATE = BrokerProfile(
    name="Tradovate",
    reports_fills=True,
    side_convention=SideConvention.BUY_SELL,
    file_pattern="fills-*.csv",
    notes=(
        "Tradovate exports include raw metadata columns (prefixed with an underscore) and "
        "user-readable columns such as Contract and Timestamp. Timestamp and Date set the "
        "trade time; Contract and Product populate tickers."
    ),
    columns=(
        SchemaColumn("orderId", "Internal Tradovate order identifier."),
        SchemaColumn("Account", "Account receiving fills.", True, "APEX344...0010", "source_account"),
        SchemaColumn("Order ID", "User-facing order identifier; appears twice in the export."),
        SchemaColumn("B/S", "Fill direction.", True, "Buy / Sell", "side"),
        SchemaColumn("Contract", "Contract symbol (e.g., MNQZ5, NQZ5).", True, "MNQZ5", "ticker"),
        SchemaColumn("Product", "Root symbol (MNQ, NQ)."),
        SchemaColumn("Product Description", "Friendly description (e.g., Micro E-mini NASDAQ-100)."),
        SchemaColumn("avgPrice", "Average price from the broker for the order."),
        SchemaColumn("filledQty", "Number of contracts filled in this row."),
        SchemaColumn("Fill Time", "Human-readable timestamp of the fill."),
        SchemaColumn("lastCommandId", "Internal reference for the last command applied."),
        SchemaColumn("Status", "Final status (Filled, Cancelled, etc.).", maps_to="change"),
        SchemaColumn("_priceFormat", "Internal price format indicator."),
        SchemaColumn("_priceFormatType", "Internal price format type."),
        SchemaColumn("_tickSize", "Tick size for the contract (e.g., 0.25)."),
        SchemaColumn("spreadDefinitionId", "Spread definition reference if applicable."),
        SchemaColumn("Version ID", "Version identifier for the fill record."),
        SchemaColumn("Timestamp", "Local timestamp (MM/DD/YYYY HH:MM:SS)."),
        SchemaColumn("Date", "Date portion (MM/DD/YY).", True, maps_to="date"),
        SchemaColumn("Quantity", "Quantity column provided in some exports.", sample="1", maps_to="qty"),
        SchemaColumn("Text", "Free-form notes text attached to the order."),
        SchemaColumn("Type", "Order type (Market, Limit, etc.).", maps_to="type"),
        SchemaColumn("Limit Price", "Limit price, if provided."),
        SchemaColumn("Stop Price", "Stop trigger price, if provided."),
        SchemaColumn("decimalLimit", "Numeric limit price representation."),
        SchemaColumn("decimalStop", "Numeric stop price representation."),
        SchemaColumn("Filled Qty", "Additional filled quantity column."),
        SchemaColumn("Avg Fill Price", "Average fill price across the order."),
        SchemaColumn("decimalFillAvg", "Numeric average fill price."),
        SchemaColumn("commission", "Commission or fee per fill.", sample="1.04"),
    ),
    instructions=(
        "Log into Tradovate.",
        "Navigate to Reports -> Account Statements.",
        "Export the statement covering the range you need.",
    ),
)

GENERIC = BrokerProfile(
    name="Generic CSV Format",
    reports_fills=False,
    side_convention=SideConvention.LONG_SHORT,
    notes=(
        "Use this structure when manually formatting a CSV. Only the required columns are "
        "necessary; the others are optional but recommended."
    ),
    columns=(
        SchemaColumn("Date", "ISO formatted date (YYYY-MM-DD).", True, "2025-11-18", "date"),
        SchemaColumn("Time", "24h time (HH:MM). Seconds optional.", True, "18:02", "time"),
        SchemaColumn("Ticker / Symbol", "Ticker symbol of the traded instrument.", True, "NQ", "ticker"),
        SchemaColumn("Side", "Long/Short, Buy/Sell, or similar notation.", True, "Long / Short", "side"),
        SchemaColumn("Asset Type", "Classification such as Option, Stock, Future.", sample="Future", maps_to="type"),
        SchemaColumn("Quantity", "Size of the trade.", sample="1", maps_to="qty"),
        SchemaColumn("P&L", "Realized profit or loss for the record.", sample="150.25", maps_to="pnl"),
        SchemaColumn(
            "Status / Notes", "Any free-form column containing notes or order status.",
            sample="Closed", maps_to="change",
        ),
    ),
    instructions=DEFAULT_INSTRUCTIONS,
)

DEFAULT = BrokerProfile(
    name="Default",
    reports_fills=False,
    side_convention=SideConvention.LONG_SHORT,
    notes="No dedicated schema yet. Follow the generic CSV format so the data maps automatically.",
    instructions=DEFAULT_INSTRUCTIONS,
)

BROKER_PROFILES: dict[str, BrokerProfile] = {
    profile.name: profile for profile in (TRADINGVIEW, TRADOVATE, GENERIC, DEFAULT)
}

# Brokers offered for statement import, in display order.
IMPORT_BROKERS: tuple[str, ...] = (TRADOVATE.name, TRADINGVIEW.name)


def get_broker_profile(name: str | None) -> BrokerProfile:
    text = (name or "").strip()
    if text in BROKER_PROFILES:
        return BROKER_PROFILES[text]
    lowered = text.lower()
    for key, profile in BROKER_PROFILES.items():
        if key.lower() == lowered:
            return profile
    return DEFAULT
