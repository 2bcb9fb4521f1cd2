"""Header normalization and declarative column matching for broker statements.

Every logical field is resolved through an ordered tuple of ``ColumnMatcher``
entries. Matcher priority outranks column order: the first matcher with any
matching, non-empty column wins. Supporting a new broker layout means adding
entries to these tables, not new branches in the mapper.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from hashlib import sha256

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_header(value: str) -> str:
    text = str(value)
    if text.startswith("\ufeff"):
        text = text[1:]
    return _NON_ALNUM_RE.sub("_", text.strip().lower())


def file_signature(columns: Iterable[str]) -> str:
    canonical = "|".join(normalize_header(column) for column in columns)
    return sha256(canonical.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class ColumnMatcher:
    kind: str  # exact, pattern or predicate
    name: str | None = None
    regex: re.Pattern[str] | None = None
    test: Callable[[str], bool] | None = None

    def matches(self, column: str) -> bool:
        if self.kind == "exact":
            return column == self.name
        if self.kind == "pattern":
            return self.regex is not None and self.regex.search(column) is not None
        if self.kind == "predicate":
            return self.test is not None and bool(self.test(column))
        raise ValueError(f"Unsupported matcher kind: {self.kind}")


def exact(name: str) -> ColumnMatcher:
    return ColumnMatcher(kind="exact", name=name)


def pattern(expression: str) -> ColumnMatcher:
    return ColumnMatcher(kind="pattern", regex=re.compile(expression))


def predicate(test: Callable[[str], bool]) -> ColumnMatcher:
    return ColumnMatcher(kind="predicate", test=test)


def exact_names(*names: str) -> tuple[ColumnMatcher, ...]:
    return tuple(exact(name) for name in names)


def resolve_field(
    record: Mapping[str, str], matchers: Iterable[ColumnMatcher]
) -> str | None:
    """Return the first non-empty trimmed value found by ``matchers`` in order.

    Columns are scanned in record order for each matcher before the next
    matcher is tried. ``None`` means no matcher produced content.
    """
    columns = list(record.keys())
    for matcher in matchers:
        for column in columns:
            if not matcher.matches(column):
                continue
            raw = record.get(column)
            if raw is None:
                continue
            text = str(raw).strip()
            if text:
                return text
    return None


QUANTITY_MATCHERS: tuple[ColumnMatcher, ...] = (
    *exact_names("qty", "quantity", "contracts", "shares", "size", "filledqty", "filled_qty"),
    pattern(r"(^|_)(qty|quantity|contracts?|shares?)($|_)"),
)

PNL_MATCHERS: tuple[ColumnMatcher, ...] = (
    *exact_names(
        "pnl",
        "p_l",
        "pl",
        "net_profit",
        "gross_profit",
        "realized_pnl",
        "realized_pl",
        "net_pnl",
        "pnl_usd",
        "p_l_usd",
        "profit",
        "profit_loss",
    ),
    pattern(r"(^|_)pnl($|_)"),
    pattern(r"(^|_)p_l($|_)"),
    pattern(r"(^|_)profit($|_)"),
    # Some exports put the realized figure in a change/status column.
    *exact_names("change", "status"),
)

CHANGE_MATCHERS: tuple[ColumnMatcher, ...] = (
    *exact_names("change", "status", "result"),
    predicate(lambda column: column.endswith("_status")),
)

TICKER_MATCHERS: tuple[ColumnMatcher, ...] = exact_names(
    "ticker", "symbol", "instrument", "product", "contract", "product_description"
)

SIDE_MATCHERS: tuple[ColumnMatcher, ...] = exact_names("side", "b_s", "buy_sell", "order_action")

TYPE_MATCHERS: tuple[ColumnMatcher, ...] = exact_names("type", "asset_type", "product")

FILL_PRICE_MATCHERS: tuple[ColumnMatcher, ...] = exact_names(
    "fill_price",
    "fillprice",
    "price",
    "execution_price",
    "_price",
    "avgprice",
    "avg_fill_price",
    "decimalfillavg",
)

COMMISSION_MATCHERS: tuple[ColumnMatcher, ...] = exact_names("commission", "fee", "fees")
