from __future__ import annotations

import math
import re
from typing import Any

LONG = "Long"
SHORT = "Short"

_NUMBER_NOISE_RE = re.compile(r"[^0-9.\-]")

SIDE_ALIASES = {
    "buy": LONG,
    "long": LONG,
    "sell": SHORT,
    "short": SHORT,
}


def parse_number(value: Any) -> float | None:
    """Parse loosely formatted numeric text such as ``"49,152.00 USD"`` or ``"$1.04"``.

    Everything except digits, ``.`` and ``-`` is discarded before parsing.
    """
    if value is None:
        return None
    text = _NUMBER_NOISE_RE.sub("", str(value))
    if not text:
        return None
    try:
        parsed = float(text)
    except ValueError:
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def normalize_side(value: Any) -> str:
    """Map buy/long and sell/short to ``Long``/``Short``; anything else passes through."""
    if value is None:
        return ""
    text = str(value)
    return SIDE_ALIASES.get(text.lower(), text)


def side_direction(value: Any) -> str | None:
    text = str(value or "").strip().lower()
    if text in {"long", "buy"}:
        return LONG
    if text in {"short", "sell"}:
        return SHORT
    return None


def is_futures_type(value: Any) -> bool:
    return "future" in str(value or "").lower()
