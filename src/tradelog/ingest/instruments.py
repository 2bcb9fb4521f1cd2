"""Ticker canonicalization and per-point dollar multipliers.

Instruments live in a data table. A raw ticker collapses to a registered
root when it contains an exchange-qualified form of the root (for example
``CME_MINI:NQ1!``) or when it starts with the root. Longer roots are tried
first, so micro contracts (``MNQZ5``) never collapse onto the full-size root.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from tradelog.config.settings import Settings, get_settings
from tradelog.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MULTIPLIER = 1.0


@dataclass(frozen=True)
class InstrumentSpec:
    root: str
    multiplier: float
    qualifiers: tuple[str, ...] = field(default_factory=tuple)

    def qualified_forms(self) -> tuple[str, ...]:
        return tuple(f"{prefix.upper()}:{self.root}" for prefix in self.qualifiers)


DEFAULT_INSTRUMENTS: tuple[InstrumentSpec, ...] = (
    InstrumentSpec(root="NQ", multiplier=20.0, qualifiers=("CME_MINI",)),
    InstrumentSpec(root="MNQ", multiplier=1.0),
)


class InstrumentTable:
    def __init__(self, specs: tuple[InstrumentSpec, ...] | list[InstrumentSpec] = DEFAULT_INSTRUMENTS) -> None:
        self._specs: dict[str, InstrumentSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: InstrumentSpec) -> None:
        root = spec.root.strip().upper()
        if not root:
            raise ValueError("Instrument root is required.")
        if spec.multiplier <= 0:
            raise ValueError(f"Multiplier for {root} must be > 0.")
        self._specs[root] = InstrumentSpec(
            root=root,
            multiplier=float(spec.multiplier),
            qualifiers=tuple(spec.qualifiers),
        )

    def roots(self) -> list[str]:
        return sorted(self._specs, key=lambda root: (-len(root), root))

    def normalize_ticker(self, raw: str | None) -> str:
        if not raw:
            return ""
        trimmed = str(raw).strip()
        if not trimmed:
            return ""
        upper = trimmed.upper()

        ordered = [self._specs[root] for root in self.roots()]
        for spec in ordered:
            if any(form in upper for form in spec.qualified_forms()):
                return spec.root
        for spec in ordered:
            if upper.startswith(spec.root):
                return spec.root
        return trimmed

    def multiplier_for(self, ticker: str | None) -> float:
        canonical = self.normalize_ticker(ticker).upper()
        spec = self._specs.get(canonical)
        return spec.multiplier if spec is not None else DEFAULT_MULTIPLIER


def _spec_from_payload(payload: object) -> InstrumentSpec | None:
    if not isinstance(payload, dict):
        return None
    root = str(payload.get("root", "") or "").strip()
    try:
        multiplier = float(payload.get("multiplier"))
    except (TypeError, ValueError):
        return None
    qualifiers = payload.get("qualifiers") or []
    if not root or multiplier <= 0 or not isinstance(qualifiers, list):
        return None
    return InstrumentSpec(
        root=root,
        multiplier=multiplier,
        qualifiers=tuple(str(item) for item in qualifiers if str(item).strip()),
    )


def load_instrument_file(path: Path) -> list[InstrumentSpec]:
    loaded = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(loaded, list):
        raise ValueError(f"Instrument file {path} must contain a JSON list.")
    specs: list[InstrumentSpec] = []
    for index, payload in enumerate(loaded):
        spec = _spec_from_payload(payload)
        if spec is None:
            logger.warning("Skipping malformed instrument entry %d in %s", index, path)
            continue
        specs.append(spec)
    return specs


def load_instrument_table(settings: Settings | None = None) -> InstrumentTable:
    resolved = settings or get_settings()
    table = InstrumentTable()
    if resolved.instruments_file is None:
        return table
    for spec in load_instrument_file(resolved.instruments_file):
        table.register(spec)
    logger.info("Loaded instrument overrides from %s", resolved.instruments_file)
    return table
