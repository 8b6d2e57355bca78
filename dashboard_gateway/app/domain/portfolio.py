"""
Portfolio entry model and normalization.

Entries arrive from the browser in whatever shape the UI produced; they are
coerced into a fixed record before being stored so that reading a portfolio
back always yields the same keys and types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

Number = Union[int, float]

INT64_MAX = 2 ** 63 - 1
INT64_MIN = -(2 ** 63)


@dataclass
class PortfolioEntry:
    """A single holding as stored in the document store."""

    id: str
    name: str
    symbol: str
    quantity: Number = 0
    cost: Optional[Number] = None
    cost_usd: Optional[Number] = None
    cost_currency: str = "INR"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "cost": self.cost,
            "costUsd": self.cost_usd,
            "costCurrency": self.cost_currency,
        }


def _storable(value: Number) -> Optional[Number]:
    """Keep ints within BSON's 8-byte range, widening larger ones to float."""
    if isinstance(value, int):
        if INT64_MIN <= value <= INT64_MAX:
            return value
        try:
            value = float(value)
        except OverflowError:
            return None
    return value if math.isfinite(value) else None


def _finite_number(value: Any) -> Optional[Number]:
    """Return ``value`` as a finite, storable int/float, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return _storable(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return _storable(int(text))
        except ValueError:
            pass
        try:
            return _storable(float(text))
        except ValueError:
            return None
    return None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _first_present(entry: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if entry.get(key):
            return entry[key]
    return None


def _as_mapping(entry: Any) -> Dict[str, Any]:
    return entry if isinstance(entry, dict) else {}


def normalize_entry(entry: Any, default_currency: str = "INR") -> PortfolioEntry:
    """Coerce a crypto holding into a ``PortfolioEntry``."""
    entry = _as_mapping(entry)
    quantity = _finite_number(entry.get("quantity"))
    currency = entry.get("costCurrency")

    return PortfolioEntry(
        id=_text(entry.get("id")),
        name=_text(entry.get("name")),
        symbol=_text(entry.get("symbol")),
        quantity=0 if quantity is None else quantity,
        cost=_finite_number(entry.get("cost")),
        cost_usd=_finite_number(entry.get("costUsd")),
        cost_currency=str(currency) if currency else default_currency,
    )


def normalize_stock_entry(entry: Any, default_currency: str = "INR") -> PortfolioEntry:
    """Coerce a stock holding; the ticker symbol doubles as its id."""
    entry = _as_mapping(entry)
    normalized = normalize_entry(entry, default_currency)
    normalized.id = _text(_first_present(entry, "symbol", "id"))
    normalized.name = _text(_first_present(entry, "name", "description"))
    return normalized


NORMALIZERS = {
    "crypto": normalize_entry,
    "stock": normalize_stock_entry,
}


def normalize_entries(kind: str, entries: Iterable[Any], default_currency: str) -> List[PortfolioEntry]:
    """Normalize a full portfolio submission for ``kind`` (crypto or stock)."""
    normalizer = NORMALIZERS[kind]
    return [normalizer(entry, default_currency) for entry in entries]
