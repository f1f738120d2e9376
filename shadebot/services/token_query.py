from __future__ import annotations

import math
from typing import Iterable

from shadebot.errors import TokenNotFoundError
from shadebot.schemas.token import MergedToken, Snapshot


def search(snapshot: Snapshot, query: str) -> list[MergedToken]:
    """Case-insensitive name substring match. A blank query matches nothing."""
    needle = (query or "").strip().lower()
    if not needle:
        return []
    return [row for row in snapshot.tokens if needle in row.name.lower()]


def find_price(snapshot: Snapshot, symbol: str) -> float:
    for row in snapshot.tokens:
        if row.symbol == symbol:
            return row.price
    raise TokenNotFoundError(symbol)


def compute_ratio(snapshot: Snapshot, base_symbol: str, quote_symbol: str) -> float:
    base_price = find_price(snapshot, base_symbol)
    quote_price = find_price(snapshot, quote_symbol)
    if quote_price == 0:
        # plain float semantics instead of ZeroDivisionError
        if base_price == 0:
            return math.nan
        return math.copysign(math.inf, math.copysign(1.0, base_price) * math.copysign(1.0, quote_price))
    return base_price / quote_price


def compute_ratios(
    snapshot: Snapshot, pairs: Iterable[tuple[str, str]]
) -> list[tuple[str, str, float]]:
    return [(base, quote, compute_ratio(snapshot, base, quote)) for base, quote in pairs]
