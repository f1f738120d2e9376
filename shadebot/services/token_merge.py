from __future__ import annotations

from typing import Iterable, Sequence

from shadebot.schemas.token import MergedToken, PriceQuote, Snapshot, TokenRecord

LP_NAME_MARKER = "SHADESWAP Liquidity Provider (LP)"


def build_price_map(prices: Iterable[PriceQuote]) -> dict[str, float | None]:
    price_map: dict[str, float | None] = {}
    for quote in prices:
        # last write wins on duplicate ids
        price_map[quote.id] = quote.value
    return price_map


def resolve_price(token: TokenRecord, price_map: dict[str, float | None]) -> float | None:
    """Return the first linked price that has a value, or None."""
    for ref in token.price_token:
        value = price_map.get(ref.price_id)
        if value is not None:
            return value
    return None


def is_excluded(name: str, markers: Sequence[str]) -> bool:
    return any(marker and marker in name for marker in markers)


def merge_tokens(
    tokens: Iterable[TokenRecord],
    prices: Iterable[PriceQuote],
    *,
    exclude_markers: Sequence[str] = (LP_NAME_MARKER,),
) -> tuple[MergedToken, ...]:
    price_map = build_price_map(prices)

    seen_ids: set[str] = set()
    merged: list[MergedToken] = []
    for token in tokens:
        if token.id in seen_ids or is_excluded(token.name, exclude_markers):
            continue

        price = resolve_price(token, price_map)
        if price is None:
            continue
        # first eligible row per id wins
        seen_ids.add(token.id)

        merged.append(
            MergedToken(
                id=token.id,
                name=token.name,
                symbol=token.symbol,
                description=token.description,
                logo_path=token.logo_path,
                price=price,
            )
        )

    # list.sort is stable, ties keep upstream order
    merged.sort(key=lambda row: row.name.lower())
    return tuple(merged)


def build_snapshot(
    tokens: Iterable[TokenRecord],
    prices: Iterable[PriceQuote],
    *,
    version: int,
    published_at: float | None = None,
    exclude_markers: Sequence[str] = (LP_NAME_MARKER,),
) -> Snapshot:
    return Snapshot(
        tokens=merge_tokens(tokens, prices, exclude_markers=exclude_markers),
        version=version,
        published_at=published_at,
    )
