from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, StrictInt, StrictStr, Strict

# no lax coercion on upstream scalars: "2.5" or true is not a price, "6" is not decimals
UpstreamFloat = Annotated[FiniteFloat, Strict()]


class _UpstreamModel(BaseModel):
    # upstream rows are decoded fail-closed: unknown or missing fields are errors
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ChainRef(_UpstreamModel):
    id: StrictStr


class AssetRef(_UpstreamModel):
    id: StrictStr
    decimals: StrictInt


class PriceTokenRef(_UpstreamModel):
    price_id: StrictStr = Field(alias="priceId")


class TokenRecord(_UpstreamModel):
    id: StrictStr = Field(min_length=1)
    name: StrictStr
    code_hash: StrictStr | None = Field(alias="codeHash")
    contract_address: StrictStr | None = Field(alias="contractAddress")
    denom: StrictStr | None
    flags: list[StrictStr]
    symbol: StrictStr
    description: StrictStr
    chain: ChainRef = Field(alias="Chain")
    asset: AssetRef = Field(alias="Asset")
    logo_path: StrictStr | None = Field(alias="logoPath")
    price_token: list[PriceTokenRef] = Field(alias="PriceToken")


class PriceQuote(_UpstreamModel):
    id: StrictStr
    value: UpstreamFloat | None


class TokensData(_UpstreamModel):
    tokens: list[TokenRecord]


class PricesData(_UpstreamModel):
    prices: list[PriceQuote]


class TokensResponse(_UpstreamModel):
    data: TokensData
    errors: list[Any] | None = None


class PricesResponse(_UpstreamModel):
    data: PricesData
    errors: list[Any] | None = None


class MergedToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symbol: str
    description: str
    logo_path: str | None = None
    price: float


class Snapshot(BaseModel):
    """Sorted, immutable view published by the cache as a unit."""

    model_config = ConfigDict(frozen=True)

    tokens: tuple[MergedToken, ...] = ()
    version: int = 0
    published_at: float | None = None
