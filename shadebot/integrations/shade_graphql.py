from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ValidationError

from shadebot.config.settings import DEFAULT_SHADE_API_URL
from shadebot.errors import DecodeError, HttpStatusError, NetworkError
from shadebot.schemas.token import PriceQuote, PricesResponse, TokenRecord, TokensResponse

TOKENS_QUERY = """
query getTokens {
    tokens {
        id
        name
        codeHash
        contractAddress
        denom
        flags
        symbol
        description
        Chain {
            id
        }
        Asset {
            id
            decimals
        }
        logoPath
        PriceToken {
            priceId
        }
    }
}
"""

PRICES_QUERY = """
query getPrices($ids: [String!]) {
    prices(query: {ids: $ids}) {
        id
        value
    }
}
"""


class ShadeGraphqlClient:
    """One-shot Shade GraphQL reads for token metadata and price quotes.

    Every call either returns the full decoded listing or raises a
    ``FetchError`` subclass. Retrying is left to the caller.
    """

    def __init__(
        self,
        url: str = DEFAULT_SHADE_API_URL,
        *,
        session: Optional[Any] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self.session = session or requests
        self.timeout = timeout

    def _post(self, operation_name: str, query: str, variables: Dict[str, Any]) -> Any:
        try:
            response = self.session.post(
                self.url,
                headers={"content-type": "application/json"},
                json={
                    "operationName": operation_name,
                    "variables": variables,
                    "query": query,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            print(f"[SHADE][request_error] operation={operation_name} error={exc}", flush=True)
            raise NetworkError(operation=operation_name, detail=str(exc)) from exc

        status_code = response.status_code
        if not 200 <= status_code < 300:
            print(f"[SHADE][http_status] operation={operation_name} status={status_code}", flush=True)
            raise HttpStatusError(status_code, operation=operation_name)

        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(operation=operation_name, detail=f"invalid json body: {exc}") from exc

    @staticmethod
    def _decode(operation_name: str, payload: Any, model: type[BaseModel]) -> Any:
        if not isinstance(payload, dict):
            raise DecodeError(operation=operation_name, detail="response body must be an object")

        errors = payload.get("errors")
        if errors:
            raise DecodeError(operation=operation_name, detail=f"graphql errors: {errors}")

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise DecodeError(
                operation=operation_name,
                detail=f"{exc.error_count()} schema error(s): {exc.errors()[0]['msg']}",
            ) from exc

    def fetch_tokens(self) -> list[TokenRecord]:
        payload = self._post("getTokens", TOKENS_QUERY, {})
        envelope = self._decode("getTokens", payload, TokensResponse)
        tokens = envelope.data.tokens
        print(f"[SHADE][fetch_tokens] count={len(tokens)}", flush=True)
        return tokens

    def fetch_prices(self) -> list[PriceQuote]:
        payload = self._post("getPrices", PRICES_QUERY, {"ids": []})
        envelope = self._decode("getPrices", payload, PricesResponse)
        prices = envelope.data.prices
        print(f"[SHADE][fetch_prices] count={len(prices)}", flush=True)
        return prices
