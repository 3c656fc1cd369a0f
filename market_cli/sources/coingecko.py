"""Cryptocurrency quote source backed by the CoinGecko simple-price API."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from market_cli.exceptions import QuoteParseError
from market_cli.models import Quote
from market_cli.sources.base import HttpQuoteSource


class CryptoSource(HttpQuoteSource):
    """Quote source for a closed set of coins.

    Each symbol is fetched on its own even though the upstream accepts
    several ids per call; concurrency is the aggregator's concern.
    """

    name = "coingecko"

    COIN_IDS: Mapping[str, str] = MappingProxyType(
        {
            "bitcoin": "bitcoin",
            "ethereum": "ethereum",
            "solana": "solana",
        }
    )

    def supports(self, symbol: str) -> bool:
        return symbol in self.COIN_IDS

    async def _fetch_quote(self, symbol: str) -> Quote | None:
        coin_id = self.COIN_IDS[symbol]
        currency = self.config.vs_currency

        response = await self._get(
            symbol,
            f"{self.config.coingecko_base_url}/simple/price",
            params={
                "ids": coin_id,
                "vs_currencies": currency,
                "include_24hr_change": "true",
            },
        )

        try:
            payload = response.json()
        except ValueError as exc:
            raise QuoteParseError(self.name, symbol, f"invalid JSON: {exc}") from exc

        return self.parse_payload(symbol, coin_id, payload)

    def parse_payload(self, symbol: str, coin_id: str, payload: Any) -> Quote | None:
        """Read ``{coin_id: {<cur>: price, <cur>_24h_change: change}}``.

        Returns:
            The quote, or None when ``coin_id`` is absent from the payload.

        Raises:
            QuoteParseError: If the payload is not an object, or the coin
                entry lacks a finite price or change.
        """
        if not isinstance(payload, Mapping):
            raise QuoteParseError(self.name, symbol, f"expected object, got {type(payload).__name__}")

        data = payload.get(coin_id)
        if data is None:
            return None
        if not isinstance(data, Mapping):
            raise QuoteParseError(self.name, symbol, f"entry for '{coin_id}' is not an object")

        currency = self.config.vs_currency
        # JSON numbers only: strict mode rejects strings and booleans
        try:
            return Quote.model_validate(
                {
                    "price": data.get(currency),
                    "percent_change": data.get(f"{currency}_24h_change"),
                },
                strict=True,
            )
        except ValidationError as exc:
            raise QuoteParseError(
                self.name, symbol, f"missing or invalid {currency} fields: {exc.error_count()} error(s)"
            ) from exc
