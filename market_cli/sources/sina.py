"""Regional-exchange quote source for mainland and Hong Kong stocks.

Backed by the Sina real-time quote feed. A response looks like::

    var hq_str_sh600519="贵州茅台,1830.00,1835.00,1820.00,...";

The feed rejects requests that do not carry its ``Referer`` header.
"""

import re

from pydantic import ValidationError

from market_cli.exceptions import QuoteParseError
from market_cli.models import Quote
from market_cli.sources.base import HttpQuoteSource


class RegionalExchangeSource(HttpQuoteSource):
    """Quote source for exchange-prefixed tickers (``sh600519``, ``hk00700``).

    Symbols are passed through unvalidated. Field 1 of the quoted field
    list is read as the price and field 2 as the percent change.
    """

    name = "sina"

    NO_DATA_SENTINEL = "null"
    MIN_PAYLOAD_LENGTH = 32
    PRICE_FIELD = 1
    # Positional contract: for A-share symbols the upstream's field 2 is
    # actually the previous close, not a percent change.
    CHANGE_FIELD = 2

    _QUOTED = re.compile(r'"([^"]+)"')

    async def _fetch_quote(self, symbol: str) -> Quote | None:
        response = await self._get(
            symbol,
            f"{self.config.sina_base_url}{symbol}",
            headers={"Referer": self.config.sina_referer},
        )
        body = response.text

        if self.is_no_data(body):
            return None

        return self.parse_payload(symbol, body)

    def is_no_data(self, body: str) -> bool:
        """Return True for the feed's empty/null responses.

        Bodies mentioning ``null`` or shorter than ``MIN_PAYLOAD_LENGTH``
        are rejected before any parsing is attempted.
        """
        return self.NO_DATA_SENTINEL in body or len(body) < self.MIN_PAYLOAD_LENGTH

    def parse_payload(self, symbol: str, body: str) -> Quote:
        """Extract price and change from the first quoted field list.

        Args:
            symbol: Requested symbol, for error context.
            body: Raw response text.

        Returns:
            Quote built from the positional fields; trailing fields are ignored.

        Raises:
            QuoteParseError: If no quoted string is present, it has too few
                fields, or either field is not a finite number.
        """
        match = self._QUOTED.search(body)
        if match is None:
            raise QuoteParseError(self.name, symbol, "no quoted field list in response")

        fields = match.group(1).split(",")
        if len(fields) <= self.CHANGE_FIELD:
            raise QuoteParseError(
                self.name, symbol, f"expected at least {self.CHANGE_FIELD + 1} fields, got {len(fields)}"
            )

        try:
            return Quote(
                price=fields[self.PRICE_FIELD],
                percent_change=fields[self.CHANGE_FIELD],
            )
        except ValidationError as exc:
            raise QuoteParseError(self.name, symbol, f"non-numeric field: {exc.error_count()} error(s)") from exc
