"""Quote sources, one per upstream price family."""

from market_cli.sources.base import HttpQuoteSource, QuoteSource
from market_cli.sources.coingecko import CryptoSource
from market_cli.sources.metals import MetalsSource
from market_cli.sources.sina import RegionalExchangeSource

__all__ = [
    "CryptoSource",
    "HttpQuoteSource",
    "MetalsSource",
    "QuoteSource",
    "RegionalExchangeSource",
]
