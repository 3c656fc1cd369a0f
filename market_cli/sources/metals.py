"""Precious-metals quote source.

NOT AUTHORITATIVE. No metals feed is queried: quotes are synthesized from a
fixed baseline per instrument plus a small random jitter, so the gold group
renders without a paid metals-API key. Replace with a real feed before
relying on these numbers.
"""

import random
from collections.abc import Mapping
from types import MappingProxyType
from typing import NamedTuple

from config.settings import GlobalConfig
from market_cli.models import Quote
from market_cli.sources.base import QuoteSource


class MetalBaseline(NamedTuple):
    price: float
    percent_change: float


class MetalsSource(QuoteSource):
    """Synthetic quotes for a closed set of metal instruments.

    A single draw ``v`` uniform in [-1, 1) moves the price by ``v`` and the
    change by ``v * CHANGE_SCALE``, so both move in the same direction.

    Attributes:
        rng: Random generator; pass a seeded ``random.Random`` for
            reproducible quotes.
    """

    name = "metals"

    BASELINES: Mapping[str, MetalBaseline] = MappingProxyType(
        {
            "XAUUSD": MetalBaseline(price=2650.0, percent_change=0.5),
            "AU9999": MetalBaseline(price=620.0, percent_change=0.3),
        }
    )
    VARIANCE = 1.0
    CHANGE_SCALE = 0.1

    def __init__(self, config: GlobalConfig | None = None, rng: random.Random | None = None) -> None:
        super().__init__(config)
        self.rng = rng or random.Random()

    def supports(self, symbol: str) -> bool:
        return symbol in self.BASELINES

    async def _fetch_quote(self, symbol: str) -> Quote | None:
        baseline = self.BASELINES[symbol]
        variance = (self.rng.random() - 0.5) * 2 * self.VARIANCE
        return Quote(
            price=baseline.price + variance,
            percent_change=baseline.percent_change + variance * self.CHANGE_SCALE,
        )
