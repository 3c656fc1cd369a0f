"""Watchlist aggregation: dispatch every symbol to its quote source.

The aggregator holds a static binding from group key to quote source,
fans fetches out under a semaphore (or runs them one by one when
``concurrent_fetch`` is off), applies a per-fetch timeout, and re-assembles
outcomes into a Report in configured group/entry order.

Failure policy:
    - A symbol that fails becomes ``Unavailable``; nothing else is skipped.
    - A group key with no bound source raises ``UnboundGroupError`` before
      any fetch is issued.
"""

import asyncio
import random
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Self

import httpx

from config.settings import GlobalConfig, get_config
from market_cli.exceptions import UnboundGroupError
from market_cli.logger import get_logger
from market_cli.models import (
    UNAVAILABLE,
    FetchOutcome,
    Report,
    ReportLine,
    ReportSection,
    SymbolEntry,
    Watchlist,
)
from market_cli.sources import CryptoSource, MetalsSource, QuoteSource, RegionalExchangeSource

log = get_logger(__name__)

BOUND_GROUP_KEYS: tuple[str, ...] = ("stocks", "hkstocks", "gold", "crypto")


def build_sources(
    client: httpx.AsyncClient,
    config: GlobalConfig | None = None,
    rng: random.Random | None = None,
) -> dict[str, QuoteSource]:
    """Bind each known group key to its quote source.

    Mainland and Hong Kong stocks share one regional-exchange source.
    """
    config = config or get_config()
    regional = RegionalExchangeSource(client, config)
    return {
        "stocks": regional,
        "hkstocks": regional,
        "gold": MetalsSource(config, rng=rng),
        "crypto": CryptoSource(client, config),
    }


class Aggregator:
    """Fetches a whole watchlist into a Report.

    Attributes:
        sources: Group key to quote source binding.
        config: GlobalConfig with timeout and concurrency settings.

    Example:
        async with Aggregator.create() as aggregator:
            report = await aggregator.aggregate(watchlist)
    """

    def __init__(
        self,
        sources: Mapping[str, QuoteSource],
        config: GlobalConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.sources = dict(sources)

    @classmethod
    @asynccontextmanager
    async def create(
        cls,
        config: GlobalConfig | None = None,
        rng: random.Random | None = None,
    ) -> AsyncGenerator[Self, None]:
        """Build an aggregator around a shared HTTP client.

        The client is closed when the context exits.

        Args:
            config: Optional GlobalConfig. Uses singleton if not provided.
            rng: Optional random generator for the metals source.

        Yields:
            Aggregator bound to the default sources.
        """
        if config is None:
            config = get_config()

        async with httpx.AsyncClient(
            timeout=config.request_timeout_sec,
            follow_redirects=True,
        ) as client:
            log.debug("HTTP client opened", timeout_sec=config.request_timeout_sec)
            yield cls(build_sources(client, config, rng=rng), config)

        log.debug("HTTP client closed")

    def validate(self, watchlist: Watchlist) -> None:
        """Check every group key is bound to a source.

        Raises:
            UnboundGroupError: For the first unbound group key.
        """
        for key in watchlist.keys:
            if key not in self.sources:
                log.error("Watchlist group has no quote source", group=key)
                raise UnboundGroupError(group_key=key, known_keys=list(self.sources))

    async def aggregate(self, watchlist: Watchlist) -> Report:
        """Fetch every symbol of ``watchlist`` and build a Report.

        Args:
            watchlist: Validated watchlist.

        Returns:
            Report with one line per configured symbol, in configured order.

        Raises:
            UnboundGroupError: If a group key has no bound source.
        """
        self.validate(watchlist)

        jobs = [
            (self.sources[group.key], entry)
            for group in watchlist.groups
            for entry in group.entries
        ]

        log.info(
            "Aggregation started",
            groups=len(watchlist.groups),
            symbols=len(jobs),
            concurrent=self.config.concurrent_fetch,
        )

        if self.config.concurrent_fetch:
            semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)
            outcomes = await asyncio.gather(
                *(self._fetch_one(source, entry, semaphore) for source, entry in jobs)
            )
        else:
            outcomes = [await self._fetch_one(source, entry) for source, entry in jobs]

        remaining = iter(outcomes)
        sections = tuple(
            ReportSection(
                group=group,
                lines=tuple(
                    ReportLine(entry=entry, outcome=next(remaining))
                    for entry in group.entries
                ),
            )
            for group in watchlist.groups
        )
        report = Report(sections=sections, generated_at=datetime.now())

        log.info("Aggregation complete", **report.get_summary())
        return report

    async def _fetch_one(
        self,
        source: QuoteSource,
        entry: SymbolEntry,
        semaphore: asyncio.Semaphore | None = None,
    ) -> FetchOutcome:
        """Fetch one symbol, holding ``semaphore`` if given."""
        if semaphore is None:
            return await self._fetch_with_timeout(source, entry)
        async with semaphore:
            return await self._fetch_with_timeout(source, entry)

    async def _fetch_with_timeout(self, source: QuoteSource, entry: SymbolEntry) -> FetchOutcome:
        timeout = self.config.request_timeout_sec
        try:
            return await asyncio.wait_for(source.fetch(entry.symbol), timeout=timeout)
        except TimeoutError:
            log.info(
                "Quote fetch timed out",
                source=source.name,
                symbol=entry.symbol,
                timeout_sec=timeout,
            )
            return UNAVAILABLE
