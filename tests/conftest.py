"""Pytest configuration and shared fixtures for the Market CLI test suite.

This module provides hermetic test infrastructure with the following guarantees:
- No external network requests (stub sources or httpx.MockTransport)
- Deterministic execution (seeded randomness, stubbed latency)
- Isolated state (fresh config singleton, tmp_path for files)
"""

import asyncio
import sys
from collections.abc import AsyncGenerator, Callable, Mapping
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from config.settings import GlobalConfig
from market_cli.aggregator import Aggregator
from market_cli.models import Quote, SymbolEntry, Watchlist, WatchlistGroup
from market_cli.sources.base import QuoteSource


class StubSource(QuoteSource):
    """Deterministic quote source for aggregator and pipeline tests.

    ``results`` maps symbol to a Quote, None (upstream "no data") or an
    exception instance to raise. ``delays`` maps symbol to seconds of
    simulated latency.
    """

    name = "stub"

    def __init__(
        self,
        config: GlobalConfig | None = None,
        results: Mapping[str, Any] | None = None,
        delays: Mapping[str, float] | None = None,
        known: set[str] | None = None,
    ) -> None:
        super().__init__(config)
        self.results = dict(results or {})
        self.delays = dict(delays or {})
        self.known = known
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def supports(self, symbol: str) -> bool:
        return self.known is None or symbol in self.known

    async def _fetch_quote(self, symbol: str) -> Quote | None:
        self.calls.append(symbol)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(symbol, 0.0)
            if delay:
                await asyncio.sleep(delay)
            result = self.results.get(symbol)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.in_flight -= 1


@pytest.fixture
def mock_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> GlobalConfig:
    """Provide isolated GlobalConfig with safe test defaults.

    Clears the lru_cache singleton before and after the test and points
    every file location at tmp_path.
    """
    from config.settings import get_config

    get_config.cache_clear()

    log_dir = tmp_path / "logs"
    log_dir.mkdir()

    test_env = {
        "APP_NAME": "Market-CLI",
        "ENVIRONMENT": "development",
        "DEBUG": "false",
        "LOG_LEVEL": "DEBUG",
        "LOG_DIR": str(log_dir),
        "LOG_ROTATION": "1 day",
        "LOG_RETENTION": "1 day",
        "WATCHLIST_PATH": str(tmp_path / "config" / "watchlist.json"),
        "REQUEST_TIMEOUT_SEC": "1.0",
        "MAX_CONCURRENT_REQUESTS": "4",
        "CONCURRENT_FETCH": "true",
        "WATCH_INTERVAL_SEC": "0.5",
        "WATCH_MAX_REFRESHES": "2",
    }

    for key, value in test_env.items():
        monkeypatch.setenv(key, value)

    config = get_config()

    yield config

    get_config.cache_clear()


@pytest.fixture(autouse=True)
def reset_logger() -> None:
    """Restore loguru's default stderr sink after tests that reconfigure it."""
    yield
    logger.remove()
    logger.configure(extra={})
    logger.add(sys.stderr)


@pytest.fixture
def quote() -> Callable[[float, float], Quote]:
    """Factory for Quote instances."""

    def _quote(price: float, percent_change: float) -> Quote:
        return Quote(price=price, percent_change=percent_change)

    return _quote


@pytest.fixture
def watchlist_factory() -> Callable[..., Watchlist]:
    """Factory building a Watchlist from ``{group_key: [symbol, ...]}``.

    Display names are the upper-cased symbols; group names are the keys.
    """

    def _build(groups: Mapping[str, list[str]]) -> Watchlist:
        return Watchlist(
            groups=tuple(
                WatchlistGroup(
                    key=key,
                    display_name=key,
                    entries=tuple(SymbolEntry(symbol=s, display_name=s.upper()) for s in symbols),
                )
                for key, symbols in groups.items()
            )
        )

    return _build


@pytest.fixture
def stub_aggregator_factory(
    mock_config: GlobalConfig,
) -> Callable[[Mapping[str, QuoteSource]], Callable[..., Any]]:
    """Factory producing a drop-in replacement for ``Aggregator.create``.

    Example:
        mocker.patch(
            "market_cli.pipeline.Aggregator.create",
            stub_aggregator_factory({"stocks": StubSource(...)}),
        )
    """

    def _factory(sources: Mapping[str, QuoteSource]) -> Callable[..., Any]:
        @asynccontextmanager
        async def _create(config: GlobalConfig | None = None, rng: Any = None) -> AsyncGenerator[Aggregator, None]:
            yield Aggregator(sources, config or mock_config)

        return _create

    return _factory


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests requiring full stack",
    )
