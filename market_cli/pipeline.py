"""Snapshot and watch-mode orchestration.

A snapshot is one aggregation pass handed to the presenter. Watch mode
repeats snapshots on a fixed interval over a single HTTP client, clearing
the screen between refreshes.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

import click

from config.settings import GlobalConfig, get_config
from market_cli.aggregator import Aggregator
from market_cli.logger import get_logger
from market_cli.models import Report, Watchlist
from market_cli.presenter import TerminalPresenter

log = get_logger(__name__)


async def run_snapshot(
    watchlist: Watchlist,
    presenter: TerminalPresenter,
    config: GlobalConfig | None = None,
) -> Report:
    """Fetch the whole watchlist once and display it.

    Raises:
        UnboundGroupError: If a group key has no bound source.
    """
    config = config or get_config()

    async with Aggregator.create(config) as aggregator:
        report = await aggregator.aggregate(watchlist)

    presenter.display(report)
    return report


async def run_watch(
    watchlist: Watchlist,
    presenter: TerminalPresenter,
    config: GlobalConfig | None = None,
    interval_sec: float | None = None,
    max_refreshes: int | None = None,
    clear: Callable[[], None] = click.clear,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Refresh the snapshot every ``interval_sec`` seconds.

    Args:
        watchlist: Watchlist to fetch on every refresh.
        presenter: Presenter used for output.
        config: Optional GlobalConfig. Uses singleton if not provided.
        interval_sec: Delay between refreshes (config default if None).
        max_refreshes: Refresh count after which the loop stops.
        clear: Screen clearer, injectable for tests.
        sleep: Async sleeper, injectable for tests.

    Returns:
        Number of refreshes performed.

    Raises:
        UnboundGroupError: If a group key has no bound source.
    """
    config = config or get_config()
    interval_sec = interval_sec if interval_sec is not None else config.watch_interval_sec
    max_refreshes = max_refreshes if max_refreshes is not None else config.watch_max_refreshes

    log.info("Watch mode started", interval_sec=interval_sec, max_refreshes=max_refreshes)

    refreshes = 0
    async with Aggregator.create(config) as aggregator:
        while refreshes < max_refreshes:
            refreshes += 1
            with log.contextualize(refresh=refreshes):
                report = await aggregator.aggregate(watchlist)

            clear()
            presenter.echo(click.style(f"📊 Market CLI - refresh #{refreshes}", fg="cyan"))
            presenter.display(report)
            presenter.echo(
                click.style(f"⏰ {datetime.now():%H:%M:%S} | Ctrl+C to exit", fg="cyan")
            )

            if refreshes < max_refreshes:
                await sleep(interval_sec)

    log.info("Watch mode finished", refreshes=refreshes)
    return refreshes
