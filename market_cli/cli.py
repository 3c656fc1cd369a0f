"""Command-line interface.

Usage:
    market-cli                 # one snapshot of every market
    market-cli watch           # refresh every 5 seconds
    market-cli add sh600519 贵州茅台 stocks
    market-cli list
"""

import asyncio

import click

from config.settings import GlobalConfig, get_config
from market_cli.aggregator import BOUND_GROUP_KEYS
from market_cli.logger import get_logger
from market_cli.pipeline import run_snapshot, run_watch
from market_cli.presenter import TerminalPresenter
from market_cli.watchlist import add_symbol, load_watchlist

log = get_logger(__name__)


def _config(ctx: click.Context) -> GlobalConfig:
    if not isinstance(ctx.obj, GlobalConfig):
        ctx.obj = get_config()
    return ctx.obj


@click.group(invoke_without_command=True)
@click.version_option(version="1.0.0", prog_name="market-cli")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """📊 Market price watcher: A-shares, HK stocks, gold and crypto.

    \b
    Edit the watchlist file (WATCHLIST_PATH, default config/watchlist.json)
    or use `add` to customize the symbols shown.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(snapshot)


@cli.command()
@click.pass_context
def snapshot(ctx: click.Context) -> None:
    """Fetch and print all prices once."""
    config = _config(ctx)
    watchlist = load_watchlist(config.watchlist_path)
    asyncio.run(run_snapshot(watchlist, TerminalPresenter(config), config))


@cli.command()
@click.option(
    "--interval",
    "-i",
    type=click.FloatRange(min=0.5),
    default=None,
    help="Seconds between refreshes (default: WATCH_INTERVAL_SEC).",
)
@click.option(
    "--count",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Stop after this many refreshes (default: WATCH_MAX_REFRESHES).",
)
@click.pass_context
def watch(ctx: click.Context, interval: float | None, count: int | None) -> None:
    """Refresh prices on a fixed interval until Ctrl+C."""
    config = _config(ctx)
    watchlist = load_watchlist(config.watchlist_path)
    presenter = TerminalPresenter(config)

    click.secho("🔄 Watch mode (Ctrl+C to exit)", fg="yellow")
    try:
        asyncio.run(
            run_watch(
                watchlist,
                presenter,
                config,
                interval_sec=interval,
                max_refreshes=count,
            )
        )
    except KeyboardInterrupt:
        log.info("Watch mode interrupted by user")
        click.echo("\n👋 Stopped watching")


@cli.command()
@click.argument("symbol")
@click.argument("name")
@click.argument("market", type=click.Choice(BOUND_GROUP_KEYS), default="stocks")
@click.pass_context
def add(ctx: click.Context, symbol: str, name: str, market: str) -> None:
    """Add SYMBOL (shown as NAME) to MARKET in the watchlist file.

    \b
    Examples:
        market-cli add sh600519 贵州茅台 stocks
        market-cli add hk00700 腾讯控股 hkstocks
    """
    config = _config(ctx)
    add_symbol(config.watchlist_path, market, symbol, name)
    click.secho(f"✅ Added {name} ({symbol}) to {market}", fg="green")


@cli.command(name="list")
@click.pass_context
def list_watchlist(ctx: click.Context) -> None:
    """Print the active watchlist without fetching prices."""
    config = _config(ctx)
    TerminalPresenter(config).display_watchlist(load_watchlist(config.watchlist_path))
