"""Watchlist loading, defaults and persistence.

The built-in watchlist is produced by a pure factory. A user file, when
present and readable, is shallow-merged over it by group key; a missing or
unreadable file falls back to the defaults so aggregation never fails on
configuration I/O.
"""

import json
from pathlib import Path

from market_cli.exceptions import WatchlistWriteError
from market_cli.logger import get_logger
from market_cli.models import SymbolEntry, Watchlist, WatchlistGroup

log = get_logger(__name__)


def _group(key: str, name: str, *entries: tuple[str, str]) -> WatchlistGroup:
    return WatchlistGroup(
        key=key,
        display_name=name,
        entries=tuple(SymbolEntry(symbol=symbol, display_name=label) for symbol, label in entries),
    )


def default_watchlist() -> Watchlist:
    """Return the built-in watchlist.

    Returns:
        A fresh Watchlist covering all four bound groups.
    """
    return Watchlist(
        groups=(
            _group(
                "stocks",
                "A股",
                ("sh000001", "上证指数"),
                ("sz399001", "深证成指"),
                ("sz399006", "创业板指"),
                ("sh600519", "贵州茅台"),
                ("sz000001", "平安银行"),
            ),
            _group(
                "hkstocks",
                "港股",
                ("hkHSI", "恒生指数"),
                ("hk00700", "腾讯控股"),
            ),
            _group(
                "gold",
                "黄金",
                ("XAUUSD", "黄金/美元"),
                ("AU9999", "Au9999"),
            ),
            _group(
                "crypto",
                "加密货币",
                ("bitcoin", "BTC"),
                ("ethereum", "ETH"),
                ("solana", "SOL"),
            ),
        )
    )


def read_watchlist_file(path: Path) -> Watchlist | None:
    """Read a watchlist file without merging defaults.

    Args:
        path: JSON file in the ``{key: {"name", "symbols"}}`` layout.

    Returns:
        The parsed Watchlist, or None if the file is missing or unreadable.
    """
    if not path.exists():
        log.debug("No watchlist file found", path=str(path))
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Watchlist.from_mapping(data)
    except (OSError, ValueError) as exc:
        log.warning(
            "Watchlist file unreadable, using defaults",
            path=str(path),
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return None


def load_watchlist(path: Path) -> Watchlist:
    """Return the active watchlist: defaults with the user file merged over.

    Args:
        path: Watchlist file location.

    Returns:
        Merged Watchlist; the defaults alone if the file is missing or bad.
    """
    defaults = default_watchlist()
    custom = read_watchlist_file(path)
    if custom is None:
        return defaults

    merged = defaults.merged_with(custom)
    log.debug(
        "Watchlist loaded",
        path=str(path),
        groups=merged.keys,
        symbols=merged.symbol_count,
    )
    return merged


def save_watchlist(path: Path, watchlist: Watchlist) -> Path:
    """Write ``watchlist`` as indented JSON, creating parent directories.

    Raises:
        WatchlistWriteError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(watchlist.to_mapping(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as exc:
        raise WatchlistWriteError(path=str(path), reason=str(exc)) from exc

    log.info("Watchlist saved", path=str(path), symbols=watchlist.symbol_count)
    return path


def add_symbol(path: Path, group_key: str, symbol: str, display_name: str) -> Watchlist:
    """Append a symbol to the watchlist file.

    The file's current content is used as the base (the defaults when the
    file is missing or unreadable). A missing group is created, named after
    the matching default group when there is one.

    Args:
        path: Watchlist file location.
        group_key: Group to append to.
        symbol: Source-specific identifier.
        display_name: Label shown in the terminal.

    Returns:
        The watchlist as written.

    Raises:
        WatchlistWriteError: If the file cannot be written.
    """
    base = read_watchlist_file(path) or default_watchlist()
    default_group = default_watchlist().get(group_key)

    updated = base.with_entry(
        group_key,
        SymbolEntry(symbol=symbol, display_name=display_name),
        display_name=default_group.display_name if default_group else None,
    )
    save_watchlist(path, updated)
    return updated
