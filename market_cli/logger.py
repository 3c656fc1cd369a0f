"""Structured JSON logging configuration using loguru.

Two sinks are installed at bootstrap:
- a colorized human-readable console sink on stderr
- a JSON-lines file sink with rotation, retention and gzip compression

Every record carries the ``run_id`` of the process that wrote it, so the
lines of one snapshot or watch session can be pulled out of a shared daily
file. Quote context (``source``, ``symbol``, ``group``, ``refresh``) is
lifted to top-level JSON keys; anything else bound stays under ``context``.

The log directory is validated up front; if logs cannot be written the
application refuses to start.
"""

import json
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from market_cli.exceptions import LoggingInitializationError

QUOTE_CONTEXT_KEYS = ("run_id", "refresh", "source", "symbol", "group")


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def _json_serializer(record: dict[str, Any]) -> str:
    """Format a loguru record as a single JSON line.

    Args:
        record: Loguru record dictionary containing log metadata.

    Returns:
        JSON-formatted string representation of the log record.
    """
    subset = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    extra = {k: v for k, v in record["extra"].items() if k != "serialized"}
    for key in QUOTE_CONTEXT_KEYS:
        if key in extra:
            subset[key] = extra.pop(key)

    if record["exception"] is not None:
        subset["exception"] = {
            "type": record["exception"].type.__name__ if record["exception"].type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
            "traceback": record["exception"].traceback is not None,
        }

    if extra:
        subset["context"] = extra

    return json.dumps(subset, default=str, ensure_ascii=False) + "\n"

def _validate_log_directory(log_dir: Path) -> None:
    """Validate log directory exists and is writable.

    Args:
        log_dir: Path to the log directory.

    Raises:
        LoggingInitializationError: If directory creation or write test fails.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)

        test_file = log_dir / ".write_test"
        test_file.write_text("write_test")
        test_file.unlink()

    except PermissionError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"Permission denied: {exc}",
        ) from exc
    except OSError as exc:
        raise LoggingInitializationError(
            log_dir=str(log_dir),
            reason=f"OS error during directory validation: {exc}",
        ) from exc


def configure_logging(config: GlobalConfig | None = None, run_id: str | None = None) -> str:
    """Initialize the logging infrastructure for one CLI run.

    Should be called once during bootstrap, before any other module logs.

    Args:
        config: Optional GlobalConfig instance. If None, uses singleton.
        run_id: Identifier stamped on every record; generated if None.

    Returns:
        The run identifier in effect.

    Raises:
        LoggingInitializationError: If log directory validation fails.
    """
    if config is None:
        config = get_config()
    run_id = run_id or new_run_id()

    logger.remove()

    _validate_log_directory(config.log_dir)

    logger.configure(extra={"run_id": run_id})

    console_format = (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>{extra[run_id]}</magenta> | "
        "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=console_format,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    log_file_path = config.log_dir / "market_cli_{time:YYYY-MM-DD}.json"

    logger.add(
        str(log_file_path),
        format="{extra[serialized]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        serialize=False,
        filter=lambda record: record["extra"].update(serialized=_json_serializer(record)) or True,
    )

    logger.info(
        "Logging initialized",
        app_name=config.app_name,
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
        watchlist_path=str(config.watchlist_path),
    )
    return run_id


def get_logger(name: str) -> "logger":
    """Get a logger bound with the module name.

    Args:
        name: Module or component name for log attribution.

    Returns:
        Loguru logger instance bound with the provided name context.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Quote unavailable", source="sina", symbol="sh600519")
    """
    return logger.bind(module=name)
