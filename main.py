"""Market CLI Entry Point.

This module is the bootstrap layer. It contains NO business logic - all
functional code resides in /market_cli.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Dispatch to the click command group
    4. Map fatal errors to exit codes

Usage:
    market-cli [snapshot|watch|add|list]
    # or
    python main.py watch
"""

import sys
from collections.abc import Sequence
from typing import NoReturn

import click
from loguru import logger

from config.settings import get_config
from market_cli.cli import cli
from market_cli.exceptions import (
    LoggingInitializationError,
    MarketCliError,
    UnboundGroupError,
)
from market_cli.logger import configure_logging


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Report a fatal error and exit.

    Args:
        exc: The exception that caused the fatal error.
    """
    if isinstance(exc, UnboundGroupError):
        logger.critical(
            "Watchlist configuration error - aggregation aborted",
            group=exc.group_key,
            message=exc.message,
        )
        click.secho(f"Error: {exc.message}", fg="red", err=True)
        sys.exit(2)

    if isinstance(exc, MarketCliError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        click.secho(f"Error: {exc.message}", fg="red", err=True)
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main(argv: Sequence[str] | None = None) -> int:
    """Application entry point.

    Args:
        argv: Command-line arguments (``sys.argv[1:]`` if None).

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # Step 1: Load configuration (validates via Pydantic)
    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    # Step 2: Initialize logging (fail-fast)
    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    # Step 3: Dispatch command
    try:
        result = cli.main(
            args=list(argv) if argv is not None else None,
            prog_name="market-cli",
            obj=config,
            standalone_mode=False,
        )
    except click.exceptions.Abort:
        logger.warning("Interrupted by user (Ctrl+C)")
        return 130  # Standard Unix SIGINT exit code
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C)")
        return 130
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except Exception as exc:
        _handle_fatal_error(exc)

    return result if isinstance(result, int) else 0


if __name__ == "__main__":
    sys.exit(main())
