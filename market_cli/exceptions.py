"""Custom exception hierarchy for Market CLI.

Domain-specific exceptions carry contextual information (group, symbol,
source) to aid debugging. Only configuration-level errors ever reach the
command line: per-symbol fetch failures are absorbed inside the quote
sources and surface as ``Unavailable`` outcomes.
"""

from datetime import UTC, datetime
from typing import Any


class MarketCliError(Exception):
    """Base exception for all Market CLI errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class ConfigValidationError(MarketCliError):
    """Raised when a configuration value is rejected."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        super().__init__(
            message=f"Configuration validation failed for '{field}': {reason}",
            context={"field": field, "value": value, "reason": reason},
        )


class UnboundGroupError(ConfigValidationError):
    """Raised when a watchlist group key has no quote source bound to it.

    This aborts the whole aggregation run before any fetch is issued.
    """

    def __init__(self, group_key: str, known_keys: list[str]) -> None:
        super().__init__(
            field="watchlist",
            value=group_key,
            reason=(
                f"group '{group_key}' is not bound to any quote source "
                f"(expected one of: {', '.join(known_keys)})"
            ),
        )
        self.group_key = group_key


class WatchlistWriteError(MarketCliError):
    """Raised when the watchlist file cannot be written."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to write watchlist to '{path}': {reason}",
            context={"path": path, "reason": reason},
        )


class SourceRequestError(MarketCliError):
    """Raised inside a quote source when the upstream request fails.

    Never leaves the source: ``QuoteSource.fetch`` maps it to ``Unavailable``.
    """

    def __init__(self, source: str, symbol: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"{source} request for '{symbol}' failed: {reason}",
            context={"source": source, "symbol": symbol, "reason": reason, "status_code": status_code},
        )


class QuoteParseError(MarketCliError):
    """Raised inside a quote source when an upstream payload cannot be normalized.

    Never leaves the source: ``QuoteSource.fetch`` maps it to ``Unavailable``.
    """

    def __init__(self, source: str, symbol: str, reason: str) -> None:
        super().__init__(
            message=f"Cannot parse {source} quote for '{symbol}': {reason}",
            context={"source": source, "symbol": symbol, "reason": reason},
        )


class LoggingInitializationError(MarketCliError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
