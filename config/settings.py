"""Global configuration management using pydantic-settings.

Values are loaded from environment variables (and an optional ``.env`` file)
with strict type validation. A cached singleton keeps configuration state
consistent across the application.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GlobalConfig(BaseSettings):
    """Centralized configuration with environment variable binding.

    Attributes:
        app_name: Application identifier for logging.
        environment: Deployment environment.
        debug: Enable verbose debugging output.
        log_level: Minimum log level for output filtering.
        log_dir: Directory path for structured JSON log files.
        log_rotation: Log file rotation interval.
        log_retention: Log file retention period.
        watchlist_path: JSON file holding the user's watchlist.
        sina_base_url: Real-time quote endpoint for mainland and HK stocks.
        sina_referer: Referer header the quote endpoint requires.
        coingecko_base_url: Market-data aggregator API root.
        vs_currency: Fiat currency crypto prices are denominated in.
        request_timeout_sec: Per-fetch timeout.
        max_concurrent_requests: Semaphore limit for in-flight fetches.
        concurrent_fetch: Fan fetches out concurrently (False = one by one).
        watch_interval_sec: Delay between refreshes in watch mode.
        watch_max_refreshes: Refresh count after which watch mode stops.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Metadata
    app_name: str = Field(default="Market-CLI", description="Application identifier")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Minimum log level"
    )
    log_dir: Path = Field(default=Path("logs"), description="Log output directory")
    log_rotation: str = Field(default="1 week", description="Log rotation interval")
    log_retention: str = Field(default="1 month", description="Log retention period")

    # Watchlist
    watchlist_path: Path = Field(
        default=Path("config") / "watchlist.json",
        description="User watchlist file",
    )

    # Upstream Sources
    sina_base_url: str = Field(
        default="https://hq.sinajs.cn/list=",
        description="Regional-exchange quote endpoint (symbol is appended)",
    )
    sina_referer: str = Field(
        default="http://finance.sina.com.cn",
        description="Referer required by the quote endpoint",
    )
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Crypto market-data API root",
    )
    vs_currency: str = Field(default="cny", min_length=1, description="Crypto quote currency")

    # Fetch Behaviour
    request_timeout_sec: float = Field(
        default=5.0, gt=0.0, le=60.0, description="Per-fetch timeout in seconds"
    )
    max_concurrent_requests: int = Field(
        default=8, ge=1, le=32, description="Async semaphore limit"
    )
    concurrent_fetch: bool = Field(
        default=True, description="Fetch symbols concurrently"
    )

    # Watch Mode
    watch_interval_sec: float = Field(
        default=5.0, ge=0.5, le=3600.0, description="Seconds between refreshes"
    )
    watch_max_refreshes: int = Field(
        default=100, ge=1, description="Refreshes before watch mode stops"
    )

    @field_validator("log_dir", "watchlist_path", mode="before")
    @classmethod
    def ensure_path(cls, value: str | Path) -> Path:
        """Convert string paths to Path objects."""
        return Path(value) if isinstance(value, str) else value

    @field_validator("coingecko_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Drop a trailing slash so endpoint paths join cleanly."""
        return value.rstrip("/")

    @field_validator("vs_currency")
    @classmethod
    def lowercase_currency(cls, value: str) -> str:
        """The aggregator keys its response fields by lowercase currency code."""
        return value.strip().lower()


@lru_cache(maxsize=1)
def get_config() -> GlobalConfig:
    """Retrieve the singleton GlobalConfig instance.

    Returns:
        GlobalConfig: The validated configuration instance.
    """
    return GlobalConfig()
