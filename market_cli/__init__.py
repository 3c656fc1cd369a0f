"""Market CLI core package.

This package contains the components of the price watcher:
- sources: one quote source per upstream (Sina, CoinGecko, metals placeholder)
- aggregator: fetches a watchlist into an ordered Report
- models: Pydantic schemas for watchlists, quotes and reports
- watchlist: built-in defaults and watchlist file I/O
- presenter: colorized terminal rendering
- pipeline: snapshot and watch-mode orchestration
- cli: click command group
- logger: structured JSON logging configuration
- exceptions: custom exception hierarchy
"""

__version__ = "1.0.0"
