"""Quote source base classes implementing the Strategy Pattern.

Every upstream price family is wrapped behind the same contract,
``fetch(symbol) -> FetchOutcome``, so the aggregator never branches on
asset class. Concrete sources implement ``_fetch_quote``; the template
method ``fetch`` turns every failure into ``Unavailable``:

- symbol outside the source's resolvable set
- upstream "no data" response (``_fetch_quote`` returns None)
- request or parse errors raised by ``_fetch_quote``
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import httpx

from config.settings import GlobalConfig, get_config
from market_cli.exceptions import MarketCliError, SourceRequestError
from market_cli.logger import get_logger
from market_cli.models import UNAVAILABLE, FetchOutcome, Quote, Success

log = get_logger(__name__)


class QuoteSource(ABC):
    """Abstract base class for per-upstream quote sources.

    Attributes:
        config: GlobalConfig instance for runtime configuration.

    Example:
        class FixedSource(QuoteSource):
            name = "fixed"

            async def _fetch_quote(self, symbol: str) -> Quote | None:
                return Quote(price=1.0, percent_change=0.0)
    """

    name: str = "source"

    def __init__(self, config: GlobalConfig | None = None) -> None:
        self.config = config or get_config()

    def supports(self, symbol: str) -> bool:
        """Return True if ``symbol`` can be resolved by this source.

        Sources with a closed instrument set override this; the default
        passes every symbol through to the upstream.
        """
        return True

    @abstractmethod
    async def _fetch_quote(self, symbol: str) -> Quote | None:
        """Fetch and normalize one quote.

        Args:
            symbol: A symbol accepted by ``supports``.

        Returns:
            The normalized quote, or None when the upstream reports no data.

        Raises:
            SourceRequestError: If the upstream request fails.
            QuoteParseError: If the payload cannot be normalized.
        """
        ...

    async def fetch(self, symbol: str) -> FetchOutcome:
        """Fetch one symbol; never raises.

        Args:
            symbol: Source-specific symbol identifier.

        Returns:
            ``Success`` with the quote, or ``UNAVAILABLE``.
        """
        if not self.supports(symbol):
            log.info("Unknown symbol for source", source=self.name, symbol=symbol)
            return UNAVAILABLE

        try:
            quote = await self._fetch_quote(symbol)
        except MarketCliError as exc:
            log.info(
                "Quote unavailable",
                source=self.name,
                symbol=symbol,
                error_type=type(exc).__name__,
                error=exc.message,
            )
            return UNAVAILABLE
        except Exception as exc:
            log.warning(
                "Quote fetch failed unexpectedly",
                source=self.name,
                symbol=symbol,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return UNAVAILABLE

        if quote is None:
            log.info("Upstream returned no data", source=self.name, symbol=symbol)
            return UNAVAILABLE

        log.debug(
            "Quote fetched",
            source=self.name,
            symbol=symbol,
            price=quote.price,
            percent_change=quote.percent_change,
        )
        return Success(quote=quote)


class HttpQuoteSource(QuoteSource):
    """Quote source backed by a shared ``httpx.AsyncClient``.

    The client is owned by the caller (see ``Aggregator.create``) so one
    connection pool serves every source in an aggregation run.
    """

    def __init__(self, client: httpx.AsyncClient, config: GlobalConfig | None = None) -> None:
        super().__init__(config)
        self.client = client

    async def _get(
        self,
        symbol: str,
        url: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Issue a single GET, mapping transport and HTTP errors.

        Raises:
            SourceRequestError: On network failure, timeout or HTTP >= 400.
        """
        log.debug("Requesting quote", source=self.name, symbol=symbol, url=url)

        try:
            response = await self.client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise SourceRequestError(
                source=self.name,
                symbol=symbol,
                reason=f"timeout after {self.config.request_timeout_sec}s",
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceRequestError(source=self.name, symbol=symbol, reason=str(exc)) from exc

        if response.status_code >= 400:
            raise SourceRequestError(
                source=self.name,
                symbol=symbol,
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        return response
