"""Tests for the quote sources.

Validates each source's wire contract and failure absorption:
- Sina: Referer header, positional field parsing, no-data sentinel
- CoinGecko: allow-list, query parameters, keyed response lookup
- Metals: seeded determinism, bounded jitter, closed instrument set

Network is replaced by httpx.MockTransport; no request leaves the process.
"""

import random
from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest
from hypothesis import given, settings, strategies as st
from loguru import logger
from pytest_mock import MockerFixture

from config.settings import GlobalConfig
from market_cli.exceptions import QuoteParseError
from market_cli.models import UNAVAILABLE, Quote, Success
from market_cli.sources import CryptoSource, MetalsSource, RegionalExchangeSource

Handler = Callable[[httpx.Request], httpx.Response]


def mock_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class CallCounter:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, respond: Handler) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


class TestRegionalExchangeSource:
    """Test suite for the Sina quote feed."""

    @pytest.mark.asyncio
    async def test_request_carries_referer_header(self, mock_config: GlobalConfig) -> None:
        handler = CallCounter(
            lambda request: httpx.Response(
                200, text='var hq_str_sh600519="贵州茅台,1830.00,1835.00,1820.00";'
            )
        )

        async with mock_client(handler) as client:
            outcome = await RegionalExchangeSource(client, mock_config).fetch("sh600519")

        assert outcome.is_available
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert str(request.url) == "https://hq.sinajs.cn/list=sh600519"
        assert request.headers["Referer"] == "http://finance.sina.com.cn"

    @pytest.mark.asyncio
    async def test_fields_are_read_positionally(self, mock_config: GlobalConfig) -> None:
        """Field 2 is taken as the change even when it looks like a price."""
        body = 'sh600519="贵州茅台,1830.00,1835.00,1820.00"'

        async with mock_client(lambda request: httpx.Response(200, text=body)) as client:
            outcome = await RegionalExchangeSource(client, mock_config).fetch("sh600519")

        assert outcome == Success(quote=Quote(price=1830.00, percent_change=1835.00))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            'var hq_str_sh600519="null,1830.00,1835.00,1820.00,1,2,3";',
            'var hq_str_sz000000="";',
            "short",
        ],
    )
    async def test_no_data_responses_skip_parser(
        self, mock_config: GlobalConfig, mocker: MockerFixture, body: str
    ) -> None:
        async with mock_client(lambda request: httpx.Response(200, text=body)) as client:
            source = RegionalExchangeSource(client, mock_config)
            parse_spy = mocker.spy(source, "parse_payload")

            outcome = await source.fetch("sh600519")

        assert outcome == UNAVAILABLE
        parse_spy.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            "no quoted field list anywhere in this body at all",
            'var hq_str_sh600519="only-one-field-in-this-list-here";',
            'var hq_str_sh600519="贵州茅台,1830.00";  padding padding',
            'var hq_str_sh600519="贵州茅台,abc,1.25,1820.00";',
            'var hq_str_sh600519="贵州茅台,1830.00,,1820.00";',
        ],
    )
    async def test_malformed_payloads_are_unavailable(
        self, mock_config: GlobalConfig, body: str
    ) -> None:
        async with mock_client(lambda request: httpx.Response(200, text=body)) as client:
            outcome = await RegionalExchangeSource(client, mock_config).fetch("sh600519")

        assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length, parsed", [(31, False), (32, True)])
    async def test_minimum_payload_length_boundary(
        self, mock_config: GlobalConfig, mocker: MockerFixture, length: int, parsed: bool
    ) -> None:
        body = 'v="NAME,1830.00,1.25";'.ljust(length)
        assert len(body) == length

        async with mock_client(lambda request: httpx.Response(200, text=body)) as client:
            source = RegionalExchangeSource(client, mock_config)
            parse_spy = mocker.spy(source, "parse_payload")

            outcome = await source.fetch("sh600519")

        assert parse_spy.called is parsed
        if parsed:
            assert outcome == Success(quote=Quote(price=1830.00, percent_change=1.25))
        else:
            assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    async def test_http_error_status_is_unavailable(self, mock_config: GlobalConfig) -> None:
        async with mock_client(lambda request: httpx.Response(403, text="Forbidden")) as client:
            outcome = await RegionalExchangeSource(client, mock_config).fetch("sh600519")

        assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    async def test_absorbed_failures_log_below_warning(self, mock_config: GlobalConfig) -> None:
        """Failed symbols must not print over the report at the default level."""
        levels: list[str] = []
        logger.add(lambda message: levels.append(message.record["level"].name), level="DEBUG")

        async with mock_client(lambda request: httpx.Response(403, text="Forbidden")) as client:
            source = RegionalExchangeSource(client, mock_config)
            await source.fetch("hk00700")
            await source.fetch("sh000000")

        assert "INFO" in levels
        assert "WARNING" not in levels

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
    async def test_network_failure_is_unavailable(
        self, mock_config: GlobalConfig, error: type[httpx.TransportError]
    ) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise error("boom", request=request)

        async with mock_client(handler) as client:
            outcome = await RegionalExchangeSource(client, mock_config).fetch("hk00700")

        assert outcome == UNAVAILABLE

    def test_parse_error_names_symbol(self) -> None:
        source = RegionalExchangeSource(MagicMock(spec=httpx.AsyncClient), GlobalConfig())

        with pytest.raises(QuoteParseError) as exc_info:
            source.parse_payload("sh600519", 'x="a,b"')

        assert exc_info.value.context["symbol"] == "sh600519"

    @settings(max_examples=50, deadline=None)
    @given(
        name=st.text(
            alphabet=st.characters(blacklist_characters='",', blacklist_categories=("Cs",)),
            min_size=1,
            max_size=12,
        ),
        price=st.floats(min_value=0, max_value=1e6, allow_nan=False),
        change=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
        trailing=st.lists(st.sampled_from(["1820.00", "2026-10-19", "15:00:03", "00", ""]), max_size=6),
    )
    def test_well_formed_payloads_parse_exactly(
        self, name: str, price: float, change: float, trailing: list[str]
    ) -> None:
        """Any ``symbol="Name,<price>,<change>,..."`` yields exactly price and change."""
        source = RegionalExchangeSource(MagicMock(spec=httpx.AsyncClient), GlobalConfig())
        price_text, change_text = f"{price:.3f}", f"{change:.3f}"
        fields = ",".join([name, price_text, change_text, *trailing])

        quote = source.parse_payload("sh000001", f'var hq_str_sh000001="{fields}";')

        assert quote == Quote(price=float(price_text), percent_change=float(change_text))


class TestCryptoSource:
    """Test suite for the CoinGecko simple-price source."""

    @pytest.mark.asyncio
    async def test_success_reads_price_and_24h_change(self, mock_config: GlobalConfig) -> None:
        handler = CallCounter(
            lambda request: httpx.Response(
                200, json={"bitcoin": {"cny": 435000.12, "cny_24h_change": -2.31}}
            )
        )

        async with mock_client(handler) as client:
            outcome = await CryptoSource(client, mock_config).fetch("bitcoin")

        assert outcome == Success(quote=Quote(price=435000.12, percent_change=-2.31))

        request = handler.requests[0]
        assert request.url.path == "/api/v3/simple/price"
        assert request.url.params["ids"] == "bitcoin"
        assert request.url.params["vs_currencies"] == "cny"
        assert request.url.params["include_24hr_change"] == "true"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["dogecoin", "BTC", "Bitcoin", ""])
    async def test_unknown_coin_issues_no_request(
        self, mock_config: GlobalConfig, symbol: str
    ) -> None:
        handler = CallCounter(lambda request: httpx.Response(200, json={}))

        async with mock_client(handler) as client:
            outcome = await CryptoSource(client, mock_config).fetch(symbol)

        assert outcome == UNAVAILABLE
        assert handler.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"ethereum": {"cny": 21000.5, "cny_24h_change": 0.4}},
            {},
            {"bitcoin": {"cny": 435000.12}},
            {"bitcoin": {"cny_24h_change": -2.31}},
            {"bitcoin": {"cny": "n/a", "cny_24h_change": -2.31}},
            {"bitcoin": None},
            {"bitcoin": [1, 2]},
            {"bitcoin": {"cny": True, "cny_24h_change": False}},
            {"bitcoin": {"cny": "435000.12", "cny_24h_change": "-2.31"}},
            {"bitcoin": {"cny": 435000.12, "cny_24h_change": "-2.31"}},
            ["bitcoin"],
        ],
    )
    async def test_missing_or_partial_data_is_unavailable(
        self, mock_config: GlobalConfig, payload: object
    ) -> None:
        async with mock_client(lambda request: httpx.Response(200, json=payload)) as client:
            outcome = await CryptoSource(client, mock_config).fetch("bitcoin")

        assert outcome == UNAVAILABLE

    def test_integer_fields_are_numbers(self, mock_config: GlobalConfig) -> None:
        source = CryptoSource(MagicMock(spec=httpx.AsyncClient), mock_config)

        quote = source.parse_payload("bitcoin", "bitcoin", {"bitcoin": {"cny": 435000, "cny_24h_change": 0}})

        assert quote == Quote(price=435000.0, percent_change=0.0)

    def test_string_fields_are_rejected(self, mock_config: GlobalConfig) -> None:
        source = CryptoSource(MagicMock(spec=httpx.AsyncClient), mock_config)

        with pytest.raises(QuoteParseError):
            source.parse_payload("bitcoin", "bitcoin", {"bitcoin": {"cny": "1.0", "cny_24h_change": 1.0}})

    @pytest.mark.asyncio
    async def test_invalid_json_is_unavailable(self, mock_config: GlobalConfig) -> None:
        async with mock_client(lambda request: httpx.Response(200, text="<html>rate limited</html>")) as client:
            outcome = await CryptoSource(client, mock_config).fetch("solana")

        assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    async def test_rate_limit_status_is_unavailable(self, mock_config: GlobalConfig) -> None:
        async with mock_client(lambda request: httpx.Response(429, json={"status": {"error_code": 429}})) as client:
            outcome = await CryptoSource(client, mock_config).fetch("ethereum")

        assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    async def test_currency_follows_config(self, mock_config: GlobalConfig) -> None:
        config = mock_config.model_copy(update={"vs_currency": "usd"})
        handler = CallCounter(
            lambda request: httpx.Response(
                200, json={"bitcoin": {"usd": 60000, "usd_24h_change": 1.5}}
            )
        )

        async with mock_client(handler) as client:
            outcome = await CryptoSource(client, config).fetch("bitcoin")

        assert outcome == Success(quote=Quote(price=60000, percent_change=1.5))
        assert handler.requests[0].url.params["vs_currencies"] == "usd"


class TestMetalsSource:
    """Test suite for the synthetic metals source."""

    @pytest.mark.asyncio
    async def test_same_seed_gives_same_quote(self, mock_config: GlobalConfig) -> None:
        first = await MetalsSource(mock_config, rng=random.Random(42)).fetch("XAUUSD")
        second = await MetalsSource(mock_config, rng=random.Random(42)).fetch("XAUUSD")

        assert first.is_available
        assert first == second

    @pytest.mark.asyncio
    @pytest.mark.parametrize("symbol", ["XAGUSD", "xauusd", "gold", ""])
    async def test_unknown_instrument_is_unavailable(
        self, mock_config: GlobalConfig, symbol: str
    ) -> None:
        outcome = await MetalsSource(mock_config, rng=random.Random(1)).fetch(symbol)

        assert outcome == UNAVAILABLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(10))
    async def test_jitter_is_bounded_and_correlated(self, mock_config: GlobalConfig, seed: int) -> None:
        outcome = await MetalsSource(mock_config, rng=random.Random(seed)).fetch("AU9999")

        quote = outcome.quote
        offset = quote.price - 620.0
        assert -1.0 <= offset < 1.0
        assert quote.percent_change == pytest.approx(0.3 + offset * 0.1)

    @pytest.mark.asyncio
    async def test_known_instruments_always_succeed(self, mock_config: GlobalConfig) -> None:
        source = MetalsSource(mock_config)

        for symbol in MetalsSource.BASELINES:
            outcome = await source.fetch(symbol)
            assert outcome.is_available
