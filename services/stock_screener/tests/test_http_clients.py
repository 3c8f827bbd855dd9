"""
Tests for the Finnhub HTTP client using httpx.MockTransport.
"""

import httpx
import pytest

from services.stock_screener.http_clients import FinnhubClient


def make_client(handler) -> FinnhubClient:
    return FinnhubClient(
        "test-key",
        base_url="https://finnhub.test/api/v1",
        transport=httpx.MockTransport(handler),
    )


class TestRequests:

    @pytest.mark.asyncio
    async def test_token_and_params_are_sent(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"c": 187.2, "pc": 185.0})

        client = make_client(handler)
        quote = await client.get_quote("AAPL")
        await client.close()

        assert seen["path"] == "/api/v1/quote"
        assert seen["params"] == {"symbol": "AAPL", "token": "test-key"}
        assert quote.c == 187.2

    @pytest.mark.asyncio
    async def test_http_error_becomes_none(self):
        client = make_client(lambda request: httpx.Response(429, json={"error": "limit"}))

        assert await client.get_basic_financials("AAPL") is None
        assert await client.get_candles("AAPL", "D", 0, 1) is None
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_becomes_none(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = make_client(handler)
        assert await client.get_company_profile("AAPL") is None
        await client.close()


class TestSymbols:

    @pytest.mark.asyncio
    async def test_parses_symbol_list(self):
        payload = [
            {"symbol": "AAPL", "displaySymbol": "AAPL", "description": "APPLE INC", "type": "Common Stock"},
            {"symbol": "SPY", "displaySymbol": "SPY", "description": "SPDR S&P 500", "type": "ETP"},
        ]
        client = make_client(lambda request: httpx.Response(200, json=payload))

        symbols = await client.get_symbols("US")
        await client.close()

        assert [s.display_symbol for s in symbols] == ["AAPL", "SPY"]
        assert symbols[0].is_common_stock
        assert not symbols[1].is_common_stock

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_list(self):
        client = make_client(lambda request: httpx.Response(200, content=b""))
        assert await client.get_symbols("US") == []
        await client.close()

    @pytest.mark.asyncio
    async def test_errors_propagate(self):
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(httpx.HTTPStatusError):
            await client.get_symbols("US")
        await client.close()


class TestPayloadChecks:

    @pytest.mark.asyncio
    async def test_candles_without_close_array(self):
        client = make_client(lambda request: httpx.Response(200, json={"s": "no_data"}))
        assert await client.get_candles("AAPL", "D", 0, 1) is None
        await client.close()

    @pytest.mark.asyncio
    async def test_candles_parsed(self):
        payload = {"c": [10.0, 11.0], "o": [9.5, 10.5], "h": [10.2, 11.3], "l": [9.1, 10.1],
                   "v": [1000, 2000], "t": [1700000000, 1700086400], "s": "ok"}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        candles = await client.get_candles("AAPL", "D", 0, 1)
        await client.close()

        assert len(candles) == 2
        assert candles.t[1] == 1700086400

    @pytest.mark.asyncio
    async def test_candles_keep_malformed_values(self):
        payload = {"c": [10.0, None, 12.0], "o": [9.5, "x", 11.5], "h": [], "l": [], "v": [], "t": [1, 2, 3]}
        client = make_client(lambda request: httpx.Response(200, json=payload))

        candles = await client.get_candles("AAPL", "D", 0, 1)
        await client.close()

        assert len(candles) == 3
        assert candles.c[1] is None
        assert candles.o[1] == "x"

    @pytest.mark.asyncio
    async def test_financials_metric_endpoint(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["metric"] = request.url.params.get("metric")
            return httpx.Response(200, json={"symbol": "AAPL", "metric": {"10P": 28.4}, "metricType": "all"})

        client = make_client(handler)
        financials = await client.get_basic_financials("AAPL")
        await client.close()

        assert seen == {"path": "/api/v1/stock/metric", "metric": "all"}
        assert financials.first_positive("10P", "P/E") == 28.4

    @pytest.mark.asyncio
    async def test_quote_without_price(self):
        client = make_client(lambda request: httpx.Response(200, json={"c": 0}))
        assert await client.get_quote("ZZZZ") is None
        await client.close()

    @pytest.mark.asyncio
    async def test_profile_requires_ticker(self):
        client = make_client(lambda request: httpx.Response(200, json={}))
        assert await client.get_company_profile("ZZZZ") is None
        await client.close()
