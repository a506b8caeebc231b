"""Integration tests for the conversion workflow against a mock rate provider."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from aiohttp import web

from fxconv.lib.api_client import APIClient
from fxconv.lib.cache import ResultCache
from fxconv.lib.config import RATES_CACHE_KEY
from fxconv.lib.errors import MalformedResponseError, UpstreamUnauthorizedError
from fxconv.lib.retry import ConnectivityMonitor, RetryExecutor
from fxconv.services.currency_service import CurrencyService
from fxconv.services.currency_store import CurrencyStore
from fxconv.services.rates_provider import OpenExchangeRatesProvider

API_KEY = "test-key"
PORT = 8889


@pytest_asyncio.fixture
async def mock_server():
    """Start a mock Open Exchange Rates server."""
    app = web.Application()
    state = {"latest_calls": 0, "fail_next": 0, "html": False, "delay": 0.0}

    def unauthorized():
        return web.json_response(
            {
                "error": True,
                "status": 401,
                "message": "invalid_app_id",
                "description": "Invalid App ID provided.",
            },
            status=401,
        )

    async def latest_handler(request):
        """Serve rates, optionally failing first."""
        state["latest_calls"] += 1
        if state["delay"]:
            await asyncio.sleep(state["delay"])
        if request.query.get("app_id") != API_KEY:
            return unauthorized()
        if state["fail_next"] > 0:
            state["fail_next"] -= 1
            raise web.HTTPServiceUnavailable()
        if state["html"]:
            return web.Response(text="<html>maintenance</html>", content_type="text/html")
        return web.json_response(
            {"timestamp": 1705320000, "base": "USD", "rates": {"EUR": 0.8677, "GBP": 0.7534}}
        )

    async def currencies_handler(request):
        """Serve currency names without authentication."""
        return web.json_response(
            {"EUR": "Euro", "GBP": "British Pound Sterling", "USD": "United States Dollar"}
        )

    app.router.add_get("/api/latest.json", latest_handler)
    app.router.add_get("/api/currencies.json", currencies_handler)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", PORT)
    await site.start()

    yield f"http://localhost:{PORT}/api", state

    await runner.cleanup()


def build_service(base_url, api_key=API_KEY):
    """Wire a service to the mock server with instant retries."""
    monitor = ConnectivityMonitor()
    return CurrencyService(
        provider=OpenExchangeRatesProvider(api_key=api_key, base_url=base_url),
        cache=ResultCache(),
        store=CurrencyStore(),
        executor=RetryExecutor(monitor=monitor, rand=lambda: 0.0, sleep=AsyncMock()),
        monitor=monitor,
    )


@pytest.mark.integration
@pytest.mark.asyncio
class TestRatesWorkflow:
    """Test suite for the end-to-end rates workflow."""

    async def test_convert_end_to_end(self, mock_server):
        """Conversions use rates fetched over HTTP."""
        base_url, state = mock_server
        service = build_service(base_url)

        usd_eur = await service.convert_currency("USD", "EUR", 100)
        eur_usd = await service.convert_currency("EUR", "USD", 100)
        eur_gbp = await service.convert_currency("EUR", "GBP", 100)

        assert (usd_eur.converted_amount, usd_eur.rate_used) == (86.77, 0.8677)
        assert (eur_usd.converted_amount, eur_usd.rate_used) == (115.2472, 1.1525)
        assert eur_gbp.rate_used == 0.8683
        assert state["latest_calls"] == 1

    async def test_server_errors_are_retried(self, mock_server):
        """503 responses are retried until the provider recovers."""
        base_url, state = mock_server
        state["fail_next"] = 2
        service = build_service(base_url)

        rates = await service.get_rates()

        assert rates.rates["EUR"] == 0.8677
        assert state["latest_calls"] == 3

    async def test_bad_key_fails_fast(self, mock_server):
        """An invalid app id is reported without retrying."""
        base_url, state = mock_server
        service = build_service(base_url, api_key="wrong")

        with pytest.raises(UpstreamUnauthorizedError):
            await service.get_rates()

        assert state["latest_calls"] == 1

    async def test_html_body_is_malformed(self, mock_server):
        """A non-JSON body is a malformed response."""
        base_url, state = mock_server
        state["html"] = True
        service = build_service(base_url)

        with pytest.raises(MalformedResponseError):
            await service.get_rates()

    async def test_stale_fallback_when_provider_down(self, mock_server):
        """Expired rates are served when the provider keeps failing."""
        base_url, state = mock_server
        service = build_service(base_url)

        await service.get_rates()
        service.cache.peek(RATES_CACHE_KEY).expires_at = 0
        state["fail_next"] = 10

        result = await service.convert_currency("EUR", "USD", 100)
        rates = await service.get_rates()

        assert result.converted_amount == 115.2472
        assert rates.stale is True
        assert state["latest_calls"] == 7

    async def test_currency_names(self, mock_server):
        """Currency names load without an API key."""
        base_url, _ = mock_server
        service = build_service(base_url, api_key="")

        assert await service.load_currency_metadata() == 3
        assert service.store.get_currency_metadata("EUR").name == "Euro"

    async def test_concurrent_cache_misses_use_separate_sessions(self, mock_server):
        """Overlapping fetches each finish on their own session and close it."""
        base_url, state = mock_server
        state["delay"] = 0.2
        service = build_service(base_url)
        clients = []

        def tracking_factory():
            client = APIClient(base_url=base_url, api_name="Open Exchange Rates")
            clients.append(client)
            return client

        service.provider.client_factory = tracking_factory

        async def delayed_get_rates():
            await asyncio.sleep(0.1)
            return await service.get_rates()

        first, second = await asyncio.gather(service.get_rates(), delayed_get_rates())

        assert first.rates == second.rates == {"EUR": 0.8677, "GBP": 0.7534}
        assert state["latest_calls"] == 2
        assert len(clients) == 2
        assert all(client.session.closed for client in clients)

    async def test_concurrent_conversions(self, mock_server):
        """Simultaneous conversions share the cache and store without errors."""
        base_url, state = mock_server
        state["delay"] = 0.05
        service = build_service(base_url)

        results = await asyncio.gather(
            service.convert_currency("USD", "EUR", 100),
            service.convert_currency("EUR", "USD", 100),
            service.convert_currency("EUR", "GBP", 100),
        )

        assert [r.converted_amount for r in results] == [86.77, 115.2472, 86.8272]
        assert len(service.get_conversion_history()) == 3
        assert state["latest_calls"] == 3
        assert RATES_CACHE_KEY in service.cache
