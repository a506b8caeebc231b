"""Unit tests for the Open Exchange Rates provider and its response models."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from fxconv.lib.api_client import APIClient
from fxconv.lib.api_models import (
    parse_currencies_response,
    parse_latest_response,
    parse_usage_response,
)
from fxconv.lib.errors import MalformedResponseError, MissingAPIKeyError
from fxconv.services.rates_provider import OpenExchangeRatesProvider

LATEST_PAYLOAD = {
    "disclaimer": "Usage subject to terms: https://openexchangerates.org/terms",
    "license": "https://openexchangerates.org/license",
    "timestamp": 1705320000,
    "base": "USD",
    "rates": {"EUR": 0.8677, "GBP": 0.7534, "JPY": 147.25},
}

USAGE_PAYLOAD = {
    "status": 200,
    "data": {
        "app_id": "abc123",
        "status": "active",
        "plan": {
            "name": "Free",
            "quota": "1000 requests / month",
            "update_frequency": "3600s",
            "features": {"base": False, "symbols": False, "experimental": True},
        },
        "usage": {
            "requests": 120,
            "requests_quota": 1000,
            "requests_remaining": 880,
            "days_elapsed": 6,
            "days_remaining": 24,
            "daily_average": 20,
        },
    },
}


@pytest.fixture
def mock_client():
    """Provide an APIClient whose context manager yields itself with a mocked get()."""
    client = MagicMock(spec=APIClient)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    client.get = AsyncMock(return_value=LATEST_PAYLOAD)
    return client


@pytest.fixture
def provider(mock_client):
    """Provide a provider with a test key and mocked client."""
    return OpenExchangeRatesProvider(api_key="test-key", client_factory=lambda: mock_client)


@pytest.mark.unit
class TestResponseModels:
    """Test payload validation."""

    def test_latest_payload(self):
        """A well-formed latest payload parses."""
        response = parse_latest_response(LATEST_PAYLOAD, "OER")

        assert response.base == "USD"
        assert response.rates["EUR"] == 0.8677

    @pytest.mark.parametrize(
        "payload",
        [
            {"timestamp": 1, "base": "USD"},
            {"timestamp": 1, "base": "USD", "rates": {}},
            {"timestamp": 1, "base": "USD", "rates": {"EUR": 0}},
            {"timestamp": 1, "base": "USD", "rates": {"EUR": "n/a"}},
        ],
    )
    def test_bad_latest_payload(self, payload):
        """Missing, empty or non-positive rates are malformed."""
        with pytest.raises(MalformedResponseError):
            parse_latest_response(payload, "OER")

    def test_currencies_payload(self):
        """Currencies map codes to names."""
        assert parse_currencies_response({"EUR": "Euro"}, "OER") == {"EUR": "Euro"}

        with pytest.raises(MalformedResponseError):
            parse_currencies_response({"EUR": {"name": "Euro"}}, "OER")

    def test_usage_payload(self):
        """Usage payload exposes plan and counters."""
        usage = parse_usage_response(USAGE_PAYLOAD, "OER")

        assert usage.plan.name == "Free"
        assert usage.plan.features.experimental is True
        assert usage.usage.requests_remaining == 880


@pytest.mark.unit
@pytest.mark.asyncio
class TestOpenExchangeRatesProvider:
    """Test suite for OpenExchangeRatesProvider."""

    async def test_fetch_latest_rates(self, provider, mock_client):
        """Latest rates are fetched with the app id."""
        rates = await provider.fetch_latest_rates()

        assert rates == LATEST_PAYLOAD["rates"]
        mock_client.get.assert_awaited_once_with("/latest.json", params={"app_id": "test-key"})

    async def test_fetch_historical_rates(self, provider, mock_client):
        """Historical rates use the dated endpoint."""
        await provider.fetch_historical_rates(date(2024, 1, 15))

        assert mock_client.get.await_args.args[0] == "/historical/2024-01-15.json"

    async def test_fetch_currencies_is_unauthenticated(self, mock_client):
        """The currencies list works without a key."""
        mock_client.get.return_value = {"EUR": "Euro", "USD": "United States Dollar"}
        provider = OpenExchangeRatesProvider(api_key="", client_factory=lambda: mock_client)

        currencies = await provider.fetch_currencies()

        assert currencies["EUR"] == "Euro"
        mock_client.get.assert_awaited_once_with("/currencies.json", params=None)

    async def test_fetch_usage(self, provider, mock_client):
        """Usage is parsed into the plan model."""
        mock_client.get.return_value = USAGE_PAYLOAD

        usage = await provider.fetch_usage()

        assert usage.usage.requests == 120

    async def test_missing_key(self, mock_client):
        """Authenticated calls fail before any request when no key is set."""
        provider = OpenExchangeRatesProvider(api_key="", client_factory=lambda: mock_client)

        with pytest.raises(MissingAPIKeyError):
            await provider.fetch_latest_rates()
        mock_client.get.assert_not_called()

    async def test_malformed_payload(self, provider, mock_client):
        """Payloads without rates raise MalformedResponseError."""
        mock_client.get.return_value = {"error": False}

        with pytest.raises(MalformedResponseError):
            await provider.fetch_latest_rates()

    async def test_key_from_environment(self, monkeypatch, mock_client):
        """Key and base URL default to environment variables."""
        monkeypatch.setenv("OPEN_EXCHANGE_RATES_API_KEY", "env-key")
        monkeypatch.setenv("OER_BASE_URL", "http://localhost:9999/api")

        provider = OpenExchangeRatesProvider(client_factory=lambda: mock_client)

        assert provider.api_key == "env-key"
        assert provider.base_url == "http://localhost:9999/api"

    async def test_default_client_targets_base_url(self, monkeypatch):
        """Without an injected client one is built for the configured URL."""
        monkeypatch.delenv("OER_BASE_URL", raising=False)

        provider = OpenExchangeRatesProvider(api_key="k")
        client = provider.client_factory()

        assert client.base_url == "https://openexchangerates.org/api"
        assert client.api_name == "Open Exchange Rates"

    async def test_each_fetch_opens_its_own_client(self, mock_client):
        """Fetches never reuse a client, so their sessions stay independent."""
        factory = MagicMock(return_value=mock_client)
        provider = OpenExchangeRatesProvider(api_key="test-key", client_factory=factory)

        await provider.fetch_latest_rates()
        await provider.fetch_latest_rates()

        assert factory.call_count == 2
        assert mock_client.__aexit__.await_count == 2

    async def test_default_clients_are_distinct(self):
        """The default factory builds a new client every time."""
        provider = OpenExchangeRatesProvider(api_key="k")

        assert provider.client_factory() is not provider.client_factory()
