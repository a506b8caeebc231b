"""Contract tests for the Open Exchange Rates API."""

import os

import pytest

from fxconv.lib.errors import UpstreamUnauthorizedError
from fxconv.services.currency_service import CurrencyService
from fxconv.services.rates_provider import OpenExchangeRatesProvider


@pytest.mark.contract
@pytest.mark.skipif(
    not os.getenv("OPEN_EXCHANGE_RATES_API_KEY"),
    reason="OPEN_EXCHANGE_RATES_API_KEY not set",
)
@pytest.mark.asyncio
class TestOpenExchangeRatesContract:
    """Contract tests for Open Exchange Rates integration.

    These tests verify that our integration with openexchangerates.org
    works correctly. They require a valid app id and use a few requests
    of the monthly quota.

    Run with: pytest -m contract tests/contract/test_open_exchange_rates.py
    """

    @pytest.fixture
    def provider(self):
        """Provide a provider configured from the environment."""
        return OpenExchangeRatesProvider()

    async def test_latest_rates_structure(self, provider):
        """Latest rates quote major currencies against USD."""
        rates = await provider.fetch_latest_rates()

        for code in ("EUR", "GBP", "JPY"):
            assert code in rates
            assert rates[code] > 0

    async def test_currencies_structure(self, provider):
        """The currency list maps codes to names."""
        currencies = await provider.fetch_currencies()

        assert currencies["USD"] == "United States Dollar"
        assert all(len(code) == 3 for code in currencies)

    async def test_usage_structure(self, provider):
        """Usage reports the plan and request counters."""
        usage = await provider.fetch_usage()

        assert usage.status == "active"
        assert usage.usage.requests >= 0

    async def test_invalid_key_rejected(self):
        """A bogus app id is classified as unauthorized."""
        provider = OpenExchangeRatesProvider(api_key="not-a-real-key")

        with pytest.raises(UpstreamUnauthorizedError):
            await provider.fetch_latest_rates()

    async def test_live_conversion(self):
        """A full conversion succeeds against the live API."""
        service = CurrencyService.from_env()

        result = await service.convert_currency("USD", "EUR", 100)

        assert result.converted_amount > 0
        assert result.base_currency == "USD"
