"""Pytest configuration and fixtures for all tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fxconv.lib.cache import ResultCache
from fxconv.lib.record_store import RecordStore
from fxconv.lib.retry import ConnectivityMonitor, RetryExecutor, RetryOptions
from fxconv.services.currency_service import CurrencyService
from fxconv.services.currency_store import CurrencyStore
from fxconv.services.rates_provider import OpenExchangeRatesProvider

SAMPLE_RATES = {"EUR": 0.8677, "GBP": 0.7534}


@pytest.fixture(autouse=True)
def disable_log_file(monkeypatch):
    """Keep tests from writing to ~/.fxconv/fxconv.log."""
    monkeypatch.setenv("LOG_FILE", "")


@pytest.fixture
def record_store():
    """Provide an empty record store."""
    return RecordStore()


@pytest.fixture
def currency_store(record_store):
    """Provide a currency store over a fresh record store."""
    return CurrencyStore(record_store)


@pytest.fixture
def cache():
    """Provide an empty result cache."""
    return ResultCache()


@pytest.fixture
def monitor():
    """Provide a connectivity monitor that starts online."""
    return ConnectivityMonitor()


@pytest.fixture
def sleep():
    """Provide a sleep replacement that records delays without waiting."""
    return AsyncMock()


@pytest.fixture
def executor(monitor, sleep):
    """Provide a retry executor with no jitter and no real sleeping."""
    return RetryExecutor(monitor=monitor, rand=lambda: 0.0, sleep=sleep)


@pytest.fixture
def provider():
    """Provide a mocked Open Exchange Rates provider."""
    mock = MagicMock(spec=OpenExchangeRatesProvider)
    mock.fetch_latest_rates = AsyncMock(return_value=dict(SAMPLE_RATES))
    mock.fetch_historical_rates = AsyncMock(return_value={"EUR": 0.9, "GBP": 0.8})
    mock.fetch_currencies = AsyncMock(
        return_value={"EUR": "Euro", "GBP": "British Pound Sterling", "USD": "United States Dollar"}
    )
    return mock


@pytest.fixture
def service(provider, cache, currency_store, executor, monitor):
    """Provide a currency service wired to mocks and fresh state."""
    return CurrencyService(
        provider=provider,
        cache=cache,
        store=currency_store,
        executor=executor,
        monitor=monitor,
        retry_options=RetryOptions(max_attempts=3, base_delay=1000, max_delay=5000),
    )
