"""Currency conversion engine with rate caching, retry and stale fallback."""

import logging
import time
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, cast

from fxconv.lib.cache import ResultCache
from fxconv.lib.config import (
    BASE_CURRENCY,
    HISTORICAL_CACHE_KEY_PREFIX,
    HISTORICAL_CACHE_TTL_HOURS,
    RATE_DECIMAL_PLACES,
    RATES_CACHE_KEY,
    RATES_CACHE_TTL_HOURS,
    RATES_RETRY_MAX_DELAY_MS,
    RATES_SOURCE,
    RETRY_BACKOFF_FACTOR,
    RETRY_BASE_DELAY_MS,
    RETRY_MAX_ATTEMPTS,
)
from fxconv.lib.errors import UnsupportedCurrencyError
from fxconv.lib.retry import ConnectivityMonitor, RetryExecutor, RetryOptions
from fxconv.lib.validators import is_valid_currency_code, normalize_currency, validate_amount
from fxconv.models import (
    ApiStats,
    ConversionRecord,
    ConversionResult,
    CurrencyMetadata,
    RatesResponse,
    RateSnapshot,
)
from fxconv.services.currency_store import CurrencyStore
from fxconv.services.rates_provider import OpenExchangeRatesProvider

logger = logging.getLogger(__name__)

_QUANTUM = Decimal(1).scaleb(-RATE_DECIMAL_PLACES)


def round_rate(value: float) -> float:
    """
    Round to 4 decimal places, halves away from zero.

    Examples:
        >>> round_rate(1 / 0.8677)
        1.1525
        >>> round_rate(0.00005)
        0.0001
        >>> round_rate(-0.00005)
        -0.0001
    """
    return float(Decimal(str(value)).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


class CurrencyService:
    """Authoritative currency math and rate orchestration.

    Rates flow: result cache -> connectivity gate -> retried upstream fetch ->
    cache write-through -> stale cache fallback when the fetch fails.

    Every collaborator is injected so tests and each request-handling host
    own isolated instances.

    Example:
        service = CurrencyService.from_env()
        result = await service.convert_currency("usd", "eur", 100)
    """

    def __init__(
        self,
        provider: Optional[OpenExchangeRatesProvider] = None,
        cache: Optional[ResultCache] = None,
        store: Optional[CurrencyStore] = None,
        executor: Optional[RetryExecutor] = None,
        monitor: Optional[ConnectivityMonitor] = None,
        retry_options: Optional[RetryOptions] = None,
    ) -> None:
        """
        Initialize conversion engine.

        Args:
            provider: Upstream rate provider
            cache: Result cache for rate snapshots
            store: Telemetry and snapshot store
            executor: Retry executor wrapping upstream calls
            monitor: Connectivity monitor (default: the executor's)
            retry_options: Retry tuning for rate fetches
        """
        self.provider = provider or OpenExchangeRatesProvider()
        self.cache = cache or ResultCache()
        self.store = store or CurrencyStore()
        self.monitor = monitor or (executor.monitor if executor else ConnectivityMonitor())
        self.executor = executor or RetryExecutor(monitor=self.monitor)
        self.retry_options = retry_options or RetryOptions(
            max_attempts=RETRY_MAX_ATTEMPTS,
            base_delay=RETRY_BASE_DELAY_MS,
            max_delay=RATES_RETRY_MAX_DELAY_MS,
            backoff_factor=RETRY_BACKOFF_FACTOR,
        )

    @classmethod
    def from_env(cls) -> "CurrencyService":
        """Production wiring: provider configured from environment variables."""
        return cls(provider=OpenExchangeRatesProvider())

    async def get_rates(self) -> RatesResponse:
        """
        Current rates, from cache when fresh.

        Returns:
            RatesResponse (``stale`` set when served from an expired cache entry)

        Raises:
            UpstreamError: Fetch failed after retries and nothing was cached
            ConfigurationError: API key missing and nothing was cached
        """
        # peek() leaves an expired entry in place for the stale fallback below
        entry = self.cache.peek(RATES_CACHE_KEY)
        if entry is not None and not entry.is_expired():
            logger.debug("Using cached exchange rates")
            return cast(RatesResponse, entry.data).copy()

        if not self.monitor.is_online():
            logger.warning("Device is offline, waiting for connection...")
            await self.monitor.wait_for_online()

        logger.info("Fetching fresh exchange rates from provider")
        result = await self.executor.run(self.provider.fetch_latest_rates, self.retry_options)

        if not result.success:
            logger.error(f"Failed to fetch rates after {result.attempts} attempts: {result.error}")

            stale: Optional[RatesResponse] = self.cache.get(RATES_CACHE_KEY, check_expiry=False)
            if stale is not None:
                logger.warning("Using stale cached rates as fallback")
                return stale.copy(stale=True)

            raise cast(BaseException, result.error)

        rates = cast(dict[str, float], result.data)
        rates_response = RatesResponse(
            rates=rates, timestamp=time.time(), base_currency=BASE_CURRENCY
        )
        self.cache.set(RATES_CACHE_KEY, rates_response, RATES_CACHE_TTL_HOURS)
        self.store.save_exchange_rates(
            RateSnapshot(
                base_currency=rates_response.base_currency,
                rates=dict(rates_response.rates),
                timestamp=rates_response.timestamp,
                source=RATES_SOURCE,
            )
        )

        logger.info(f"Fetched {len(rates)} rates after {result.attempts} attempts")
        return rates_response.copy()

    async def convert_currency(
        self, from_currency: str, to_currency: str, amount: float, client_id: str = "unknown"
    ) -> ConversionResult:
        """
        Convert an amount between two currencies.

        The converted amount is computed with the full-precision rate; both
        the rate and the converted amount are then rounded to 4 decimals.

        Args:
            from_currency: Source currency code (case-insensitive)
            to_currency: Target currency code (case-insensitive)
            amount: Positive amount
            client_id: Opaque caller identifier recorded in history

        Returns:
            ConversionResult

        Raises:
            InvalidInputError: Blank code or non-positive/non-numeric amount
            UnsupportedCurrencyError: Code not quoted by the current snapshot
            UpstreamError: Rates unavailable (propagated from get_rates)
        """
        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency)
        value = validate_amount(amount)

        if source == target and is_valid_currency_code(source):
            # Identity needs no rates; reuse the cached snapshot timestamp if there is one
            rates_data = self.cache.get(RATES_CACHE_KEY, check_expiry=False) or RatesResponse(
                rates={}, timestamp=time.time(), base_currency=BASE_CURRENCY
            )
        else:
            rates_data = await self.get_rates()
            for code in (source, target):
                if not rates_data.quotes(code):
                    raise UnsupportedCurrencyError(code)

        if source == target:
            rate = 1.0
            converted = value
        else:
            rate = self._quote(source, target, rates_data)
            converted = round_rate(value * rate)
            rate = round_rate(rate)

        result = ConversionResult(
            original_amount=value,
            from_currency=source,
            to_currency=target,
            converted_amount=converted,
            rate_used=rate,
            timestamp=rates_data.timestamp,
            base_currency=rates_data.base_currency,
        )

        self.store.log_conversion(source, target, value, converted, rate, client_id=client_id)
        logger.debug(f"Converted {value} {source} -> {converted} {target} @ {rate}")
        return result

    @staticmethod
    def _quote(source: str, target: str, rates_data: RatesResponse) -> float:
        """Unrounded rate for source -> target."""
        rates = rates_data.rates
        if source == rates_data.base_currency:
            return rates[target]
        if target == rates_data.base_currency:
            return 1 / rates[source]
        return rates[target] / rates[source]

    async def get_supported_currencies(self) -> list[str]:
        """Base currency plus every quoted currency, sorted."""
        rates_data = await self.get_rates()
        return sorted({rates_data.base_currency, *rates_data.rates})

    def is_valid_currency_code(self, code: Any) -> bool:
        """Format check only: exactly three uppercase ASCII letters."""
        return is_valid_currency_code(code)

    async def get_historical_rates(self, day: date) -> RatesResponse:
        """
        End-of-day rates for ``day``, cached for 24 hours.

        No stale fallback: historical rates never change, so an expired entry
        is simply refetched.
        """
        cache_key = f"{HISTORICAL_CACHE_KEY_PREFIX}:{day.isoformat()}"
        cached: Optional[RatesResponse] = self.cache.get(cache_key)
        if cached is not None:
            return cached.copy()

        result = await self.executor.run(
            lambda: self.provider.fetch_historical_rates(day), self.retry_options
        )
        if not result.success:
            logger.error(f"Failed to fetch historical rates for {day}: {result.error}")
            raise cast(BaseException, result.error)

        rates_response = RatesResponse(
            rates=cast(dict[str, float], result.data),
            timestamp=time.time(),
            base_currency=BASE_CURRENCY,
        )
        self.cache.set(cache_key, rates_response, HISTORICAL_CACHE_TTL_HOURS)
        return rates_response.copy()

    async def load_currency_metadata(self) -> int:
        """
        Fetch official currency names and store them as metadata.

        Returns:
            Number of currencies stored
        """
        result = await self.executor.run(self.provider.fetch_currencies, self.retry_options)
        if not result.success:
            raise cast(BaseException, result.error)

        names = cast(dict[str, str], result.data)
        return self.store.save_currency_metadata(
            CurrencyMetadata(code=code, name=name) for code, name in sorted(names.items())
        )

    # Telemetry passthroughs

    def log_api_usage(
        self,
        endpoint: str,
        method: str,
        response_time: float,
        status_code: int,
        client_id: str = "unknown",
    ) -> str:
        """Record one handled request."""
        return self.store.log_api_usage(endpoint, method, response_time, status_code, client_id)

    def get_api_stats(self, hours: float = 24) -> ApiStats:
        """Aggregated usage over the trailing window."""
        return self.store.get_api_stats(hours)

    def get_conversion_history(self, limit: int = 100) -> list[ConversionRecord]:
        """Most recent conversions first."""
        return self.store.get_conversion_history(limit)

    def cleanup(self) -> dict[str, int]:
        """
        Sweep expired cache entries and store records.

        The latest-rates cache entry survives expiry so it can still serve as
        the stale fallback.

        Returns:
            Eviction counts per component
        """
        return {
            "cache": self.cache.cleanup_expired(keep=(RATES_CACHE_KEY,)),
            "store": self.store.cleanup(),
        }
