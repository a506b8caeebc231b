"""Open Exchange Rates provider."""

import logging
import os
from datetime import date
from typing import Any, Callable, Dict, Optional

from fxconv.lib.api_client import APIClient
from fxconv.lib.api_models import (
    OERUsageData,
    parse_currencies_response,
    parse_latest_response,
    parse_usage_response,
)
from fxconv.lib.config import OER_API_KEY_ENV, OER_BASE_URL_ENV, OER_DEFAULT_BASE_URL
from fxconv.lib.errors import MissingAPIKeyError

logger = logging.getLogger(__name__)

API_NAME = "Open Exchange Rates"


class OpenExchangeRatesProvider:
    """Fetches rates from openexchangerates.org.

    The free plan quotes every currency against USD, refreshes hourly and
    allows 1,000 requests per month, so callers should cache aggressively.
    Each fetch makes exactly one HTTP request on its own client session, so
    concurrent fetches never share a session. Retries are the caller's job.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client_factory: Optional[Callable[[], APIClient]] = None,
    ) -> None:
        """
        Initialize provider.

        Args:
            api_key: App id (default: $OPEN_EXCHANGE_RATES_API_KEY)
            base_url: API root (default: $OER_BASE_URL or the public endpoint)
            client_factory: Builds the client for each request (tests)
        """
        self.api_key = api_key if api_key is not None else os.getenv(OER_API_KEY_ENV, "")
        self.base_url = base_url or os.getenv(OER_BASE_URL_ENV, OER_DEFAULT_BASE_URL)
        self.client_factory = client_factory or self._default_client

        if not self.api_key:
            logger.warning(
                f"{OER_API_KEY_ENV} not set. Rate fetches will fail until it is configured."
            )

    async def fetch_latest_rates(self) -> dict[str, float]:
        """
        Latest rates relative to USD.

        Raises:
            MissingAPIKeyError: Key not configured
            UpstreamError: Classified provider failure
        """
        payload = await self._get("/latest.json")
        response = parse_latest_response(payload, API_NAME)
        logger.debug(f"Fetched {len(response.rates)} rates (base {response.base})")
        return response.rates

    async def fetch_historical_rates(self, day: date) -> dict[str, float]:
        """
        End-of-day rates for a past date.

        Raises:
            MissingAPIKeyError: Key not configured
            UpstreamError: Classified provider failure
        """
        payload = await self._get(f"/historical/{day.isoformat()}.json")
        return parse_latest_response(payload, API_NAME).rates

    async def fetch_currencies(self) -> dict[str, str]:
        """Currency code -> official name. Does not count against the quota."""
        payload = await self._get("/currencies.json", authenticated=False)
        return parse_currencies_response(payload, API_NAME)

    async def fetch_usage(self) -> OERUsageData:
        """Plan and quota usage for the configured key."""
        payload = await self._get("/usage.json")
        return parse_usage_response(payload, API_NAME)

    async def _get(self, endpoint: str, authenticated: bool = True) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if authenticated:
            if not self.api_key:
                raise MissingAPIKeyError(API_NAME, OER_API_KEY_ENV)
            params["app_id"] = self.api_key

        async with self.client_factory() as client:
            return await client.get(endpoint, params=params or None)

    def _default_client(self) -> APIClient:
        return APIClient(base_url=self.base_url, api_name=API_NAME)
