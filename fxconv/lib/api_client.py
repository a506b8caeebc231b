"""Async HTTP client that classifies upstream failures."""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, cast

import aiohttp

from fxconv.lib.api_models import OERErrorResponse
from fxconv.lib.config import UPSTREAM_TIMEOUT_SECONDS, USER_AGENT
from fxconv.lib.errors import (
    MalformedResponseError,
    UpstreamError,
    UpstreamRateLimitedError,
    UpstreamUnauthorizedError,
    UpstreamUnavailableError,
)

logger = logging.getLogger(__name__)


class APIClient:
    """Async JSON GET client for a single upstream API.

    Makes exactly one request per call. Retry policy belongs to the caller
    (see fxconv.lib.retry); this client only turns transport and HTTP
    failures into the upstream error taxonomy:

    - 401/403 -> UpstreamUnauthorizedError
    - 429 -> UpstreamRateLimitedError
    - 5xx, connection failures, timeouts -> UpstreamUnavailableError
    - other 4xx -> UpstreamError
    - undecodable body -> MalformedResponseError

    Example:
        async with APIClient("https://openexchangerates.org/api") as client:
            data = await client.get("/latest.json", params={"app_id": key})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_name: str = "Upstream",
        default_timeout: int = UPSTREAM_TIMEOUT_SECONDS,
        headers: Optional[Dict[str, str]] = None,
    ):
        """Initialize API client.

        Args:
            base_url: Base URL for all requests (optional, full URLs work too)
            api_name: Provider name used in error messages
            default_timeout: Request timeout in seconds
            headers: Headers sent with every request
        """
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_name = api_name
        self.default_timeout = default_timeout
        self.headers = {"Accept": "application/json", "User-Agent": USER_AGENT}
        self.headers.update(headers or {})
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "APIClient":
        """Enter async context manager."""
        self.session = aiohttp.ClientSession(headers=self.headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager and cleanup session."""
        if self.session and not self.session.closed:
            await self.session.close()

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Make a single GET request.

        Args:
            endpoint: API endpoint (appended to base_url) or full URL
            params: Query parameters
            timeout: Request timeout in seconds (uses default_timeout if None)

        Returns:
            JSON response as dictionary

        Raises:
            UpstreamError: Classified failure (see class docstring)
            RuntimeError: Client used outside its context manager
        """
        if not self.session:
            raise RuntimeError("APIClient must be used as context manager")

        try:
            return await self._make_request(endpoint, params, timeout or self.default_timeout)

        # ContentTypeError subclasses ClientResponseError, so it goes first
        except (aiohttp.ContentTypeError, json.JSONDecodeError) as e:
            raise MalformedResponseError(self.api_name, "body is not JSON") from e

        except aiohttp.ClientResponseError as e:
            raise self._classify_status(e.status, e.message) from e

        except asyncio.TimeoutError as e:
            raise UpstreamUnavailableError(self.api_name, "request timed out") from e

        except aiohttp.ClientConnectionError as e:
            logger.error(f"Network error when calling {self.api_name}: {e}")
            raise UpstreamUnavailableError(
                self.api_name, f"unable to connect ({e.__class__.__name__})"
            ) from e

    async def _make_request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]],
        timeout: int,
    ) -> Dict[str, Any]:
        """Make single HTTP request.

        Raises:
            aiohttp.ClientResponseError: HTTP error
            asyncio.TimeoutError: Request timeout
            aiohttp.ClientError: Network error
            MalformedResponseError: JSON body is not an object
        """
        url = f"{self.base_url}{endpoint}" if self.base_url else endpoint

        if self.session is None:
            raise RuntimeError("APIClient session not initialized. Use async with context manager.")

        timeout_obj = aiohttp.ClientTimeout(total=timeout)

        async with self.session.get(url, params=params, timeout=timeout_obj) as response:
            if response.status >= 400:
                detail = await self._error_detail(response)
                logger.error(f"{self.api_name} API error: status={response.status} {detail}")
                response.raise_for_status()

            data = await response.json()
            if not isinstance(data, dict):
                raise MalformedResponseError(self.api_name, "expected a JSON object")
            return cast(Dict[str, Any], data)

    @staticmethod
    async def _error_detail(response: aiohttp.ClientResponse) -> str:
        """Provider error description from an error body, if it has one."""
        try:
            body = await response.json(content_type=None)
            error = OERErrorResponse.model_validate(body)
        # pydantic.ValidationError and JSONDecodeError are both ValueErrors
        except (aiohttp.ClientError, ValueError):
            return ""
        return error.description or error.message

    def _classify_status(self, status: int, message: str) -> UpstreamError:
        if status in (401, 403):
            return UpstreamUnauthorizedError(self.api_name, status=status)
        if status == 429:
            return UpstreamRateLimitedError(self.api_name)
        if status >= 500:
            return UpstreamUnavailableError(self.api_name, f"HTTP {status}", status=status)
        return UpstreamError(f"{self.api_name} API error: {status} {message}", status=status)
