"""Retry with exponential backoff and jitter for async upstream calls."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import aiohttp
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from fxconv.lib.config import (
    RETRY_BACKOFF_FACTOR,
    RETRY_BASE_DELAY_MS,
    RETRY_JITTER_RATIO,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_DELAY_MS,
)
from fxconv.lib.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_FAILURE_MARKERS = ("Failed to fetch", "Network request failed")


class ConnectivityMonitor:
    """Tracks whether the network is reachable.

    A server process cannot observe connectivity, so the monitor reports
    online until something explicitly marks it offline (a health probe, or
    tests).
    """

    def __init__(self) -> None:
        """Initialize monitor in the online state."""
        self._online = asyncio.Event()
        self._online.set()

    def is_online(self) -> bool:
        """Current reachability."""
        return self._online.is_set()

    def mark_offline(self) -> None:
        """Record loss of connectivity."""
        if self._online.is_set():
            logger.warning("Network connectivity lost")
        self._online.clear()

    def mark_online(self) -> None:
        """Record restored connectivity and release waiters."""
        if not self._online.is_set():
            logger.info("Network connectivity restored")
        self._online.set()

    async def wait_for_online(self) -> None:
        """Suspend until online. Returns immediately when already online."""
        if self._online.is_set():
            return
        await self._online.wait()


default_monitor = ConnectivityMonitor()


def is_online() -> bool:
    """Reachability according to the process-wide monitor."""
    return default_monitor.is_online()


async def wait_for_online() -> None:
    """Wait on the process-wide monitor."""
    await default_monitor.wait_for_online()


def is_network_failure(error: BaseException) -> bool:
    """Whether a failure happened below HTTP (connection refused, DNS, timeout)."""
    if isinstance(
        error,
        (
            UpstreamUnavailableError,
            aiohttp.ClientConnectionError,
            ConnectionError,
            asyncio.TimeoutError,
            TimeoutError,
        ),
    ):
        return True
    message = str(error)
    return any(marker in message for marker in NETWORK_FAILURE_MARKERS)


def make_default_retry_condition(
    monitor: Optional[ConnectivityMonitor] = None,
) -> Callable[[BaseException], bool]:
    """
    Build the default retry predicate.

    Retries when the monitor reports offline, on network-level failures, and
    on failures carrying an HTTP status >= 500 or == 429. Cancellation and
    other non-Exception failures are never retried.
    """
    connectivity = monitor or default_monitor

    def should_retry(error: BaseException) -> bool:
        if not isinstance(error, Exception):
            return False
        if not connectivity.is_online():
            return True
        if is_network_failure(error):
            return True

        status = getattr(error, "status", None)
        if isinstance(status, int):
            return status >= 500 or status == 429

        return False

    return should_retry


default_retry_condition = make_default_retry_condition()


@dataclass
class RetryOptions:
    """Retry tuning. Delays are in milliseconds."""

    max_attempts: int = RETRY_MAX_ATTEMPTS
    base_delay: float = RETRY_BASE_DELAY_MS
    max_delay: float = RETRY_MAX_DELAY_MS
    backoff_factor: float = RETRY_BACKOFF_FACTOR
    retry_condition: Optional[Callable[[BaseException], bool]] = None


@dataclass
class RetryResult(Generic[T]):
    """Outcome of a retried operation: either data or the last error."""

    attempts: int
    success: bool
    data: Optional[T] = None
    error: Optional[BaseException] = None


def calculate_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    backoff_factor: float,
    rand: Callable[[], float] = random.random,
) -> float:
    """
    Delay in milliseconds before the attempt following ``attempt``.

    delay = min(base * factor^(attempt-1) * (1 + rand() * 0.1), max_delay)

    Args:
        attempt: 1-based number of the attempt that just failed
        base_delay: Delay after the first failure, in ms
        max_delay: Upper bound in ms
        backoff_factor: Growth per attempt
        rand: Source of uniform [0, 1) values for jitter

    Examples:
        >>> calculate_delay(1, 1000, 10000, 2, rand=lambda: 0.0)
        1000.0
        >>> calculate_delay(3, 1000, 10000, 2, rand=lambda: 0.5)
        4200.0
        >>> calculate_delay(5, 1000, 10000, 2, rand=lambda: 0.0)
        10000.0
    """
    exponential = base_delay * backoff_factor ** (attempt - 1)
    jitter = rand() * RETRY_JITTER_RATIO * exponential
    return float(min(exponential + jitter, max_delay))


class RetryExecutor:
    """Runs an async operation with bounded retries and jittered backoff.

    Built on tenacity's AsyncRetrying. The random source and the sleep
    coroutine are injectable so tests can make timing deterministic.

    Example:
        executor = RetryExecutor()
        result = await executor.run(fetch, RetryOptions(max_attempts=5))
        if not result.success:
            raise result.error
    """

    def __init__(
        self,
        monitor: Optional[ConnectivityMonitor] = None,
        rand: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        """
        Initialize executor.

        Args:
            monitor: Connectivity monitor consulted by the default retry condition
            rand: Jitter source returning floats in [0, 1) (default: random.random)
            sleep: Coroutine sleeping for a number of seconds (default: asyncio.sleep)
        """
        self.monitor = monitor or default_monitor
        self.rand = rand or random.random
        self.sleep = sleep or asyncio.sleep
        self.default_retry_condition = make_default_retry_condition(self.monitor)

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        options: Optional[RetryOptions] = None,
    ) -> RetryResult[T]:
        """
        Execute ``operation`` with retries.

        Never raises for operation failures; inspect the returned result.
        Task cancellation still propagates.

        Args:
            operation: Zero-argument coroutine function
            options: Retry tuning (defaults: 3 attempts, 1s base, 10s cap, factor 2)

        Returns:
            RetryResult with data or the last error, and the attempt count
        """
        opts = options or RetryOptions()
        condition = opts.retry_condition or self.default_retry_condition
        attempts = 0

        def wait(retry_state: RetryCallState) -> float:
            delay_ms = calculate_delay(
                retry_state.attempt_number,
                opts.base_delay,
                opts.max_delay,
                opts.backoff_factor,
                self.rand,
            )
            return delay_ms / 1000

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0
            logger.warning(
                f"Attempt {retry_state.attempt_number} failed, "
                f"retrying in {delay * 1000:.0f}ms: {error}"
            )

        async def attempt() -> T:
            nonlocal attempts
            attempts += 1
            return await operation()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(opts.max_attempts, 1)),
            wait=wait,
            retry=retry_if_exception(condition),
            sleep=self.sleep,
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            data = await retrying(attempt)
        except Exception as e:
            return RetryResult(attempts=attempts, success=False, error=e)

        return RetryResult(attempts=attempts, success=True, data=data)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    options: Optional[RetryOptions] = None,
) -> RetryResult[T]:
    """Run ``operation`` through a RetryExecutor bound to the default monitor."""
    return await RetryExecutor().run(operation, options)
