"""Rate limiting, circuit breaking and retry for upstream HTTP calls."""
import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import Literal, TypeVar

import httpx

from tradewizard.providers.core.exceptions import (CircuitOpenError,
                                                   RateLimitExceededError)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]

# Client errors that will not change on retry.
NON_RETRYABLE_STATUS = frozenset({400, 401, 403, 404})


class TokenBucketRateLimiter:
    """Token bucket that slows callers down as the bucket empties.

    When fewer than buffer_percent of max_tokens remain, each acquire waits a
    short slowdown delay; when the bucket is empty it waits for one refill.
    """

    def __init__(
        self,
        max_tokens: float = 100.0,
        refill_rate: float = 10.0,
        buffer_percent: float = 80.0,
        *,
        slowdown_delay: float = 0.1,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.max_tokens = max_tokens
        self.refill_rate = refill_rate
        self.buffer_percent = buffer_percent
        self.slowdown_delay = slowdown_delay
        self._clock = clock
        self._sleep = sleep
        self.tokens = max_tokens
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        self.tokens = min(self.max_tokens, self.tokens + elapsed * self.refill_rate)
        self._last_refill = now

    async def acquire(self) -> None:
        """Take one token, waiting if the bucket is empty or running low."""
        async with self._lock:
            self._refill()
            threshold = (self.buffer_percent / 100.0) * self.max_tokens
            if self.tokens < 1:
                await self._sleep(1.0 / self.refill_rate)
                self.tokens = 1
            elif self.tokens < threshold:
                await self._sleep(self.slowdown_delay)
            self.tokens -= 1


CircuitState = Literal["CLOSED", "OPEN", "HALF_OPEN"]


class CircuitBreaker:
    """Opens after failure_threshold consecutive failures; probes after reset_timeout."""

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: float = 60.0,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self.state: CircuitState = "CLOSED"
        self.failure_count = 0
        self._last_failure = 0.0

    def can_request(self) -> bool:
        if self.state == "CLOSED":
            return True
        if self.state == "OPEN":
            if self._clock() - self._last_failure >= self.reset_timeout:
                self.state = "HALF_OPEN"
                return True
            return False
        return True

    def check(self) -> None:
        """Raise CircuitOpenError when requests are currently short-circuited."""
        if not self.can_request():
            raise CircuitOpenError()

    def record_success(self) -> None:
        self.failure_count = 0
        self.state = "CLOSED"

    def record_failure(self) -> None:
        self.failure_count += 1
        self._last_failure = self._clock()
        if self.state == "HALF_OPEN" or self.failure_count >= self.failure_threshold:
            if self.state != "OPEN":
                logger.warning(
                    "Circuit breaker opened after %d failures", self.failure_count
                )
            self.state = "OPEN"


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code not in NON_RETRYABLE_STATUS
    return isinstance(exc, (httpx.TransportError, asyncio.TimeoutError, TimeoutError))


def _rate_limit_error(exc: httpx.HTTPStatusError) -> RateLimitExceededError:
    raw = exc.response.headers.get("retry-after")
    try:
        retry_after = float(raw) if raw else 60.0
    except ValueError:
        retry_after = 60.0
    return RateLimitExceededError(retry_after)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    *,
    base_delay: float = 1.0,
    max_jitter: float = 1.0,
    sleep: Sleeper = asyncio.sleep,
) -> T:
    """Run operation, retrying transient failures with exponential backoff and jitter.

    Delays are base_delay * 2**attempt plus up to max_jitter seconds. Client
    errors (400/401/403/404) are raised immediately; a final 429 becomes
    RateLimitExceededError.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:  # pylint: disable=broad-except
            if not _is_retryable(exc) or attempt >= max_retries:
                if (
                    isinstance(exc, httpx.HTTPStatusError)
                    and exc.response.status_code == 429
                ):
                    raise _rate_limit_error(exc) from exc
                raise
            delay = base_delay * (2 ** attempt) + random.uniform(0, max_jitter)
            logger.debug(
                "Retrying after %s (attempt %d/%d, %.2fs)",
                type(exc).__name__, attempt + 1, max_retries, delay,
            )
            attempt += 1
            await sleep(delay)
