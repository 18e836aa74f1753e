import httpx
import pytest

from tradewizard.providers.core import (CircuitBreaker, CircuitOpenError,
                                        RateLimitExceededError,
                                        TokenBucketRateLimiter,
                                        retry_with_backoff)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _status_error(status: int, headers: dict[str, str] | None = None) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://gamma-api.polymarket.com/markets")
    response = httpx.Response(status, request=request, headers=headers)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=3, reset_timeout=60, clock=FakeClock())
        for _ in range(2):
            breaker.record_failure()
        assert breaker.state == "CLOSED"
        breaker.record_failure()
        assert breaker.state == "OPEN"
        with pytest.raises(CircuitOpenError):
            breaker.check()

    def test_half_open_after_timeout_then_closes_on_success(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, clock=clock)
        breaker.record_failure()
        clock.now = 59
        assert not breaker.can_request()
        clock.now = 60
        assert breaker.can_request()
        assert breaker.state == "HALF_OPEN"
        breaker.record_success()
        assert breaker.state == "CLOSED"
        assert breaker.failure_count == 0

    def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=5, reset_timeout=10, clock=clock)
        for _ in range(5):
            breaker.record_failure()
        clock.now = 10
        breaker.check()
        breaker.record_failure()
        assert breaker.state == "OPEN"


class TestTokenBucket:
    async def test_full_bucket_does_not_wait(self):
        sleep = SleepRecorder()
        limiter = TokenBucketRateLimiter(max_tokens=10, refill_rate=1, clock=FakeClock(), sleep=sleep)
        await limiter.acquire()
        assert sleep.delays == []
        assert limiter.tokens == 9

    async def test_slows_down_below_buffer(self):
        sleep = SleepRecorder()
        limiter = TokenBucketRateLimiter(
            max_tokens=10, refill_rate=1, buffer_percent=80, clock=FakeClock(), sleep=sleep
        )
        for _ in range(3):
            await limiter.acquire()
        # threshold is 8 tokens; the third acquire sees exactly 8
        assert sleep.delays == []
        await limiter.acquire()
        assert sleep.delays == [0.1]

    async def test_empty_bucket_waits_for_refill(self):
        sleep = SleepRecorder()
        limiter = TokenBucketRateLimiter(max_tokens=1, refill_rate=4, clock=FakeClock(), sleep=sleep)
        await limiter.acquire()
        await limiter.acquire()
        assert sleep.delays[-1] == pytest.approx(0.25)

    async def test_refills_over_time(self):
        clock = FakeClock()
        limiter = TokenBucketRateLimiter(max_tokens=10, refill_rate=2, clock=clock, sleep=SleepRecorder())
        for _ in range(5):
            await limiter.acquire()
        clock.now = 1.0
        await limiter.acquire()
        assert limiter.tokens == pytest.approx(6)


class TestRetryWithBackoff:
    async def test_retries_server_errors_then_succeeds(self):
        sleep = SleepRecorder()
        attempts = []

        async def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise _status_error(503)
            return "ok"

        assert await retry_with_backoff(operation, 3, max_jitter=0, sleep=sleep) == "ok"
        assert sleep.delays == [1.0, 2.0]

    async def test_client_errors_are_not_retried(self):
        sleep = SleepRecorder()

        async def operation():
            raise _status_error(404)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_with_backoff(operation, 3, sleep=sleep)
        assert sleep.delays == []

    async def test_final_429_becomes_rate_limit_error(self):
        async def operation():
            raise _status_error(429, {"retry-after": "30"})

        with pytest.raises(RateLimitExceededError) as info:
            await retry_with_backoff(operation, 1, max_jitter=0, sleep=SleepRecorder())
        assert info.value.retry_after == 30

    async def test_gives_up_after_max_retries(self):
        sleep = SleepRecorder()

        async def operation():
            raise httpx.ConnectError("refused")

        with pytest.raises(httpx.ConnectError):
            await retry_with_backoff(operation, 2, max_jitter=0, sleep=sleep)
        assert sleep.delays == [1.0, 2.0]
