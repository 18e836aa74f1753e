"""Exceptions raised by market data providers."""


class MarketNotFoundError(ValueError):
    """The requested market, event or token does not exist upstream."""


class RateLimitExceededError(RuntimeError):
    """Upstream answered 429; retry_after is in seconds."""

    def __init__(self, retry_after: float = 60.0) -> None:
        super().__init__(f"Upstream rate limit exceeded; retry after {retry_after:.0f}s")
        self.retry_after = retry_after


class UpstreamResponseError(RuntimeError):
    """Upstream answered 2xx with a payload of the wrong shape."""


class CircuitOpenError(RuntimeError):
    """The circuit breaker is open and requests are short-circuited."""

    def __init__(self, message: str = "Circuit breaker is OPEN. API is temporarily unavailable.") -> None:
        super().__init__(message)
