"""Core provider abstractions."""
from tradewizard.providers.core.error_mapper import ProviderErrorMapper
from tradewizard.providers.core.exceptions import (CircuitOpenError,
                                                   MarketNotFoundError,
                                                   RateLimitExceededError,
                                                   UpstreamResponseError)
from tradewizard.providers.core.market_provider_abc import \
    PredictionMarketProviderABC
from tradewizard.providers.core.resilience import (CircuitBreaker,
                                                   TokenBucketRateLimiter,
                                                   retry_with_backoff)
from tradewizard.providers.core.utils import (as_utc, parse_iso_datetime,
                                              parse_json_list, round2,
                                              to_float, utc_from_millis)

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "MarketNotFoundError",
    "PredictionMarketProviderABC",
    "ProviderErrorMapper",
    "RateLimitExceededError",
    "TokenBucketRateLimiter",
    "UpstreamResponseError",
    "as_utc",
    "parse_iso_datetime",
    "parse_json_list",
    "retry_with_backoff",
    "round2",
    "to_float",
    "utc_from_millis",
]
