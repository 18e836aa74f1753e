"""Market data providers for prediction markets.

PolymarketClient implements PredictionMarketProviderABC over the Polymarket
Gamma and CLOB APIs, with rate limiting, retries and a circuit breaker.

Example:
    async with PolymarketClient() as client:
        result = await client.fetch_market_data("0xabc...")
        if result.ok:
            print(result.data.current_probability)
"""
from tradewizard.providers.core import PredictionMarketProviderABC
from tradewizard.providers.polymarket import PolymarketClient

__all__ = [
    "PolymarketClient",
    "PredictionMarketProviderABC",
]
