"""Symbol resolution for Polymarket (slug or condition ID -> market DTO)."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from tradewizard.providers.core import MarketNotFoundError
from tradewizard.providers.polymarket.dto import PolymarketMarketDTO

if TYPE_CHECKING:
    from tradewizard.providers.polymarket.cache import PolymarketMarketCache

# (path, params) -> decoded JSON, with rate limiting and retries applied
GammaFetcher = Callable[[str, dict[str, Any]], Awaitable[Any]]


class PolymarketSymbolResolver:
    """Resolves a market slug or `0x…` condition ID through the Gamma API.

    Results are cached so repeated lookups (and stream token mapping) avoid
    redundant requests.
    """

    def __init__(self, fetch: GammaFetcher, cache: PolymarketMarketCache) -> None:
        self._fetch = fetch
        self._cache = cache

    async def resolve(self, symbol: str) -> PolymarketMarketDTO:
        """Return market data for symbol.

        Raises:
            MarketNotFoundError: If Gamma has no market for the symbol.
        """
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        if symbol.startswith("0x"):
            params = {"condition_ids": symbol, "limit": 1}
            label = "condition_id"
        else:
            params = {"slug": symbol, "limit": 1}
            label = "slug"

        markets = await self._fetch("/markets", params)
        if not markets:
            raise MarketNotFoundError(f"Market with {label} '{symbol}' not found")

        market = PolymarketMarketDTO.model_validate(markets[0])
        self._cache.put(market)
        return market
