"""Cache for resolved Polymarket markets and token-to-market lookup."""
from tradewizard.providers.polymarket.dto import PolymarketMarketDTO


class PolymarketMarketCache:
    """Markets keyed by slug, indexed by condition ID and CLOB token ID.

    The token index lets WebSocket events (which carry only asset IDs) be
    mapped back to a market symbol and outcome.
    """

    def __init__(self) -> None:
        self._by_slug: dict[str, PolymarketMarketDTO] = {}
        self._slug_by_condition: dict[str, str] = {}
        self._token_index: dict[str, tuple[str, int]] = {}

    def __len__(self) -> int:
        return len(self._by_slug)

    def get(self, key: str) -> PolymarketMarketDTO | None:
        """Look up by slug first, then by condition ID."""
        market = self._by_slug.get(key)
        if market is not None:
            return market
        slug = self._slug_by_condition.get(key)
        return self._by_slug.get(slug) if slug else None

    def put(self, market: PolymarketMarketDTO) -> None:
        slug = market.symbol
        self._by_slug[slug] = market
        if market.condition_id:
            self._slug_by_condition[market.condition_id] = slug
        for index, token_id in enumerate(market.clob_token_ids_parsed):
            self._token_index[token_id] = (slug, index)

    def discard(self, key: str) -> None:
        """Drop a market (by slug or condition ID) so the next lookup refetches."""
        market = self.get(key)
        if market is None:
            return
        self._by_slug.pop(market.symbol, None)
        if market.condition_id:
            self._slug_by_condition.pop(market.condition_id, None)

    def lookup_token(self, token_id: str) -> tuple[str, int] | None:
        """Resolve a CLOB token ID to (market symbol, outcome index)."""
        return self._token_index.get(token_id)

    def clear(self) -> None:
        self._by_slug.clear()
        self._slug_by_condition.clear()
        self._token_index.clear()
