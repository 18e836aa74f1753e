"""Market data service over a prediction market provider.

MarketService owns the listing rules (services.markets) and maps provider
exceptions to HTTP so routers stay thin.
"""
import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from fastapi import WebSocket

from tradewizard.providers.core import (CircuitOpenError,
                                        PredictionMarketProviderABC,
                                        ProviderErrorMapper,
                                        RateLimitExceededError,
                                        UpstreamResponseError)
from tradewizard.schemas import MarketQuote, RealtimePrice
from tradewizard.services.markets import (EVENT_FETCH_MULTIPLIER,
                                          attach_realtime_prices,
                                          fetch_token_prices,
                                          select_tradeable_markets)
from tradewizard.services.utils import (handle_websocket_stream,
                                        parse_symbols_param)

logger = logging.getLogger(__name__)

# Exceptions from providers we map to HTTP; all others propagate (e.g. bugs, BaseException).
_PROVIDER_EXCEPTIONS: tuple[type[Exception], ...] = (
    ValueError,
    KeyError,
    TypeError,
    TimeoutError,
    asyncio.TimeoutError,
    httpx.HTTPError,
    CircuitOpenError,
    RateLimitExceededError,
    UpstreamResponseError,
)


class MarketService:
    """Listing, quotes, prices and streams for one provider, with HTTP error mapping."""

    def __init__(
        self,
        provider: PredictionMarketProviderABC,
        error_mapper: ProviderErrorMapper | None = None,
    ) -> None:
        self._provider = provider
        self._error_mapper = error_mapper or ProviderErrorMapper("Market", "Polymarket")

    @property
    def provider(self) -> PredictionMarketProviderABC:
        return self._provider

    async def list_tradeable_markets(
        self,
        limit: int = 10,
        offset: int = 0,
        tag_id: str | None = None,
        *,
        with_prices: bool = False,
    ) -> list[dict[str, Any]]:
        """One page of tradeable markets, best first.

        Enough events are requested to cover offset + limit after filtering.
        Raises HTTPException on provider errors.
        """
        try:
            events = await self._provider.list_events(
                limit=(offset + limit) * EVENT_FETCH_MULTIPLIER,
                offset=0,
                tag_id=tag_id,
            )
            markets = select_tradeable_markets(events, limit=limit, offset=offset)
        except _PROVIDER_EXCEPTIONS as e:
            logger.error("Error fetching markets: %s", e)
            self._error_mapper.raise_http(e)
        if with_prices:
            await attach_realtime_prices(self._provider, markets)
        return markets

    async def get_quote(self, symbol: str) -> MarketQuote:
        try:
            return await self._provider.get_quote(symbol)
        except _PROVIDER_EXCEPTIONS as e:
            self._error_mapper.raise_http(e, symbol=symbol)

    async def get_prices(self, token_ids: list[str]) -> dict[str, RealtimePrice | None]:
        """Realtime prices per token; a failed token maps to None."""
        results = await asyncio.gather(
            *(fetch_token_prices(self._provider, token_id) for token_id in token_ids),
            return_exceptions=True,
        )
        prices: dict[str, RealtimePrice | None] = {}
        for token_id, result in zip(token_ids, results):
            if isinstance(result, Exception):
                logger.warning("Error fetching price for token %s: %s", token_id, result)
                prices[token_id] = None
            else:
                prices[token_id] = result
        return prices

    async def health(self) -> dict[str, str]:
        """Raises HTTPException 503 when either Polymarket API is unreachable."""
        if not await self._provider.health_check():
            self._error_mapper.raise_http(CircuitOpenError("Polymarket health check failed"))
        return {"status": "ok"}

    async def refresh(self) -> None:
        try:
            await self._provider.refresh()
        except _PROVIDER_EXCEPTIONS as e:
            self._error_mapper.raise_http(e)

    async def stream(
        self,
        symbol_list: list[str],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[MarketQuote]:
        async for quote in self._provider.stream(symbol_list, stop_event=stop_event):
            yield quote

    async def handle_websocket_stream(
        self, websocket: WebSocket, symbols_required_message: str
    ) -> None:
        """Accept WebSocket, parse symbols from query params, and stream quotes."""
        symbol_list = parse_symbols_param(websocket.query_params)
        await handle_websocket_stream(
            websocket, self, symbol_list, symbols_required_message
        )
