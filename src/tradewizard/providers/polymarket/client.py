"""Polymarket client over the Gamma (metadata) and CLOB (order book) APIs.

Every upstream call goes through the circuit breaker, the token-bucket rate
limiter and retry with exponential backoff.
"""
import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, Literal

import httpx
import websockets
from pydantic import ValidationError
from websockets import ClientConnection

from tradewizard.config import PolymarketConfig
from tradewizard.providers.core import (CircuitBreaker, CircuitOpenError,
                                        MarketNotFoundError,
                                        PredictionMarketProviderABC,
                                        RateLimitExceededError,
                                        TokenBucketRateLimiter,
                                        UpstreamResponseError,
                                        parse_iso_datetime,
                                        retry_with_backoff, round2, to_float,
                                        utc_from_millis)
from tradewizard.providers.polymarket.briefing import build_briefing
from tradewizard.providers.polymarket.cache import PolymarketMarketCache
from tradewizard.providers.polymarket.dto import (PolymarketMarketDTO,
                                                  PolymarketOrderBookDTO)
from tradewizard.providers.polymarket.resolver import PolymarketSymbolResolver
from tradewizard.schemas import (IngestionError, IngestionResult,
                                 MarketQuote, MarketResolution, OrderBook,
                                 Source)

logger = logging.getLogger(__name__)

_UPSTREAM_ERRORS = (httpx.HTTPError, asyncio.TimeoutError, RateLimitExceededError)


class PolymarketClient(PredictionMarketProviderABC):
    """Market data provider for Polymarket prediction markets.

    Polymarket is structured Event -> Markets -> Outcomes; each outcome is a
    CLOB token with its own order book.
    """

    CLOB_WSS_URL = "wss://ws-subscriptions-clob.polymarket.com/ws/market"

    def __init__(
        self,
        config: PolymarketConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        rate_limiter: TokenBucketRateLimiter | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        max_retries: int = 3,
        timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the client.

        Args:
            config: API URLs and rate-limit buffer; defaults to public endpoints.
            transport: Optional httpx transport (tests pass httpx.MockTransport).
            rate_limiter: Token bucket; built from config when omitted.
            circuit_breaker: Breaker shared by both APIs; 5 failures / 60s by default.
            max_retries: Retries after the first attempt for transient failures.
            timeout: Per-request timeout in seconds.
            sleep: Awaitable sleep used for backoff and rate limiting.
        """
        config = config or PolymarketConfig()
        self._gamma_client = httpx.AsyncClient(
            base_url=config.gamma_api_url, timeout=timeout, transport=transport
        )
        self._clob_client = httpx.AsyncClient(
            base_url=config.clob_api_url, timeout=timeout, transport=transport
        )
        self._sleep = sleep
        self._max_retries = max_retries
        self._limiter = rate_limiter or TokenBucketRateLimiter(
            buffer_percent=config.rate_limit_buffer, sleep=sleep
        )
        self._breaker = circuit_breaker or CircuitBreaker()
        self._cache = PolymarketMarketCache()
        self._resolver = PolymarketSymbolResolver(self._get_gamma, self._cache)
        self._ws: ClientConnection | None = None

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._breaker

    async def _request(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET path and decode JSON with breaker, rate limit and retries applied."""
        self._breaker.check()
        await self._limiter.acquire()

        async def call() -> Any:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()

        try:
            data = await retry_with_backoff(
                call, self._max_retries, sleep=self._sleep
            )
        except httpx.HTTPStatusError as exc:
            # 4xx means the request was wrong, not that the API is down
            if exc.response.status_code >= 500:
                self._breaker.record_failure()
            raise
        except _UPSTREAM_ERRORS:
            self._breaker.record_failure()
            raise
        self._breaker.record_success()
        return data

    async def _get_gamma(self, path: str, params: dict[str, Any]) -> Any:
        return await self._request(self._gamma_client, path, params)

    async def _get_clob(self, path: str, params: dict[str, Any]) -> Any:
        return await self._request(self._clob_client, path, params)

    # --- Listing and lookup ---

    async def list_events(
        self,
        limit: int = 20,
        offset: int = 0,
        tag_id: str | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "closed": "false",
            "order": "volume24hr",
            "ascending": "false",
            "limit": limit,
            "offset": offset,
        }
        if tag_id:
            params["tag_id"] = tag_id
            params["related_tags"] = "true"

        events = await self._get_gamma("/events", params)
        if not isinstance(events, list):
            logger.error("Unexpected Gamma /events payload: %r", type(events))
            raise UpstreamResponseError("Invalid API response")
        return events

    async def list_active_markets(self, limit: int = 100) -> list[dict[str, Any]]:
        """Raw active, open markets from Gamma `/markets`."""
        markets = await self._get_gamma(
            "/markets", {"active": "true", "closed": "false", "limit": limit}
        )
        if isinstance(markets, dict):
            markets = markets.get("markets") or []
        if not isinstance(markets, list):
            raise UpstreamResponseError("Invalid API response")
        return markets

    async def get_market(self, symbol: str, *, use_cache: bool = True) -> PolymarketMarketDTO:
        """Resolve a market slug or `0x…` condition ID.

        Raises:
            MarketNotFoundError: If no market matches.
        """
        if not use_cache:
            self._cache.discard(symbol)
        return await self._resolver.resolve(symbol)

    async def get_quote(self, symbol: str) -> MarketQuote:
        market = await self.get_market(symbol)
        return market.to_market_quote()

    async def get_order_book(self, token_or_condition_id: str) -> OrderBook:
        """Order book by CLOB token ID, or by condition ID when it starts with 0x."""
        if token_or_condition_id.startswith("0x"):
            params = {"market": token_or_condition_id}
        else:
            params = {"token_id": token_or_condition_id}
        raw = await self._get_clob("/book", params)
        try:
            return PolymarketOrderBookDTO.model_validate(raw).to_order_book()
        except ValidationError as exc:
            raise UpstreamResponseError("Invalid order book response") from exc

    async def get_price(self, token_id: str, side: Literal["BUY", "SELL"]) -> float:
        """Best price for one side of a token (BUY = best bid, SELL = best ask)."""
        data = await self._get_clob("/price", {"token_id": token_id, "side": side})
        if not isinstance(data, dict) or "price" not in data:
            raise UpstreamResponseError(f"No {side} price for token {token_id}")
        return to_float(data["price"], default=float("nan"))

    # --- Workflow ingestion ---

    async def fetch_market_data(self, condition_id: str) -> IngestionResult:
        """Fetch market + order book and build a briefing. Never raises."""
        if not condition_id or not condition_id.strip():
            return IngestionResult(
                ok=False,
                error=IngestionError.validation_failed("condition_id", "must not be empty"),
            )

        try:
            market = await self.get_market(condition_id, use_cache=False)
            tokens = market.clob_token_ids_parsed
            book = await self.get_order_book(tokens[0] if tokens else condition_id)
            mbd = build_briefing(condition_id, market, book)
        except CircuitOpenError as exc:
            return IngestionResult(ok=False, error=IngestionError.api_unavailable(str(exc)))
        except RateLimitExceededError as exc:
            return IngestionResult(ok=False, error=IngestionError.rate_limited(exc.retry_after))
        except MarketNotFoundError:
            return IngestionResult(ok=False, error=IngestionError.invalid_market(condition_id))
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code in (400, 404):
                return IngestionResult(
                    ok=False, error=IngestionError.invalid_market(condition_id)
                )
            return IngestionResult(
                ok=False,
                error=IngestionError.api_unavailable(
                    f"HTTP {exc.response.status_code} from {exc.request.url.host}"
                ),
            )
        except ValidationError as exc:
            return IngestionResult(
                ok=False,
                error=IngestionError.validation_failed("market", str(exc.errors()[0]["msg"])),
            )
        except (httpx.HTTPError, asyncio.TimeoutError, UpstreamResponseError) as exc:
            return IngestionResult(
                ok=False,
                error=IngestionError.api_unavailable(str(exc) or type(exc).__name__),
            )
        return IngestionResult(ok=True, data=mbd)

    async def check_market_resolution(self, condition_id: str) -> MarketResolution:
        """Closed, resolved or inactive markets are resolved.

        The outcome is read from final prices: YES/NO at 0.99+, then at 0.95+,
        otherwise UNKNOWN. Any error reports the market as unresolved.
        """
        try:
            market = await self.get_market(condition_id, use_cache=False)
        except (CircuitOpenError, MarketNotFoundError, UpstreamResponseError,
                ValidationError, *_UPSTREAM_ERRORS) as exc:
            logger.warning("Resolution check failed for %s: %s", condition_id, exc)
            return MarketResolution(resolved=False)

        if not (market.closed or market.resolved or market.active is False):
            return MarketResolution(resolved=False)

        prices = market.outcome_prices_parsed
        yes_price = prices[0] if prices else 0.0
        no_price = prices[1] if len(prices) > 1 else 0.0
        outcome: Literal["YES", "NO", "UNKNOWN"] = "UNKNOWN"
        if yes_price >= 0.99:
            outcome = "YES"
        elif no_price >= 0.99:
            outcome = "NO"
        elif yes_price >= 0.95:
            outcome = "YES"
        elif no_price >= 0.95:
            outcome = "NO"

        return MarketResolution(
            resolved=True,
            outcome=outcome,
            resolved_at=parse_iso_datetime(market.end_date) or datetime.now(timezone.utc),
        )

    async def health_check(self) -> bool:
        for client in (self._gamma_client, self._clob_client):
            try:
                response = await client.get("/health", timeout=5.0)
            except httpx.HTTPError as exc:
                logger.warning("Health check failed for %s: %s", client.base_url, exc)
                return False
            if response.is_error:
                return False
        return True

    # --- Streaming ---

    async def stream(
        self,
        symbols: list[str],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[MarketQuote]:
        """Stream probability updates from the CLOB market WebSocket.

        Args:
            symbols: Market slugs or condition IDs.
            stop_event: Set by the caller to end the stream.
        """
        stop_event = stop_event or asyncio.Event()
        asset_ids: list[str] = []
        for symbol in symbols:
            market = await self.get_market(symbol)
            asset_ids.extend(market.clob_token_ids_parsed)
        if not asset_ids:
            return

        try:
            async with websockets.connect(self.CLOB_WSS_URL) as ws:
                self._ws = ws
                await ws.send(json.dumps({"type": "MARKET", "assets_ids": asset_ids}))
                while not stop_event.is_set():
                    try:
                        raw = await asyncio.wait_for(ws.recv(), timeout=30.0)
                    except asyncio.TimeoutError:
                        await ws.ping()
                        continue
                    for quote in self._quotes_from_message(json.loads(raw)):
                        yield quote
        except websockets.ConnectionClosed:
            logger.debug("CLOB WebSocket closed")
        finally:
            self._ws = None

    def _quote_for_token(self, asset_id: str, price: float, ts: datetime) -> MarketQuote:
        known = self._cache.lookup_token(asset_id)
        symbol, outcome_index = known if known else (asset_id, 0)
        return MarketQuote(
            source=Source.POLYMARKET,
            symbol=symbol,
            value=round2(price),
            timestamp=ts,
            metadata={"token_id": asset_id, "outcome_index": outcome_index},
        )

    def _quotes_from_message(self, data: Any) -> list[MarketQuote]:
        """Extract quotes from one WS payload (a dict or a list of dicts)."""
        if isinstance(data, list):
            return [q for item in data for q in self._quotes_from_message(item)]
        if not isinstance(data, dict):
            return []

        ts = utc_from_millis(data.get("timestamp"))

        event_type = data.get("event_type")
        if event_type == "last_trade_price" and data.get("asset_id"):
            return [self._quote_for_token(data["asset_id"], to_float(data.get("price")), ts)]
        if event_type == "price_change":
            return [
                self._quote_for_token(asset_id, to_float(best_bid), ts)
                for change in data.get("price_changes") or []
                if (asset_id := change.get("asset_id"))
                and (best_bid := change.get("best_bid"))
                and best_bid != "0"
            ]
        return []

    async def refresh(self) -> None:
        self._cache.clear()
        if self._ws:
            await self._ws.close()
            self._ws = None

    async def close(self) -> None:
        if self._ws:
            await self._ws.close()
            self._ws = None
        await self._gamma_client.aclose()
        await self._clob_client.aclose()
