"""Polymarket market data routes: tradeable listings, quotes, prices and streams."""
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket

from tradewizard.deps import MarketServiceDep, MarketServiceWs
from tradewizard.schemas import MarketQuote, RealtimePrice

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/polymarket", tags=["polymarket"])


@router.get("/markets")
async def list_markets(
    service: MarketServiceDep,
    limit: int = Query(default=10, ge=1, le=100, description="Markets per page"),
    offset: int = Query(default=0, ge=0, description="Markets to skip"),
    tag_id: str | None = Query(default=None, description="Gamma tag ID filter"),
    with_prices: bool = Query(default=False, description="Attach CLOB bid/ask prices"),
) -> list[dict[str, Any]]:
    """Tradeable markets, most liquid first.

    Markets come from open events and are filtered to ones accepting orders
    with a non-extreme price and enough liquidity.
    """
    return await service.list_tradeable_markets(
        limit=limit, offset=offset, tag_id=tag_id, with_prices=with_prices
    )


@router.get("/markets/{symbol}", response_model=MarketQuote)
async def get_market(symbol: str, service: MarketServiceDep) -> MarketQuote:
    """Quote for a market by slug or condition ID (0x...)."""
    return await service.get_quote(symbol)


@router.get("/prices")
async def get_prices(
    service: MarketServiceDep,
    token_ids: str = Query(description="Comma-separated CLOB token IDs"),
) -> dict[str, RealtimePrice | None]:
    """Bid/ask/mid/spread per token; tokens whose prices could not be fetched map to null."""
    ids = [t.strip() for t in token_ids.split(",") if t.strip()]
    return await service.get_prices(ids)


@router.get("/health")
async def polymarket_health(service: MarketServiceDep) -> dict[str, str]:
    """Gamma and CLOB reachability; 503 when either is down."""
    return await service.health()


@router.post("/refresh")
async def refresh(service: MarketServiceDep) -> dict[str, str]:
    """Clear cached market data."""
    await service.refresh()
    return {"status": "refreshed"}


@router.websocket("/stream")
async def stream_markets(websocket: WebSocket, service: MarketServiceWs) -> None:
    """Stream price updates over WebSocket: /api/polymarket/stream?symbols=slug1,0x...

    Each message is a MarketQuote JSON.
    """
    await service.handle_websocket_stream(
        websocket, "Query param 'symbols' required (e.g. ?symbols=slug1,slug2)"
    )
