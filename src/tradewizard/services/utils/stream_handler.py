"""WebSocket stream handling: parse symbols and push MarketQuotes to a client."""
import asyncio
import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from tradewizard.schemas import MarketQuote
from tradewizard.services.protocols import QuoteStreamable

logger = logging.getLogger(__name__)


def parse_symbols_param(query_params: Any) -> list[str]:
    """Parse the comma-separated `symbols` query param into a list."""
    raw = (query_params.get("symbols") or "").strip()
    return [s.strip() for s in raw.split(",") if s.strip()]


async def handle_websocket_stream(
    websocket: WebSocket,
    stream_source: QuoteStreamable,
    symbol_list: list[str],
    symbols_required_message: str,
) -> None:
    """Accept the WebSocket, validate symbols, then forward quotes as JSON.

    Each connection gets its own stop_event so one client disconnecting does
    not end other clients' streams on the shared provider.
    """
    await websocket.accept()
    if not symbol_list:
        await websocket.close(code=4000, reason=symbols_required_message)
        return
    stop_event = asyncio.Event()
    try:
        async for quote in stream_source.stream(symbol_list, stop_event=stop_event):
            if isinstance(quote, MarketQuote):
                await websocket.send_json(quote.model_dump(mode="json"))
    except WebSocketDisconnect:
        logger.debug("Stream client disconnected")
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("Stream error: %s", exc)
        await websocket.close(code=1011, reason="Stream error")
    finally:
        stop_event.set()
