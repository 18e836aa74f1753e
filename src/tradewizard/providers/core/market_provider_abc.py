"""Abstract base class for prediction market data providers."""
import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any, Literal

from tradewizard.schemas import (IngestionResult, MarketQuote,
                                 MarketResolution, OrderBook)


class PredictionMarketProviderABC(ABC):
    """Base interface for prediction market data providers.

    Providers expose raw upstream events/markets for the listing proxy,
    normalized quotes and order books, and a briefing builder used by the
    recommendation workflow.
    """

    @abstractmethod
    async def list_events(
        self,
        limit: int = 20,
        offset: int = 0,
        tag_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch open events ordered by 24h volume (descending).

        Args:
            limit: Number of events to request upstream.
            offset: Pagination offset.
            tag_id: Optional category tag; related tags are included.

        Returns:
            Raw event dicts, each with a `markets` list.
        """

    @abstractmethod
    async def get_quote(self, symbol: str) -> MarketQuote:
        """Fetch the current probability for a market slug or condition ID."""

    @abstractmethod
    async def get_order_book(self, token_or_condition_id: str) -> OrderBook:
        """Fetch the CLOB order book for a token or condition ID."""

    @abstractmethod
    async def get_price(self, token_id: str, side: Literal["BUY", "SELL"]) -> float:
        """Fetch the best price for one side of a CLOB token."""

    @abstractmethod
    async def fetch_market_data(self, condition_id: str) -> IngestionResult:
        """Build a market briefing; never raises, errors are returned typed."""

    @abstractmethod
    async def check_market_resolution(self, condition_id: str) -> MarketResolution:
        """Report whether a market has resolved and to which outcome."""

    async def health_check(self) -> bool:
        """Return True when the upstream APIs are reachable."""
        return True

    @abstractmethod
    async def stream(
        self,
        symbols: list[str],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[MarketQuote]:
        """Subscribe to real-time probability updates for the given markets.

        The stream ends when stop_event is set (one event per client).

        Yields:
            MarketQuote objects as trades and book changes arrive.
        """
        # This yield is needed to make this an async generator in the ABC
        yield  # type: ignore[misc]

    @abstractmethod
    async def refresh(self) -> None:
        """Clear caches and drop open connections."""

    async def close(self) -> None:
        """Clean up resources (connections, clients).

        Override in subclasses if cleanup is needed.
        """

    async def __aenter__(self) -> "PredictionMarketProviderABC":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        await self.close()
