"""Protocols for service-layer collaborators."""
import asyncio
from collections.abc import AsyncIterator
from typing import Protocol

from tradewizard.schemas import MarketQuote


class QuoteStreamable(Protocol):
    """Anything that can stream MarketQuotes until told to stop."""

    def stream(
        self,
        symbol_list: list[str],
        *,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[MarketQuote]:
        """Stream quotes for the given symbols until stop_event is set."""
        ...
