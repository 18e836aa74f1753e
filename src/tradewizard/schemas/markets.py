"""Market data schemas returned by the proxy routes. Not persisted to DB."""
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class Source(str, Enum):
    """Upstream data source for a quote."""

    POLYMARKET = "polymarket"


class MarketQuote(BaseModel):
    """Probability snapshot for one market (0-1)."""

    source: Source = Source.POLYMARKET
    symbol: str
    value: float
    volume: float | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict | None = None


class OrderLevel(BaseModel):
    price: float
    size: float


class OrderBook(BaseModel):
    """CLOB order book with bids sorted high-to-low and asks low-to-high."""

    market: str | None = None
    asset_id: str | None = None
    bids: list[OrderLevel] = Field(default_factory=list)
    asks: list[OrderLevel] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def best_bid(self) -> float | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> float | None:
        return self.asks[0].price if self.asks else None

    @property
    def depth(self) -> float:
        return sum(level.size for level in self.bids) + sum(
            level.size for level in self.asks
        )


class RealtimePrice(BaseModel):
    """Best bid/ask for one CLOB token; only set when both sides are in (0, 1)."""

    bid_price: float
    ask_price: float
    mid_price: float
    spread: float


class MarketResolution(BaseModel):
    resolved: bool
    outcome: Literal["YES", "NO", "UNKNOWN"] | None = None
    resolved_at: datetime | None = None


class OutcomeInfo(BaseModel):
    """One selectable outcome of an event, as shown on a market card."""

    name: str
    probability: int = Field(ge=0, le=100, description="Rounded percent")
    color: Literal["yes", "no", "neutral"] = "neutral"
    category: str | None = None


class MarketsPage(BaseModel):
    """One page of tradeable markets plus the offset of the next page."""

    markets: list[dict]
    next_offset: int | None = None


class RankedMarket(BaseModel):
    """A discovered market with its trending score."""

    condition_id: str
    question: str
    description: str = ""
    trending_score: float
    volume_24h: float
    liquidity: float
    market_slug: str
