"""Build a Market Briefing Document from Gamma market data and a CLOB order book."""
import math

from tradewizard.providers.core import parse_iso_datetime
from tradewizard.providers.polymarket.dto import PolymarketMarketDTO
from tradewizard.schemas import (BriefingMetadata, Catalyst,
                                 MarketBriefingDocument, OrderBook)
from tradewizard.schemas.workflow import EventType, VolatilityRegime

AMBIGUOUS_TERMS = (
    "may",
    "might",
    "could",
    "possibly",
    "unclear",
    "ambiguous",
    "subjective",
)

# First match wins.
_EVENT_TYPE_KEYWORDS: tuple[tuple[EventType, tuple[str, ...]], ...] = (
    ("election", ("election", "vote")),
    ("policy", ("policy", "law")),
    ("court", ("court", "ruling")),
    ("geopolitical", ("war", "conflict", "treaty")),
    ("economic", ("gdp", "inflation", "economy", "bitcoin", "stock", "market", "price")),
)


def volatility_regime(spread_cents: float) -> VolatilityRegime:
    """Spread is the only volatility proxy without price history."""
    if spread_cents < 2:
        return "low"
    if spread_cents < 5:
        return "medium"
    return "high"


def liquidity_score(depth: float) -> float:
    """Order book depth on a 0-10 log scale."""
    return min(10.0, math.log10(depth + 1) * 2)


def detect_ambiguity_flags(description: str | None) -> list[str]:
    text = (description or "").lower()
    return [
        f'Contains ambiguous term: "{term}"' for term in AMBIGUOUS_TERMS if term in text
    ]


def classify_event_type(question: str | None) -> EventType:
    text = (question or "").lower()
    for event_type, keywords in _EVENT_TYPE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return event_type
    return "other"


def extract_catalysts(market: PolymarketMarketDTO) -> list[Catalyst]:
    catalysts: list[Catalyst] = []
    start = parse_iso_datetime(market.game_start_time)
    if start is not None:
        catalysts.append(Catalyst(event="Market event start", timestamp=start))
    expiry = parse_iso_datetime(market.end_date)
    if expiry is not None:
        catalysts.append(Catalyst(event="Market expiry", timestamp=expiry))
    return catalysts


def build_briefing(
    condition_id: str,
    market: PolymarketMarketDTO,
    book: OrderBook,
) -> MarketBriefingDocument:
    """Transform raw market data plus order book into a briefing.

    A missing bid counts as 0 and a missing ask as 1, so an empty book gives
    a 100-cent spread and a 0.5 midpoint.
    """
    best_bid = book.best_bid if book.best_bid is not None else 0.0
    best_ask = book.best_ask if book.best_ask is not None else 1.0
    spread_cents = (best_ask - best_bid) * 100

    return MarketBriefingDocument(
        market_id=market.slug or condition_id,
        condition_id=condition_id,
        event_type=classify_event_type(market.question),
        question=market.question or "",
        resolution_criteria=market.description or "No resolution criteria provided",
        expiry_timestamp=parse_iso_datetime(market.end_date),
        current_probability=(best_bid + best_ask) / 2,
        liquidity_score=liquidity_score(book.depth),
        bid_ask_spread=spread_cents,
        volatility_regime=volatility_regime(spread_cents),
        volume_24h=market.volume_compiled or 0.0,
        metadata=BriefingMetadata(
            ambiguity_flags=detect_ambiguity_flags(market.description),
            key_catalysts=extract_catalysts(market),
        ),
    )
