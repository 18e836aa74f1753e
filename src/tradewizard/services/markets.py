"""Tradeable-market listing, realtime CLOB prices and market-type helpers.

These functions hold the listing rules; MarketService wires them to the
Polymarket client and maps upstream errors to HTTP.
"""
import asyncio
import json
import logging
from typing import Any, Literal

from pydantic import ValidationError

from tradewizard.providers.core import PredictionMarketProviderABC, to_float
from tradewizard.providers.polymarket.dto import (PolymarketEventDTO,
                                                  PolymarketMarketDTO)
from tradewizard.schemas import OutcomeInfo, RealtimePrice

logger = logging.getLogger(__name__)

MIN_LIQUIDITY_USD = 1000.0
MIN_LIQUIDITY_NON_EVERGREEN_USD = 5000.0
# Politics and other long-running categories tolerate thinner books.
EVERGREEN_TAG_IDS = frozenset({2, 21, 120, 596, 1401, 100265, 100639})
# Upstream events requested per market returned, since most get filtered out.
EVENT_FETCH_MULTIPLIER = 5
DEFAULT_TAG_ID = "2"

MarketType = Literal["simple", "complex"]


def _event_id(raw_event: Any) -> Any:
    return raw_event.get("id") if isinstance(raw_event, dict) else None


def flatten_event_markets(events: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Flatten markets of open events, tagging each with its event's identity."""
    markets: list[dict[str, Any]] = []
    for raw_event in events:
        try:
            event = PolymarketEventDTO.model_validate(raw_event)
        except ValidationError as exc:
            logger.warning("Skipping malformed event %s: %s", _event_id(raw_event), exc)
            continue
        if not event.is_open:
            continue
        for market in event.markets:
            markets.append(
                {
                    **market,
                    "eventTitle": event.title,
                    "eventSlug": event.slug,
                    "eventId": event.id,
                    "eventIcon": event.image or event.icon,
                    "negRisk": bool(event.neg_risk),
                }
            )
    return markets


def _has_tradeable_price(raw_prices: Any) -> bool:
    """At least one outcome priced in [0.05, 0.95]; unparseable prices fail."""
    if isinstance(raw_prices, str):
        try:
            prices = json.loads(raw_prices)
        except json.JSONDecodeError:
            return False
    else:
        prices = raw_prices
    if not isinstance(prices, list):
        return False
    return any(0.05 <= to_float(p, default=-1.0) <= 0.95 for p in prices)


def _tag_ids(market: dict[str, Any]) -> list[int]:
    ids: list[int] = []
    for tag in market.get("tags") or []:
        try:
            ids.append(int(tag.get("id")))
        except (AttributeError, TypeError, ValueError):
            continue
    return ids


def is_tradeable(market: dict[str, Any]) -> bool:
    """Listing filter: open for orders, has CLOB tokens, priced, and liquid enough."""
    if market.get("acceptingOrders") is False or market.get("closed") is True:
        return False
    if not market.get("clobTokenIds"):
        return False
    if market.get("outcomePrices") and not _has_tradeable_price(market["outcomePrices"]):
        return False

    liquidity = to_float(market.get("liquidity"))
    evergreen = any(tag_id in EVERGREEN_TAG_IDS for tag_id in _tag_ids(market))
    if not evergreen and liquidity < MIN_LIQUIDITY_NON_EVERGREEN_USD:
        return False
    return liquidity >= MIN_LIQUIDITY_USD


def market_score(market: dict[str, Any]) -> float:
    """Ranking key: liquidity plus 24h volume (total volume when 24h is absent)."""
    activity = market.get("volume24hr") or market.get("volume")
    return to_float(market.get("liquidity")) + to_float(activity)


def select_tradeable_markets(
    events: list[dict[str, Any]],
    limit: int,
    offset: int = 0,
) -> list[dict[str, Any]]:
    """Flatten, filter and rank markets, then return one page."""
    candidates = [m for m in flatten_event_markets(events) if is_tradeable(m)]
    candidates.sort(key=market_score, reverse=True)
    return candidates[offset:offset + limit]


def next_page_offset(last_page: list, pages: int, page_size: int) -> int | None:
    """Offset for the next page, or None once a short page signals the end."""
    if len(last_page) < page_size:
        return None
    return pages * page_size


async def fetch_token_prices(
    provider: PredictionMarketProviderABC,
    token_id: str,
) -> RealtimePrice | None:
    """Best bid/ask for one token; None when either side is outside (0, 1)."""
    bid, ask = await asyncio.gather(
        provider.get_price(token_id, "BUY"),
        provider.get_price(token_id, "SELL"),
    )
    if not (0 < bid < 1 and 0 < ask < 1):
        return None
    return RealtimePrice(
        bid_price=bid,
        ask_price=ask,
        mid_price=(bid + ask) / 2,
        spread=ask - bid,
    )


async def _prices_for_market(
    provider: PredictionMarketProviderABC,
    market: dict[str, Any],
) -> None:
    token_ids = PolymarketMarketDTO.model_validate(market).clob_token_ids_parsed
    results = await asyncio.gather(
        *(fetch_token_prices(provider, token_id) for token_id in token_ids),
        return_exceptions=True,
    )
    price_map: dict[str, dict[str, float]] = {}
    for token_id, result in zip(token_ids, results):
        if isinstance(result, Exception):
            logger.warning("Error fetching price for token %s: %s", token_id, result)
            continue
        if result is not None:
            price_map[token_id] = result.model_dump()
    market["realtimePrices"] = price_map


async def attach_realtime_prices(
    provider: PredictionMarketProviderABC,
    markets: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Set `realtimePrices` on each market in place, fetching all tokens concurrently.

    A failed token or market is logged and skipped; the batch never aborts.
    """
    results = await asyncio.gather(
        *(_prices_for_market(provider, market) for market in markets),
        return_exceptions=True,
    )
    for market, result in zip(markets, results):
        if isinstance(result, Exception):
            logger.warning("Failed to fetch prices for market %s: %s", market.get("id"), result)
    return markets


# --- Market type detection ---


def _active_markets(event: dict[str, Any]) -> list[dict[str, Any]]:
    return [
        m for m in event.get("markets") or [] if m.get("active") and not m.get("archived")
    ]


def determine_market_type(event: dict[str, Any]) -> MarketType:
    """`complex` when active markets carry more than one distinct group title."""
    active = _active_markets(event)
    if len(active) <= 1:
        return "simple"
    titles = {
        (m.get("groupItemTitle") or "").strip()
        for m in active
    }
    titles.discard("")
    return "complex" if len(titles) > 1 else "simple"


def parse_market_outcomes(raw: Any) -> list[str]:
    try:
        parsed = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning("Failed to parse market outcomes: %r", raw)
        return ["Yes", "No"]
    if isinstance(parsed, list):
        return [str(outcome) for outcome in parsed]
    return ["Yes", "No"]


def parse_market_prices(raw: Any) -> list[float]:
    """Outcome prices; unparseable entries become 0.5."""
    try:
        parsed = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        logger.warning("Failed to parse market prices: %r", raw)
        return [0.5, 0.5]
    if not isinstance(parsed, list):
        return [0.5, 0.5]
    return [to_float(price, default=0.5) for price in parsed]


def _percent(price: float) -> int:
    return max(0, min(100, round(price * 100)))


def _color(name: str) -> Literal["yes", "no", "neutral"]:
    lowered = name.lower()
    if lowered == "yes":
        return "yes"
    if lowered == "no":
        return "no"
    return "neutral"


_FALLBACK_OUTCOMES = [
    OutcomeInfo(name="Yes", probability=50, color="yes"),
    OutcomeInfo(name="No", probability=50, color="no"),
]


def process_market_outcomes(event: dict[str, Any]) -> tuple[MarketType, list[OutcomeInfo]]:
    """Outcomes to display for an event.

    Simple events show every outcome of the first active market. Complex
    events show the YES price per group title, ordered by group threshold
    then title.
    """
    market_type = determine_market_type(event)
    active = _active_markets(event)
    if not active:
        return market_type, list(_FALLBACK_OUTCOMES)

    if market_type == "simple":
        market = active[0]
        names = parse_market_outcomes(market.get("outcomes"))
        prices = parse_market_prices(market.get("outcomePrices"))
        return market_type, [
            OutcomeInfo(
                name=name,
                probability=_percent(prices[i] if i < len(prices) and prices[i] else 0.5),
                color=_color(name),
            )
            for i, name in enumerate(names)
        ]

    by_group: dict[str, dict[str, Any]] = {}
    for market in active:
        by_group[(market.get("groupItemTitle") or "").strip() or "Unknown"] = market

    def sort_key(item: tuple[str, dict[str, Any]]) -> tuple[int, str]:
        title, market = item
        try:
            threshold = int(market.get("groupItemThreshold") or 0)
        except (TypeError, ValueError):
            threshold = 0
        return threshold, title

    outcomes: list[OutcomeInfo] = []
    for title, market in sorted(by_group.items(), key=sort_key):
        names = parse_market_outcomes(market.get("outcomes"))
        prices = parse_market_prices(market.get("outcomePrices"))
        yes_index = next((i for i, n in enumerate(names) if n.lower() == "yes"), None)
        index = yes_index if yes_index is not None else 0
        price = prices[index] if index < len(prices) and prices[index] else 0.5
        outcomes.append(
            OutcomeInfo(
                name="Yes" if yes_index is not None else (names[0] if names else "Yes"),
                probability=_percent(price),
                color="yes" if yes_index is not None else "neutral",
                category=title,
            )
        )
    return market_type, outcomes
