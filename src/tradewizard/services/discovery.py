"""Discover trending political markets worth analyzing."""
import logging
import math
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from tradewizard.providers.core import parse_iso_datetime, to_float
from tradewizard.providers.polymarket import PolymarketClient
from tradewizard.schemas import RankedMarket

logger = logging.getLogger(__name__)

POLITICAL_KEYWORDS = (
    "election",
    "president",
    "trump",
    "biden",
    "harris",
    "senate",
    "congress",
    "governor",
    "court",
    "supreme court",
    "ruling",
    "verdict",
    "policy",
    "legislation",
    "bill",
    "law",
    "geopolitical",
    "war",
    "conflict",
    "treaty",
    "vote",
    "ballot",
    "referendum",
    "impeachment",
    "cabinet",
    "minister",
    "parliament",
    "immigration",
    "deport",
    "deportation",
    "border",
    "tariff",
    "trade war",
    "sanctions",
    "nato",
    "ukraine",
    "russia",
    "china",
)

FETCH_LIMIT = 100


def is_political(market: dict[str, Any]) -> bool:
    if market.get("closed") or not market.get("active"):
        return False
    text = f"{market.get('question') or ''} {market.get('description') or ''}".lower()
    return any(keyword in text for keyword in POLITICAL_KEYWORDS)


def _log_score(value: float) -> float:
    return math.log10(value + 1) if value > 0 else 0.0


def recency_score(created_at: str | None, now: datetime) -> float:
    """exp(-age_days / 30); 0.5 when the date is missing or unparseable."""
    created = parse_iso_datetime(created_at)
    if created is None:
        return 0.5
    age_days = (now - created).total_seconds() / 86400
    return math.exp(-age_days / 30)


def _volume_24h(market: dict[str, Any]) -> float:
    return to_float(market.get("volume24hr")) or to_float(market.get("volume"))


def trending_score(market: dict[str, Any], now: datetime) -> float:
    """0.4 volume + 0.3 liquidity (both log10) + 0.2 recency + 0.1 trade activity."""
    trades = to_float(market.get("trades24h"))
    activity = min(1.0, trades / 100) if trades > 0 else 0.0
    return (
        0.4 * _log_score(_volume_24h(market))
        + 0.3 * _log_score(to_float(market.get("liquidity")))
        + 0.2 * recency_score(market.get("createdAt") or market.get("endDate"), now)
        + 0.1 * activity
    )


def rank_markets(
    markets: list[dict[str, Any]],
    now: datetime | None = None,
) -> list[RankedMarket]:
    """Score and sort markets, highest trending score first."""
    now = now or datetime.now(timezone.utc)
    ranked = [
        RankedMarket(
            condition_id=market.get("conditionId") or "",
            question=market.get("question") or "",
            description=market.get("description") or "",
            trending_score=trending_score(market, now),
            volume_24h=_volume_24h(market),
            liquidity=to_float(market.get("liquidity")),
            market_slug=market.get("slug") or market.get("conditionId") or "",
        )
        for market in markets
    ]
    ranked.sort(key=lambda m: m.trending_score, reverse=True)
    return ranked


class MarketDiscoveryService:
    """Finds active political markets on Gamma and ranks them by trend."""

    def __init__(
        self,
        client: PolymarketClient,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._client = client
        self._clock = clock

    async def fetch_political_markets(self) -> list[dict[str, Any]]:
        markets = await self._client.list_active_markets(limit=FETCH_LIMIT)
        return [m for m in markets if is_political(m)]

    async def discover_markets(self, limit: int) -> list[RankedMarket]:
        markets = await self.fetch_political_markets()
        ranked = rank_markets(markets, self._clock())
        logger.info(
            "Discovered %d political markets; returning top %d", len(ranked), limit
        )
        return ranked[:limit]
