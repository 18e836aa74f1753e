"""Paper P&L for past recommendations and aggregate performance."""
from datetime import datetime, timezone

from pydantic import BaseModel

from tradewizard.providers.core import as_utc, parse_iso_datetime
from tradewizard.schemas.workflow import TradeAction


class RecommendationPnL(BaseModel):
    entry_price: float
    current_price: float
    target_price: float
    potential_return: float
    potential_return_percent: float
    would_have_profit: bool
    days_held: int
    annualized_return: float = 0.0


class PerformanceMetrics(BaseModel):
    total_recommendations: int = 0
    profitable_recommendations: int = 0
    win_rate: float = 0.0
    average_return: float = 0.0
    best_return: float = 0.0
    worst_return: float = 0.0
    average_days_held: float = 0.0


def _mid(zone: tuple[float, float] | list[float]) -> float:
    return (zone[0] + zone[1]) / 2


def _days_since(created_at: datetime | str, now: datetime) -> int:
    if isinstance(created_at, str):
        parsed = parse_iso_datetime(created_at)
        if parsed is None:
            return 0
        created_at = parsed
    return max(0, (now - as_utc(created_at)).days)


def calculate_recommendation_pnl(
    action: TradeAction,
    entry_zone: tuple[float, float] | list[float],
    target_zone: tuple[float, float] | list[float],
    current_price: float,
    created_at: datetime | str,
    now: datetime | None = None,
) -> RecommendationPnL:
    """P&L of entering at the middle of the entry zone and holding until now.

    Zones and current_price are YES prices; for LONG_NO every price is
    flipped to the NO side (1 - p). NO_TRADE yields all zeros.
    """
    now = now or datetime.now(timezone.utc)
    days_held = _days_since(created_at, now)

    if action == "NO_TRADE":
        return RecommendationPnL(
            entry_price=0.0,
            current_price=0.0,
            target_price=0.0,
            potential_return=0.0,
            potential_return_percent=0.0,
            would_have_profit=False,
            days_held=days_held,
        )

    entry, target, current = _mid(entry_zone), _mid(target_zone), current_price
    if action == "LONG_NO":
        entry, target, current = 1 - entry, 1 - target, 1 - current

    potential_return = current - entry
    percent = (potential_return / entry) * 100 if entry > 0 else 0.0
    return RecommendationPnL(
        entry_price=entry,
        current_price=current,
        target_price=target,
        potential_return=potential_return,
        potential_return_percent=percent,
        would_have_profit=potential_return > 0,
        days_held=days_held,
        annualized_return=percent * 365 / days_held if days_held > 0 else 0.0,
    )


def calculate_performance_metrics(results: list[RecommendationPnL]) -> PerformanceMetrics:
    """Win rate (%) and return statistics over potential_return_percent."""
    if not results:
        return PerformanceMetrics()
    returns = [r.potential_return_percent for r in results]
    profitable = sum(1 for r in results if r.would_have_profit)
    return PerformanceMetrics(
        total_recommendations=len(results),
        profitable_recommendations=profitable,
        win_rate=profitable / len(results) * 100,
        average_return=sum(returns) / len(returns),
        best_return=max(returns),
        worst_return=min(returns),
        average_days_held=sum(r.days_held for r in results) / len(results),
    )
