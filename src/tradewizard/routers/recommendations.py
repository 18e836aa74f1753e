"""Stored recommendations and their paper performance."""
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from tradewizard.db.models import Recommendation
from tradewizard.deps import MarketServiceDep, RecommendationServiceDep
from tradewizard.services.analysis import (calculate_performance_metrics,
                                           calculate_recommendation_pnl)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


def _zones(rec: Recommendation) -> tuple[tuple[float, float], tuple[float, float]]:
    return (
        (rec.entry_zone_min or 0.0, rec.entry_zone_max or 0.0),
        (rec.target_zone_min or 0.0, rec.target_zone_max or 0.0),
    )


@router.get("/{condition_id}")
def get_recommendations(
    condition_id: str,
    service: RecommendationServiceDep,
    limit: int = Query(default=20, ge=1, le=100),
) -> dict[str, Any]:
    """Latest recommendation plus history (newest first) for a market."""
    market, latest, history = service.latest_with_history(condition_id, limit=limit)
    if market is None:
        raise HTTPException(404, detail=f"Market '{condition_id}' has not been analyzed")
    return {"market": market, "latest": latest, "history": history}


@router.get("/{condition_id}/performance")
async def get_performance(
    condition_id: str,
    service: RecommendationServiceDep,
    market_service: MarketServiceDep,
) -> dict[str, Any]:
    """Paper P&L of every stored recommendation at the current YES price."""
    market, _, history = service.latest_with_history(condition_id, limit=100)
    if market is None:
        raise HTTPException(404, detail=f"Market '{condition_id}' has not been analyzed")

    quote = await market_service.get_quote(condition_id)
    current_price = quote.value
    results, traded = [], []
    for rec in history:
        entry_zone, target_zone = _zones(rec)
        pnl = calculate_recommendation_pnl(
            rec.direction, entry_zone, target_zone, current_price, rec.created_at
        )
        results.append({"recommendation_id": rec.id, "direction": rec.direction, **pnl.model_dump()})
        if rec.direction != "NO_TRADE":
            traded.append(pnl)
    return {
        "condition_id": condition_id,
        "current_price": current_price,
        "recommendations": results,
        "metrics": calculate_performance_metrics(traded),
    }
