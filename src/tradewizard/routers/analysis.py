"""Run the recommendation workflow on demand and inspect its audit trail."""
import logging
from typing import Any

from fastapi import APIRouter, HTTPException

from tradewizard.deps import CheckpointerDep, RecommendationServiceDep
from tradewizard.schemas import IngestionError
from tradewizard.workflow import AuditTrail, get_audit_trail

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/analysis", tags=["analysis"])

_INGESTION_STATUS = {
    "INVALID_MARKET_ID": 404,
    "VALIDATION_FAILED": 422,
    "RATE_LIMIT_EXCEEDED": 429,
    "API_UNAVAILABLE": 502,
}


def _raise_for_ingestion(error: IngestionError) -> None:
    headers = None
    if error.type == "RATE_LIMIT_EXCEEDED" and error.retry_after is not None:
        headers = {"Retry-After": str(int(error.retry_after))}
    raise HTTPException(
        status_code=_INGESTION_STATUS.get(error.type, 502),
        detail=error.describe(),
        headers=headers,
    )


@router.post("/{condition_id}")
async def analyze(condition_id: str, service: RecommendationServiceDep) -> dict[str, Any]:
    """Analyze a market now and store the result.

    Ingestion failures map to HTTP errors; agent failures are reported
    alongside whatever recommendation the remaining agents produced.
    """
    outcome = await service.analyze(condition_id)
    if outcome.ingestion_error is not None:
        _raise_for_ingestion(outcome.ingestion_error)
    return {
        "condition_id": condition_id,
        "market_id": outcome.market_id,
        "recommendation_id": outcome.recommendation_id,
        "recommendation": outcome.recommendation,
        "agent_signals": outcome.agent_signals,
        "agent_errors": outcome.agent_errors,
        "duration_ms": outcome.duration_ms,
    }


@router.get("/{condition_id}/audit", response_model=AuditTrail)
async def audit_trail(condition_id: str, checkpointer: CheckpointerDep) -> AuditTrail:
    """Audit entries from the latest checkpointed run for a market."""
    trail = await get_audit_trail(checkpointer, condition_id)
    if not trail.stages:
        raise HTTPException(404, detail=f"No analysis recorded for '{condition_id}'")
    return trail
