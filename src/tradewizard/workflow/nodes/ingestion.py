"""Market ingestion: fetch the market and build its briefing document."""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tradewizard.providers.core import PredictionMarketProviderABC
from tradewizard.schemas import AuditEntry, IngestionError
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

STAGE = "market_ingestion"


def create_market_ingestion_node(
    client: PredictionMarketProviderABC,
) -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    async def market_ingestion(state: GraphState) -> dict[str, Any]:
        condition_id = state.get("condition_id") or ""
        result = await client.fetch_market_data(condition_id)

        if not result.ok or result.data is None:
            error = result.error or IngestionError.api_unavailable("No market data returned")
            logger.warning("Ingestion failed for %s: %s", condition_id, error.describe())
            return {
                "mbd": None,
                "ingestion_error": error,
                "audit_log": [
                    AuditEntry(
                        stage=STAGE,
                        data={
                            "success": False,
                            "condition_id": condition_id,
                            "error": error.model_dump(exclude_none=True),
                        },
                    )
                ],
            }

        mbd = result.data
        logger.info(
            "Ingested %s: probability=%.3f spread=%.2fc liquidity=%.1f",
            mbd.market_id,
            mbd.current_probability,
            mbd.bid_ask_spread,
            mbd.liquidity_score,
        )
        return {
            "mbd": mbd,
            "ingestion_error": None,
            "audit_log": [
                AuditEntry(
                    stage=STAGE,
                    data={
                        "success": True,
                        "condition_id": condition_id,
                        "market_id": mbd.market_id,
                        "event_type": mbd.event_type,
                        "current_probability": mbd.current_probability,
                        "volatility_regime": mbd.volatility_regime,
                    },
                )
            ],
        }

    return market_ingestion
