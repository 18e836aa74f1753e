"""Run the recommendation workflow for a market and persist what it produced."""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from langgraph.graph.state import CompiledStateGraph

from tradewizard.config import EngineConfig
from tradewizard.db.models import Market, Recommendation
from tradewizard.db.persistence import (AnalysisRecord, DatabasePersistence,
                                        MarketInput)
from tradewizard.schemas import (AgentError, AgentSignal, IngestionError,
                                 TradeRecommendation)
from tradewizard.workflow import run_workflow

logger = logging.getLogger(__name__)

AnalysisType = Literal["initial", "update", "resolution"]


@dataclass
class AnalysisOutcome:
    condition_id: str
    market_id: str | None = None
    recommendation: TradeRecommendation | None = None
    recommendation_id: str | None = None
    agent_signals: list[AgentSignal] = field(default_factory=list)
    agent_errors: list[AgentError] = field(default_factory=list)
    ingestion_error: IngestionError | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.recommendation is not None


class RecommendationService:
    """Analyze markets with the compiled workflow and store the results."""

    def __init__(
        self,
        workflow: CompiledStateGraph,
        config: EngineConfig,
        persistence: DatabasePersistence,
    ) -> None:
        self._workflow = workflow
        self._config = config
        self._persistence = persistence

    @property
    def persistence(self) -> DatabasePersistence:
        return self._persistence

    async def analyze(
        self,
        condition_id: str,
        analysis_type: AnalysisType = "initial",
        *,
        trending_score: float | None = None,
    ) -> AnalysisOutcome:
        """Run the workflow and persist market, recommendation, signals and history.

        Workflow exceptions are recorded as a failed analysis (when the market
        is already known) and re-raised.
        """
        started = time.monotonic()
        try:
            state = await run_workflow(self._workflow, condition_id, self._config)
        except Exception as exc:
            self._record_failure(condition_id, analysis_type, started, str(exc))
            raise
        return self._store(condition_id, analysis_type, state, started, trending_score)

    def _elapsed_ms(self, started: float) -> int:
        return int((time.monotonic() - started) * 1000)

    def _record_failure(
        self, condition_id: str, analysis_type: AnalysisType, started: float, message: str
    ) -> None:
        market = self._persistence.get_market_by_condition_id(condition_id)
        if market is None:
            return
        self._persistence.record_analysis(
            market.id,
            AnalysisRecord(
                type=analysis_type,
                status="failed",
                duration_ms=self._elapsed_ms(started),
                error_message=message,
            ),
        )

    def _store(
        self,
        condition_id: str,
        analysis_type: AnalysisType,
        state: dict[str, Any],
        started: float,
        trending_score: float | None,
    ) -> AnalysisOutcome:
        outcome = AnalysisOutcome(
            condition_id=condition_id,
            recommendation=state.get("recommendation"),
            agent_signals=list(state.get("agent_signals") or []),
            agent_errors=list(state.get("agent_errors") or []),
            ingestion_error=state.get("ingestion_error"),
            duration_ms=self._elapsed_ms(started),
        )

        mbd = state.get("mbd")
        if mbd is None:
            message = outcome.ingestion_error.describe() if outcome.ingestion_error else "No market data"
            logger.warning("Analysis of %s stopped at ingestion: %s", condition_id, message)
            self._record_failure(condition_id, analysis_type, started, message)
            return outcome

        market = MarketInput(
            condition_id=condition_id,
            question=mbd.question,
            description=mbd.resolution_criteria,
            event_type=mbd.event_type,
            market_probability=mbd.current_probability,
            volume_24h=mbd.volume_24h,
        )
        if trending_score is not None:
            market.trending_score = trending_score
        outcome.market_id = self._persistence.upsert_market(market)

        agents_used = [s.agent_name for s in outcome.agent_signals]
        if outcome.recommendation is None:
            self._persistence.record_analysis(
                outcome.market_id,
                AnalysisRecord(
                    type=analysis_type,
                    status="failed",
                    duration_ms=outcome.duration_ms,
                    agents_used=agents_used,
                    error_message="Workflow produced no recommendation",
                ),
            )
            return outcome

        outcome.recommendation_id = self._persistence.store_recommendation(
            outcome.market_id, outcome.recommendation
        )
        self._persistence.store_agent_signals(
            outcome.market_id, outcome.recommendation_id, outcome.agent_signals
        )
        self._persistence.record_analysis(
            outcome.market_id,
            AnalysisRecord(
                type=analysis_type,
                status="partial" if outcome.agent_errors else "success",
                duration_ms=outcome.duration_ms,
                agents_used=agents_used,
                error_message="; ".join(
                    f"{e.agent_name}: {e.type}" for e in outcome.agent_errors
                )
                or None,
            ),
        )
        return outcome

    def latest_with_history(
        self, condition_id: str, limit: int = 20
    ) -> tuple[Market | None, Recommendation | None, list[Recommendation]]:
        market = self._persistence.get_market_by_condition_id(condition_id)
        if market is None:
            return None, None, []
        history = self._persistence.get_recommendation_history(market.id, limit=limit)
        return market, (history[0] if history else None), history
