"""Read/write access to markets, recommendations, agent signals and analysis history."""
import logging
from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, Field
from sqlalchemy.engine import Engine
from sqlmodel import col, or_, select

from tradewizard.db.models import (AgentSignalRecord, AnalysisHistory, Market,
                                   Recommendation, utcnow)
from tradewizard.db.sessions import get_session
from tradewizard.schemas import AgentSignal, TradeRecommendation

logger = logging.getLogger(__name__)

MarketStatus = Literal["active", "inactive", "resolved"]


class MarketInput(BaseModel):
    condition_id: str
    question: str
    event_type: str
    description: str | None = None
    market_probability: float | None = None
    volume_24h: float | None = None
    liquidity: float | None = None
    status: MarketStatus = "active"
    trending_score: float | None = None


class AnalysisRecord(BaseModel):
    type: Literal["initial", "update", "resolution"]
    status: Literal["success", "failed", "partial"]
    duration_ms: int | None = None
    cost_usd: float | None = None
    agents_used: list[str] = Field(default_factory=list)
    error_message: str | None = None


def confidence_label(confidence_band: tuple[float, float]) -> str:
    """high / moderate / low from the width of the consensus band."""
    width = confidence_band[1] - confidence_band[0]
    if width < 0.15:
        return "high"
    if width < 0.3:
        return "moderate"
    return "low"


class DatabasePersistence:
    """Synchronous persistence over a SQLModel engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def upsert_market(self, market: MarketInput) -> str:
        """Insert or update by condition ID; returns the market's stable id.

        Optional fields left unset on an update keep their stored values.
        """
        with get_session(self._engine) as session:
            row = session.exec(
                select(Market).where(Market.condition_id == market.condition_id)
            ).first()
            if row is None:
                row = Market(**market.model_dump())
                logger.debug("Inserting market %s", market.condition_id)
            else:
                for key, value in market.model_dump(exclude_unset=True).items():
                    setattr(row, key, value)
                row.updated_at = utcnow()
            session.add(row)
            session.flush()
            return row.id

    def get_market(self, market_id: str) -> Market | None:
        with get_session(self._engine) as session:
            return session.get(Market, market_id)

    def get_market_by_condition_id(self, condition_id: str) -> Market | None:
        with get_session(self._engine) as session:
            return session.exec(
                select(Market).where(Market.condition_id == condition_id)
            ).first()

    def store_recommendation(self, market_id: str, recommendation: TradeRecommendation) -> str:
        """Store a recommendation and stamp the market as analyzed; returns its id."""
        explanation = recommendation.explanation
        meta = recommendation.metadata
        row = Recommendation(
            market_id=market_id,
            direction=recommendation.action,
            fair_probability=meta.consensus_probability,
            market_edge=meta.edge,
            expected_value=recommendation.expected_value,
            win_probability=recommendation.win_probability,
            liquidity_risk=recommendation.liquidity_risk,
            confidence=confidence_label(meta.confidence_band),
            entry_zone_min=recommendation.entry_zone[0],
            entry_zone_max=recommendation.entry_zone[1],
            target_zone_min=recommendation.target_zone[0],
            target_zone_max=recommendation.target_zone[1],
            explanation=explanation.summary,
            catalysts=list(explanation.key_catalysts),
            risks=list(explanation.failure_scenarios),
        )
        with get_session(self._engine) as session:
            session.add(row)
            market = session.get(Market, market_id)
            if market is not None:
                market.last_analyzed_at = row.created_at
                market.market_probability = meta.market_probability
                market.updated_at = utcnow()
                session.add(market)
            session.flush()
            logger.info("Stored %s recommendation %s for market %s", row.direction, row.id, market_id)
            return row.id

    def store_agent_signals(
        self,
        market_id: str,
        recommendation_id: str | None,
        signals: list[AgentSignal],
    ) -> None:
        if not signals:
            return
        with get_session(self._engine) as session:
            for signal in signals:
                session.add(
                    AgentSignalRecord(
                        market_id=market_id,
                        recommendation_id=recommendation_id,
                        agent_name=signal.agent_name,
                        agent_type=signal.agent_name,
                        direction=signal.direction,
                        fair_probability=signal.fair_probability,
                        confidence=signal.confidence,
                        key_drivers=list(signal.key_drivers),
                        signal_metadata={
                            **signal.metadata,
                            "risk_factors": list(signal.risk_factors),
                        },
                    )
                )
        logger.debug("Stored %d agent signals for market %s", len(signals), market_id)

    def record_analysis(self, market_id: str, analysis: AnalysisRecord) -> None:
        with get_session(self._engine) as session:
            session.add(
                AnalysisHistory(
                    market_id=market_id,
                    analysis_type=analysis.type,
                    status=analysis.status,
                    duration_ms=analysis.duration_ms,
                    cost_usd=analysis.cost_usd,
                    agents_used=list(analysis.agents_used),
                    error_message=analysis.error_message,
                )
            )

    def purge_analysis_history(self, retention: timedelta) -> int:
        """Delete analysis-history rows older than now - retention; returns the count."""
        cutoff = utcnow() - retention
        with get_session(self._engine) as session:
            rows = session.exec(
                select(AnalysisHistory).where(col(AnalysisHistory.created_at) < cutoff)
            ).all()
            for row in rows:
                session.delete(row)
        if rows:
            logger.info("Purged %d analysis history rows older than %s", len(rows), cutoff)
        return len(rows)

    def get_active_markets(self) -> list[Market]:
        with get_session(self._engine) as session:
            return list(session.exec(select(Market).where(Market.status == "active")).all())

    def get_markets_for_update(self, update_interval: timedelta) -> list[Market]:
        """Active markets never analyzed, or last analyzed before now - update_interval."""
        cutoff = utcnow() - update_interval
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(Market)
                    .where(Market.status == "active")
                    .where(
                        or_(
                            col(Market.last_analyzed_at).is_(None),
                            col(Market.last_analyzed_at) < cutoff,
                        )
                    )
                    .order_by(col(Market.last_analyzed_at).asc())
                ).all()
            )

    def mark_market_resolved(self, market_id: str, outcome: str) -> None:
        with get_session(self._engine) as session:
            market = session.get(Market, market_id)
            if market is None:
                raise ValueError(f"Market {market_id} not found")
            market.status = "resolved"
            market.resolved_outcome = outcome
            market.updated_at = utcnow()
            session.add(market)
        logger.info("Marked market %s resolved: %s", market_id, outcome)

    def get_latest_recommendation(self, market_id: str) -> Recommendation | None:
        history = self.get_recommendation_history(market_id, limit=1)
        return history[0] if history else None

    def get_recommendation_history(self, market_id: str, limit: int = 20) -> list[Recommendation]:
        """Recommendations for a market, newest first."""
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(Recommendation)
                    .where(Recommendation.market_id == market_id)
                    .order_by(col(Recommendation.created_at).desc())
                    .limit(limit)
                ).all()
            )

    def get_agent_signals(self, recommendation_id: str) -> list[AgentSignalRecord]:
        with get_session(self._engine) as session:
            return list(
                session.exec(
                    select(AgentSignalRecord).where(
                        AgentSignalRecord.recommendation_id == recommendation_id
                    )
                ).all()
            )
