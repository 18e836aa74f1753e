"""Consensus engine: fuse agent signals and debate scores into one probability."""
import logging
import math
from collections.abc import Awaitable, Callable
from typing import Any

from tradewizard.config import EngineConfig
from tradewizard.schemas import (AgentSignal, AuditEntry,
                                 ConsensusProbability, DebateRecord,
                                 RecommendationError)
from tradewizard.workflow.nodes.thesis import weighted_fair_probability
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

STAGE = "consensus_engine"

# Max shift from debate scores is DEBATE_WEIGHT * 2 (scores span [-1, 1]).
DEBATE_WEIGHT = 0.05
BASE_BAND_HALF_WIDTH = 0.05
HIGH_CONFIDENCE_MAX_DISAGREEMENT = 0.10
MODERATE_CONFIDENCE_MAX_DISAGREEMENT = 0.20


def disagreement_index(signals: list[AgentSignal], mean: float) -> float:
    """Confidence-weighted standard deviation of fair probabilities, clipped to [0, 1]."""
    weights = [s.confidence for s in signals]
    total = sum(weights)
    if total <= 0:
        weights = [1.0] * len(signals)
        total = float(len(signals))
    variance = sum(w * (s.fair_probability - mean) ** 2 for w, s in zip(weights, signals)) / total
    return min(1.0, max(0.0, math.sqrt(variance)))


def probability_regime(disagreement: float) -> str:
    if disagreement < HIGH_CONFIDENCE_MAX_DISAGREEMENT:
        return "high-confidence"
    if disagreement < MODERATE_CONFIDENCE_MAX_DISAGREEMENT:
        return "moderate-confidence"
    return "high-uncertainty"


def compute_consensus(
    signals: list[AgentSignal], debate: DebateRecord | None
) -> ConsensusProbability:
    base = weighted_fair_probability(signals)
    adjustment = DEBATE_WEIGHT * (debate.bull_score - debate.bear_score) if debate else 0.0
    probability = min(1.0, max(0.0, base + adjustment))
    disagreement = disagreement_index(signals, base)
    half_width = BASE_BAND_HALF_WIDTH + disagreement
    return ConsensusProbability(
        consensus_probability=probability,
        confidence_band=(max(0.0, probability - half_width), min(1.0, probability + half_width)),
        disagreement_index=disagreement,
        regime=probability_regime(disagreement),
        contributing_signals=[s.agent_name for s in signals],
    )


def create_consensus_engine_node(
    config: EngineConfig,
) -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    min_agents = config.agents.min_agents_required

    async def consensus_engine(state: GraphState) -> dict[str, Any]:
        existing = state.get("consensus_error")
        if existing is not None:
            return {
                "consensus": None,
                "audit_log": [
                    AuditEntry(
                        stage=STAGE,
                        data={"success": False, "error": existing.model_dump(exclude_none=True)},
                    )
                ],
            }

        signals = state.get("agent_signals") or []
        if len(signals) < min_agents:
            error = RecommendationError(
                type="INSUFFICIENT_DATA",
                reason=f"Only {len(signals)} agent signals available, {min_agents} required",
            )
        else:
            try:
                consensus = compute_consensus(signals, state.get("debate_record"))
            except ValueError as exc:
                error = RecommendationError(type="CONSENSUS_FAILED", reason=str(exc))
            else:
                logger.info(
                    "Consensus %.3f band=(%.3f, %.3f) disagreement=%.3f regime=%s",
                    consensus.consensus_probability,
                    *consensus.confidence_band,
                    consensus.disagreement_index,
                    consensus.regime,
                )
                return {
                    "consensus": consensus,
                    "consensus_error": None,
                    "audit_log": [
                        AuditEntry(
                            stage=STAGE,
                            data={
                                "success": True,
                                "consensus_probability": consensus.consensus_probability,
                                "disagreement_index": consensus.disagreement_index,
                                "regime": consensus.regime,
                            },
                        )
                    ],
                }

        logger.warning("Consensus failed: %s", error.reason)
        return {
            "consensus": None,
            "consensus_error": error,
            "audit_log": [
                AuditEntry(
                    stage=STAGE,
                    data={"success": False, "error": error.model_dump(exclude_none=True)},
                )
            ],
        }

    return consensus_engine
