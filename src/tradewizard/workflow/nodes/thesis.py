"""Thesis construction: bull (YES) and bear (NO) cases from agent signals."""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tradewizard.config import EngineConfig
from tradewizard.schemas import (AgentSignal, AuditEntry,
                                 MarketBriefingDocument, RecommendationError,
                                 Thesis)
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

STAGE = "thesis_construction"


def weighted_fair_probability(signals: list[AgentSignal]) -> float:
    """Confidence-weighted mean fair probability; plain mean when all confidences are 0."""
    total = sum(s.confidence for s in signals)
    if total <= 0:
        return sum(s.fair_probability for s in signals) / len(signals)
    return sum(s.fair_probability * s.confidence for s in signals) / total


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in items if i))


def build_thesis(
    direction: str,
    supporters: list[AgentSignal],
    opponents: list[AgentSignal],
    all_signals: list[AgentSignal],
    mbd: MarketBriefingDocument,
) -> Thesis:
    """One side's case. With no supporting signals the side argues from the overall estimate."""
    basis = supporters or all_signals
    fair = weighted_fair_probability(basis)
    drivers = _dedupe([d for s in basis for d in s.key_drivers])
    side = "YES" if direction == "YES" else "NO"
    if supporters:
        argument = (
            f"{len(supporters)} of {len(all_signals)} agents see {side} underpriced "
            f"(fair {fair:.1%} vs market {mbd.current_probability:.1%})"
        )
    else:
        argument = (
            f"No agent favors {side}; the combined estimate is {fair:.1%} "
            f"vs market {mbd.current_probability:.1%}"
        )
    if drivers:
        argument += ": " + "; ".join(drivers[:5])
    return Thesis(
        direction=side,
        fair_probability=fair,
        market_probability=mbd.current_probability,
        core_argument=argument,
        catalysts=[c.event for c in mbd.metadata.key_catalysts],
        failure_conditions=_dedupe(
            [r for s in basis for r in s.risk_factors]
            + [d for s in opponents for d in s.key_drivers]
        ),
        supporting_signals=[s.agent_name for s in supporters],
    )


def split_signals(
    signals: list[AgentSignal], market_probability: float
) -> tuple[list[AgentSignal], list[AgentSignal]]:
    """(bullish, bearish): fair above or below the market; NEUTRAL at market goes to neither."""
    bullish = [s for s in signals if s.fair_probability > market_probability]
    bearish = [s for s in signals if s.fair_probability < market_probability]
    return bullish, bearish


def create_thesis_construction_node(
    config: EngineConfig,
) -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    min_agents = config.agents.min_agents_required

    async def thesis_construction(state: GraphState) -> dict[str, Any]:
        signals = state.get("agent_signals") or []
        mbd = state.get("mbd")

        if mbd is None or len(signals) < min_agents:
            reason = (
                f"Only {len(signals)} agent signals available, "
                f"{min_agents} required"
            )
            logger.warning("Thesis construction skipped: %s", reason)
            return {
                "bull_thesis": None,
                "bear_thesis": None,
                "consensus_error": RecommendationError(
                    type="INSUFFICIENT_DATA", reason=reason
                ),
                "audit_log": [
                    AuditEntry(stage=STAGE, data={"success": False, "reason": reason})
                ],
            }

        bullish, bearish = split_signals(signals, mbd.current_probability)
        bull = build_thesis("YES", bullish, bearish, signals, mbd)
        bear = build_thesis("NO", bearish, bullish, signals, mbd)
        logger.info(
            "Theses built: bull fair=%.3f (%d signals), bear fair=%.3f (%d signals)",
            bull.fair_probability,
            len(bullish),
            bear.fair_probability,
            len(bearish),
        )
        return {
            "bull_thesis": bull,
            "bear_thesis": bear,
            "audit_log": [
                AuditEntry(
                    stage=STAGE,
                    data={
                        "success": True,
                        "bull_edge": bull.edge,
                        "bear_edge": bear.edge,
                        "signal_count": len(signals),
                    },
                )
            ],
        }

    return thesis_construction
