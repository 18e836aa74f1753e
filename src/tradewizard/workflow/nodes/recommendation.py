"""Recommendation generation: turn consensus vs market price into a trade."""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from tradewizard.config import EngineConfig
from tradewizard.schemas import (AuditEntry, ConsensusProbability,
                                 MarketBriefingDocument, Thesis,
                                 TradeExplanation, TradeMetadata,
                                 TradeRecommendation)
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

STAGE = "recommendation_generation"

ENTRY_ZONE_WIDTH = 0.02
TARGET_ZONE_HALF_WIDTH = 0.02
LOW_LIQUIDITY_RISK_MIN_SCORE = 7.0
MEDIUM_LIQUIDITY_RISK_MIN_SCORE = 4.0


def _clip_price(value: float) -> float:
    return round(min(0.99, max(0.01, value)), 4)


def liquidity_risk(liquidity_score: float) -> str:
    if liquidity_score >= LOW_LIQUIDITY_RISK_MIN_SCORE:
        return "low"
    if liquidity_score >= MEDIUM_LIQUIDITY_RISK_MIN_SCORE:
        return "medium"
    return "high"


def expected_value(action: str, consensus: float, market: float) -> float:
    """Expected profit in dollars per $100 staked at the market price."""
    if action == "LONG_YES" and market > 0:
        return round(100 * (consensus - market) / market, 2)
    if action == "LONG_NO" and market < 1:
        return round(100 * (market - consensus) / (1 - market), 2)
    return 0.0


def trade_zones(
    action: str, consensus: float, market: float
) -> tuple[tuple[float, float], tuple[float, float]]:
    """(entry_zone, target_zone) in YES price terms."""
    target = (
        _clip_price(consensus - TARGET_ZONE_HALF_WIDTH),
        _clip_price(consensus + TARGET_ZONE_HALF_WIDTH),
    )
    if action == "LONG_YES":
        return (_clip_price(market - ENTRY_ZONE_WIDTH), _clip_price(market)), target
    if action == "LONG_NO":
        return (_clip_price(market), _clip_price(market + ENTRY_ZONE_WIDTH)), target
    return (_clip_price(market), _clip_price(market)), (_clip_price(market), _clip_price(market))


def decide_action(edge: float, min_edge: float) -> str:
    """edge is consensus minus market; below min_edge in magnitude there is no trade."""
    if abs(edge) < min_edge:
        return "NO_TRADE"
    return "LONG_YES" if edge > 0 else "LONG_NO"


def build_recommendation(
    mbd: MarketBriefingDocument,
    consensus: ConsensusProbability,
    bull: Thesis | None,
    bear: Thesis | None,
    min_edge: float,
    high_disagreement: float,
) -> TradeRecommendation:
    market = mbd.current_probability
    probability = consensus.consensus_probability
    edge = probability - market
    action = decide_action(edge, min_edge)
    entry_zone, target_zone = trade_zones(action, probability, market)

    thesis = bull if action == "LONG_YES" else bear if action == "LONG_NO" else None
    if action == "NO_TRADE":
        summary = (
            f"No trade: consensus {probability:.1%} is within {min_edge:.0%} "
            f"of the market price {market:.1%}"
        )
        win_probability = max(probability, 1 - probability)
    else:
        side = "YES" if action == "LONG_YES" else "NO"
        summary = (
            f"Buy {side}: consensus {probability:.1%} vs market {market:.1%} "
            f"({abs(edge):.1%} edge)"
        )
        win_probability = probability if action == "LONG_YES" else 1 - probability

    uncertainty_note = None
    if consensus.disagreement_index > high_disagreement:
        uncertainty_note = (
            f"Agents disagree (index {consensus.disagreement_index:.2f}); "
            f"treat the estimate with caution"
        )

    return TradeRecommendation(
        market_id=mbd.market_id,
        action=action,
        entry_zone=entry_zone,
        target_zone=target_zone,
        expected_value=expected_value(action, probability, market),
        win_probability=win_probability,
        liquidity_risk=liquidity_risk(mbd.liquidity_score),
        explanation=TradeExplanation(
            summary=summary,
            core_thesis=thesis.core_argument if thesis else summary,
            key_catalysts=thesis.catalysts if thesis else [c.event for c in mbd.metadata.key_catalysts],
            failure_scenarios=thesis.failure_conditions if thesis else [],
            uncertainty_note=uncertainty_note,
        ),
        metadata=TradeMetadata(
            consensus_probability=probability,
            market_probability=market,
            edge=abs(edge),
            confidence_band=consensus.confidence_band,
        ),
    )


def no_trade_recommendation(mbd: MarketBriefingDocument, reason: str) -> TradeRecommendation:
    """NO_TRADE when no consensus could be formed; the market price stands in for it."""
    market = mbd.current_probability
    zone = (_clip_price(market), _clip_price(market))
    return TradeRecommendation(
        market_id=mbd.market_id,
        action="NO_TRADE",
        entry_zone=zone,
        target_zone=zone,
        expected_value=0.0,
        win_probability=max(market, 1 - market),
        liquidity_risk=liquidity_risk(mbd.liquidity_score),
        explanation=TradeExplanation(
            summary=f"No trade: {reason}",
            core_thesis=reason,
            key_catalysts=[c.event for c in mbd.metadata.key_catalysts],
        ),
        metadata=TradeMetadata(
            consensus_probability=market,
            market_probability=market,
            edge=0.0,
            confidence_band=(market, market),
        ),
    )


def create_recommendation_generation_node(
    config: EngineConfig,
) -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    min_edge = config.consensus.min_edge_threshold
    high_disagreement = config.consensus.high_disagreement_threshold

    async def recommendation_generation(state: GraphState) -> dict[str, Any]:
        mbd = state.get("mbd")
        if mbd is None:
            return {
                "recommendation": None,
                "audit_log": [
                    AuditEntry(stage=STAGE, data={"success": False, "reason": "No market data"})
                ],
            }

        consensus = state.get("consensus")
        if consensus is None:
            error = state.get("consensus_error")
            reason = error.reason if error and error.reason else "no consensus available"
            recommendation = no_trade_recommendation(mbd, reason)
        else:
            recommendation = build_recommendation(
                mbd,
                consensus,
                state.get("bull_thesis"),
                state.get("bear_thesis"),
                min_edge,
                high_disagreement,
            )

        logger.info(
            "Recommendation for %s: %s EV=%.2f",
            mbd.market_id,
            recommendation.action,
            recommendation.expected_value,
        )
        return {
            "recommendation": recommendation,
            "audit_log": [
                AuditEntry(
                    stage=STAGE,
                    data={
                        "success": True,
                        "action": recommendation.action,
                        "expected_value": recommendation.expected_value,
                        "edge": recommendation.metadata.edge,
                    },
                )
            ],
        }

    return recommendation_generation
