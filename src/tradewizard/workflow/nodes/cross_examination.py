"""Cross-examination: stress-test each thesis and score how well it holds up."""
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from tradewizard.providers.core import as_utc
from tradewizard.schemas import (AgentSignal, AuditEntry, DebateRecord,
                                 DebateTest, MarketBriefingDocument, Thesis)
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

STAGE = "cross_examination"

SURVIVED_THRESHOLD = 0.3
REFUTED_THRESHOLD = -0.3


def _clip(value: float) -> float:
    return max(-1.0, min(1.0, value))


def outcome_for(score: float) -> str:
    if score >= SURVIVED_THRESHOLD:
        return "survived"
    if score > REFUTED_THRESHOLD:
        return "weakened"
    return "refuted"


def _test(test_type: str, claim: str, challenge: str, score: float) -> DebateTest:
    score = _clip(score)
    return DebateTest(
        test_type=test_type,
        claim=claim,
        challenge=challenge,
        outcome=outcome_for(score),
        score=score,
    )


def evidence_test(thesis: Thesis, signals: list[AgentSignal]) -> DebateTest:
    supporters = [s for s in signals if s.agent_name in thesis.supporting_signals]
    if not supporters:
        return _test("evidence", thesis.core_argument, "No agent signal supports this side", -1.0)
    share = len(supporters) / len(signals)
    avg_confidence = sum(s.confidence for s in supporters) / len(supporters)
    return _test(
        "evidence",
        thesis.core_argument,
        f"{len(supporters)}/{len(signals)} agents at {avg_confidence:.0%} average confidence",
        share * avg_confidence * 2 - 0.5,
    )


def causality_test(thesis: Thesis) -> DebateTest:
    edge = thesis.edge
    return _test(
        "causality",
        f"Fair probability {thesis.fair_probability:.1%} vs market {thesis.market_probability:.1%}",
        "Is the gap large enough to reflect a real mispricing?",
        edge * 10 - 0.5,
    )


def timing_test(thesis: Thesis, mbd: MarketBriefingDocument, now: datetime) -> DebateTest:
    expiry = mbd.expiry_timestamp
    if expiry is None:
        return _test("timing", "Market resolves in time for the edge to pay out", "No expiry known", 0.0)
    days_left = (as_utc(expiry) - now).total_seconds() / 86400
    if days_left <= 0:
        score = -1.0
    elif thesis.catalysts:
        score = 0.5
    else:
        score = 0.1
    return _test(
        "timing",
        "Market resolves in time for the edge to pay out",
        f"{days_left:.1f} days to expiry, {len(thesis.catalysts)} catalysts",
        score,
    )


def liquidity_test(mbd: MarketBriefingDocument) -> DebateTest:
    return _test(
        "liquidity",
        "Position can be entered and exited near the quoted price",
        f"Liquidity score {mbd.liquidity_score:.1f}/10, spread {mbd.bid_ask_spread:.2f}c",
        mbd.liquidity_score / 5 - 1,
    )


def tail_risk_test(thesis: Thesis, mbd: MarketBriefingDocument) -> DebateTest:
    risks = len(thesis.failure_conditions) + len(mbd.metadata.ambiguity_flags)
    return _test(
        "tail-risk",
        "No single scenario invalidates the thesis",
        f"{risks} failure conditions or ambiguity flags",
        0.5 - 0.25 * risks,
    )


def examine(
    thesis: Thesis,
    signals: list[AgentSignal],
    mbd: MarketBriefingDocument,
    now: datetime,
) -> list[DebateTest]:
    return [
        evidence_test(thesis, signals),
        causality_test(thesis),
        timing_test(thesis, mbd, now),
        liquidity_test(mbd),
        tail_risk_test(thesis, mbd),
    ]


def build_debate_record(
    bull: Thesis,
    bear: Thesis,
    signals: list[AgentSignal],
    mbd: MarketBriefingDocument,
    now: datetime | None = None,
) -> DebateRecord:
    """Run every test against both theses; bull/bear scores are the mean test scores."""
    now = now or datetime.now(timezone.utc)
    bull_tests = examine(bull, signals, mbd, now)
    bear_tests = examine(bear, signals, mbd, now)

    disagreements = [
        f"{b.test_type}: bull {b.outcome}, bear {r.outcome}"
        for b, r in zip(bull_tests, bear_tests)
        if b.outcome != r.outcome
    ]
    gap = abs(bull.fair_probability - bear.fair_probability)
    if gap > 0.1:
        disagreements.append(f"Fair probability estimates differ by {gap:.1%}")

    return DebateRecord(
        tests=bull_tests + bear_tests,
        bull_score=sum(t.score for t in bull_tests) / len(bull_tests),
        bear_score=sum(t.score for t in bear_tests) / len(bear_tests),
        key_disagreements=disagreements,
    )


def create_cross_examination_node() -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    async def cross_examination(state: GraphState) -> dict[str, Any]:
        bull, bear, mbd = state.get("bull_thesis"), state.get("bear_thesis"), state.get("mbd")
        if bull is None or bear is None or mbd is None:
            return {
                "debate_record": None,
                "audit_log": [
                    AuditEntry(stage=STAGE, data={"success": False, "reason": "No theses"})
                ],
            }

        record = build_debate_record(bull, bear, state.get("agent_signals") or [], mbd)
        logger.info(
            "Debate scores: bull=%.2f bear=%.2f (%d disagreements)",
            record.bull_score,
            record.bear_score,
            len(record.key_disagreements),
        )
        return {
            "debate_record": record,
            "audit_log": [
                AuditEntry(
                    stage=STAGE,
                    data={
                        "success": True,
                        "bull_score": record.bull_score,
                        "bear_score": record.bear_score,
                        "key_disagreements": record.key_disagreements,
                    },
                )
            ],
        }

    return cross_examination
