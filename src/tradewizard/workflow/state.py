"""Shared state flowing through the recommendation graph."""
from typing import Annotated, Any, TypedDict

from tradewizard.schemas import (AgentError, AgentSignal, AuditEntry,
                                 ConsensusProbability, DebateRecord,
                                 IngestionError, MarketBriefingDocument,
                                 RecommendationError, Thesis,
                                 TradeRecommendation)


def append_or_reset(current: list | None, update: list | None) -> list:
    """Append updates; an explicit None clears the list.

    Runs reuse the market's thread, so a new run starts by clearing what
    the previous run accumulated.
    """
    if update is None:
        return []
    return list(current or []) + list(update)


class GraphState(TypedDict, total=False):
    """Each node reads what it needs and returns only the keys it updates.

    agent_signals, agent_errors and audit_log accumulate across nodes
    (parallel agents append without overwriting each other).
    """

    condition_id: str

    mbd: MarketBriefingDocument | None
    ingestion_error: IngestionError | None

    agent_signals: Annotated[list[AgentSignal], append_or_reset]
    agent_errors: Annotated[list[AgentError], append_or_reset]

    bull_thesis: Thesis | None
    bear_thesis: Thesis | None

    debate_record: DebateRecord | None

    consensus: ConsensusProbability | None
    consensus_error: RecommendationError | None

    recommendation: TradeRecommendation | None

    audit_log: Annotated[list[AuditEntry], append_or_reset]


def initial_state(condition_id: str) -> dict[str, Any]:
    """Input for a fresh run: every output key cleared."""
    return {
        "condition_id": condition_id,
        "mbd": None,
        "ingestion_error": None,
        "agent_signals": None,
        "agent_errors": None,
        "bull_thesis": None,
        "bear_thesis": None,
        "debate_record": None,
        "consensus": None,
        "consensus_error": None,
        "recommendation": None,
        "audit_log": None,
    }
