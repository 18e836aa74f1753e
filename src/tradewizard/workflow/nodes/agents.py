"""Intelligence agent nodes.

Each agent asks its LLM for a structured AgentAnalysis of the briefing
document. Timeouts and failures are recorded as AgentErrors in state so the
remaining agents still contribute.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from tradewizard.config import EngineConfig
from tradewizard.schemas import (AgentAnalysis, AgentError, AgentSignal,
                                 AuditEntry, MarketBriefingDocument)
from tradewizard.workflow.llm import AGENT_NAMES
from tradewizard.workflow.state import GraphState

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS = {
    "market_microstructure": (
        "You are a market microstructure analyst for prediction markets. "
        "Assess order book spread, liquidity, volume and volatility regime, and "
        "what they imply about how well the current price reflects information. "
        "Estimate the fair probability of the YES outcome."
    ),
    "probability_baseline": (
        "You are a probability estimation specialist. Establish a baseline "
        "probability for the YES outcome from base rates for this event type, "
        "time to expiry and the current market price. Avoid anchoring blindly "
        "on the market price."
    ),
    "risk_assessment": (
        "You are a risk analyst for prediction markets. Identify tail risks, "
        "resolution ambiguity, catalysts and scenarios that could move the "
        "market sharply, then estimate the fair probability of the YES outcome."
    ),
}


def format_briefing(mbd: MarketBriefingDocument) -> str:
    lines = [
        f"Market: {mbd.question}",
        f"Event type: {mbd.event_type}",
        f"Resolution criteria: {mbd.resolution_criteria}",
        f"Current probability (YES): {mbd.current_probability:.3f}",
        f"Bid/ask spread: {mbd.bid_ask_spread:.2f} cents",
        f"Liquidity score (0-10): {mbd.liquidity_score:.1f}",
        f"Volatility regime: {mbd.volatility_regime}",
        f"24h volume: {mbd.volume_24h:.0f}",
    ]
    if mbd.expiry_timestamp is not None:
        lines.append(f"Expiry: {mbd.expiry_timestamp.isoformat()}")
    if mbd.metadata.ambiguity_flags:
        lines.append("Ambiguity flags: " + "; ".join(mbd.metadata.ambiguity_flags))
    for catalyst in mbd.metadata.key_catalysts:
        lines.append(f"Catalyst: {catalyst.event} at {catalyst.timestamp.isoformat()}")
    return "\n".join(lines)


def _failure(agent_name: str, error: AgentError) -> dict[str, Any]:
    return {
        "agent_errors": [error],
        "audit_log": [
            AuditEntry(
                stage=f"agent_{agent_name}",
                data={"success": False, "error": error.model_dump(exclude_none=True)},
            )
        ],
    }


def create_agent_node(
    agent_name: str,
    llm: BaseChatModel,
    system_prompt: str,
    timeout_ms: int,
) -> Callable[[GraphState], Awaitable[dict[str, Any]]]:
    structured_llm = llm.with_structured_output(AgentAnalysis)

    async def agent_node(state: GraphState) -> dict[str, Any]:
        mbd = state.get("mbd")
        if mbd is None:
            return _failure(
                agent_name,
                AgentError(
                    type="EXECUTION_FAILED",
                    agent_name=agent_name,
                    error="No Market Briefing Document available",
                ),
            )

        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=format_briefing(mbd)),
        ]
        try:
            analysis = await asyncio.wait_for(
                structured_llm.ainvoke(messages), timeout=timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            logger.warning("Agent %s timed out after %d ms", agent_name, timeout_ms)
            return _failure(
                agent_name,
                AgentError(type="TIMEOUT", agent_name=agent_name, timeout_ms=timeout_ms),
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Agent %s failed: %s", agent_name, exc)
            return _failure(
                agent_name,
                AgentError(type="EXECUTION_FAILED", agent_name=agent_name, error=str(exc)),
            )

        if isinstance(analysis, dict):
            analysis = AgentAnalysis.model_validate(analysis)
        signal = AgentSignal(
            agent_name=agent_name,
            timestamp=datetime.now(timezone.utc),
            **analysis.model_dump(),
        )
        logger.info(
            "Agent %s: %s fair=%.3f confidence=%.2f",
            agent_name,
            signal.direction,
            signal.fair_probability,
            signal.confidence,
        )
        return {
            "agent_signals": [signal],
            "audit_log": [
                AuditEntry(
                    stage=f"agent_{agent_name}",
                    data={
                        "success": True,
                        "direction": signal.direction,
                        "fair_probability": signal.fair_probability,
                        "confidence": signal.confidence,
                    },
                )
            ],
        }

    agent_node.__name__ = f"{agent_name}_agent"
    return agent_node


def create_agent_nodes(
    config: EngineConfig, llms: dict[str, BaseChatModel]
) -> dict[str, Callable[[GraphState], Awaitable[dict[str, Any]]]]:
    """Agent node per agent name, keyed by graph node name (`<agent>_agent`)."""
    return {
        f"{name}_agent": create_agent_node(
            name, llms[name], SYSTEM_PROMPTS[name], config.agents.timeout_ms
        )
        for name in AGENT_NAMES
    }
