"""Builders and fakes shared by the tests."""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any

from tradewizard.config import EngineConfig
from tradewizard.schemas import (AgentAnalysis, BriefingMetadata,
                                 IngestionError, IngestionResult,
                                 MarketBriefingDocument, MarketQuote,
                                 MarketResolution)
from tradewizard.workflow.llm import AGENT_NAMES

CONDITION_ID = "0xabc123"


def make_config(**sections: Any) -> EngineConfig:
    raw: dict[str, Any] = {
        "llm": {
            "single_provider": "openai",
            "openai": {"api_key": "test-key", "default_model": "gpt-test"},
        }
    }
    raw.update(sections)
    return EngineConfig.model_validate(raw)


def make_briefing(**overrides: Any) -> MarketBriefingDocument:
    data: dict[str, Any] = {
        "market_id": "will-x-win",
        "condition_id": CONDITION_ID,
        "event_type": "election",
        "question": "Will X win the election?",
        "resolution_criteria": "Resolves YES if X is certified the winner.",
        "expiry_timestamp": datetime.now(timezone.utc) + timedelta(days=30),
        "current_probability": 0.5,
        "liquidity_score": 6.0,
        "bid_ask_spread": 2.0,
        "volatility_regime": "medium",
        "volume_24h": 25_000.0,
        "metadata": BriefingMetadata(),
    }
    data.update(overrides)
    return MarketBriefingDocument(**data)


def make_analysis(fair: float = 0.7, confidence: float = 0.8, **overrides: Any) -> AgentAnalysis:
    data: dict[str, Any] = {
        "confidence": confidence,
        "direction": "YES" if fair > 0.5 else "NO" if fair < 0.5 else "NEUTRAL",
        "fair_probability": fair,
        "key_drivers": ["Polling lead"],
        "risk_factors": [],
    }
    data.update(overrides)
    return AgentAnalysis(**data)


class FakeStructuredLLM:
    """Stands in for llm.with_structured_output(AgentAnalysis)."""

    def __init__(self, response: Any = None, *, error: Exception | None = None, delay: float = 0.0):
        self.response = response if response is not None else make_analysis()
        self.error = error
        self.delay = delay
        self.calls: list[list[Any]] = []

    async def ainvoke(self, messages: list[Any]) -> Any:
        self.calls.append(messages)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class FakeChatModel:
    def __init__(self, structured: FakeStructuredLLM | None = None):
        self.structured = structured or FakeStructuredLLM()
        self.schema: Any = None

    def with_structured_output(self, schema: Any) -> FakeStructuredLLM:
        self.schema = schema
        return self.structured


def make_llms(**per_agent: FakeStructuredLLM) -> dict[str, FakeChatModel]:
    """A fake chat model per agent; keyword args override single agents."""
    return {name: FakeChatModel(per_agent.get(name)) for name in AGENT_NAMES}


class FakeProvider:
    """In-memory provider: briefings, quotes and resolutions keyed by condition ID."""

    def __init__(self) -> None:
        self.briefings: dict[str, MarketBriefingDocument] = {}
        self.errors: dict[str, IngestionError] = {}
        self.quotes: dict[str, float] = {}
        self.resolutions: dict[str, MarketResolution] = {}
        self.fetched: list[str] = []

    async def fetch_market_data(self, condition_id: str) -> IngestionResult:
        self.fetched.append(condition_id)
        if condition_id in self.errors:
            return IngestionResult(ok=False, error=self.errors[condition_id])
        if condition_id in self.briefings:
            return IngestionResult(ok=True, data=self.briefings[condition_id])
        return IngestionResult(ok=False, error=IngestionError.invalid_market(condition_id))

    async def get_quote(self, symbol: str) -> MarketQuote:
        if symbol not in self.quotes:
            raise ValueError(f"Market with condition_id '{symbol}' not found")
        return MarketQuote(symbol=symbol, value=self.quotes[symbol])

    async def check_market_resolution(self, condition_id: str) -> MarketResolution:
        return self.resolutions.get(condition_id, MarketResolution(resolved=False))
