"""Types passed between the stages of the recommendation workflow."""
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, computed_field

EventType = Literal["election", "policy", "court", "geopolitical", "economic", "other"]
VolatilityRegime = Literal["low", "medium", "high"]
SignalDirection = Literal["YES", "NO", "NEUTRAL"]
DebateTestType = Literal["evidence", "causality", "timing", "liquidity", "tail-risk"]
DebateTestOutcome = Literal["survived", "weakened", "refuted"]
ProbabilityRegime = Literal["high-confidence", "moderate-confidence", "high-uncertainty"]
TradeAction = Literal["LONG_YES", "LONG_NO", "NO_TRADE"]
LiquidityRisk = Literal["low", "medium", "high"]


# --- Errors carried in state ---


class IngestionError(BaseModel):
    """Why market ingestion failed. Only the fields relevant to `type` are set."""

    type: Literal[
        "API_UNAVAILABLE", "RATE_LIMIT_EXCEEDED", "INVALID_MARKET_ID", "VALIDATION_FAILED"
    ]
    message: str | None = None
    retry_after: float | None = None
    market_id: str | None = None
    field: str | None = None
    reason: str | None = None

    @classmethod
    def api_unavailable(cls, message: str) -> "IngestionError":
        return cls(type="API_UNAVAILABLE", message=message)

    @classmethod
    def rate_limited(cls, retry_after: float = 60.0) -> "IngestionError":
        return cls(type="RATE_LIMIT_EXCEEDED", retry_after=retry_after)

    @classmethod
    def invalid_market(cls, market_id: str) -> "IngestionError":
        return cls(type="INVALID_MARKET_ID", market_id=market_id)

    @classmethod
    def validation_failed(cls, field: str, reason: str) -> "IngestionError":
        return cls(type="VALIDATION_FAILED", field=field, reason=reason)

    def describe(self) -> str:
        if self.type == "API_UNAVAILABLE":
            return f"Polymarket API unavailable: {self.message}"
        if self.type == "RATE_LIMIT_EXCEEDED":
            return f"Rate limit exceeded; retry after {self.retry_after:.0f}s"
        if self.type == "INVALID_MARKET_ID":
            return f"Invalid market ID: {self.market_id}"
        return f"Validation failed on {self.field}: {self.reason}"


class AgentError(BaseModel):
    type: Literal["TIMEOUT", "EXECUTION_FAILED"]
    agent_name: str
    timeout_ms: int | None = None
    error: str | None = None


class RecommendationError(BaseModel):
    type: Literal["INSUFFICIENT_DATA", "CONSENSUS_FAILED", "NO_EDGE"]
    reason: str | None = None
    edge: float | None = None


# --- Market briefing ---


class Catalyst(BaseModel):
    event: str
    timestamp: datetime


class BriefingMetadata(BaseModel):
    ambiguity_flags: list[str] = Field(default_factory=list)
    key_catalysts: list[Catalyst] = Field(default_factory=list)


class MarketBriefingDocument(BaseModel):
    """Normalized snapshot of one market, the input to every agent."""

    market_id: str
    condition_id: str
    event_type: EventType
    question: str
    resolution_criteria: str
    expiry_timestamp: datetime | None = None
    current_probability: float = Field(ge=0, le=1)
    liquidity_score: float = Field(ge=0, le=10)
    bid_ask_spread: float = Field(description="Spread in cents")
    volatility_regime: VolatilityRegime
    volume_24h: float = 0.0
    metadata: BriefingMetadata = Field(default_factory=BriefingMetadata)


class IngestionResult(BaseModel):
    ok: bool
    data: MarketBriefingDocument | None = None
    error: IngestionError | None = None


# --- Agent output ---


class AgentSignal(BaseModel):
    agent_name: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    confidence: float = Field(ge=0, le=1)
    direction: SignalDirection
    fair_probability: float = Field(ge=0, le=1)
    key_drivers: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class AgentAnalysis(BaseModel):
    """Structured output requested from the LLM by each agent node."""

    confidence: float = Field(ge=0, le=1, description="Confidence in this analysis, 0-1")
    direction: SignalDirection = Field(description="YES, NO or NEUTRAL")
    fair_probability: float = Field(
        ge=0, le=1, description="Estimated true probability of YES, 0-1"
    )
    key_drivers: list[str] = Field(description="Top 3-5 factors behind the estimate")
    risk_factors: list[str] = Field(description="Risks or uncertainties")


# --- Debate ---


class Thesis(BaseModel):
    direction: Literal["YES", "NO"]
    fair_probability: float
    market_probability: float
    core_argument: str
    catalysts: list[str] = Field(default_factory=list)
    failure_conditions: list[str] = Field(default_factory=list)
    supporting_signals: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def edge(self) -> float:
        return abs(self.fair_probability - self.market_probability)


class DebateTest(BaseModel):
    test_type: DebateTestType
    claim: str
    challenge: str
    outcome: DebateTestOutcome
    score: float = Field(ge=-1, le=1)


class DebateRecord(BaseModel):
    tests: list[DebateTest] = Field(default_factory=list)
    bull_score: float
    bear_score: float
    key_disagreements: list[str] = Field(default_factory=list)


class ConsensusProbability(BaseModel):
    consensus_probability: float = Field(ge=0, le=1)
    confidence_band: tuple[float, float]
    disagreement_index: float = Field(ge=0, le=1)
    regime: ProbabilityRegime
    contributing_signals: list[str] = Field(default_factory=list)


# --- Recommendation ---


class TradeExplanation(BaseModel):
    summary: str
    core_thesis: str
    key_catalysts: list[str] = Field(default_factory=list)
    failure_scenarios: list[str] = Field(default_factory=list)
    uncertainty_note: str | None = None


class TradeMetadata(BaseModel):
    consensus_probability: float
    market_probability: float
    edge: float
    confidence_band: tuple[float, float]


class TradeRecommendation(BaseModel):
    market_id: str
    action: TradeAction
    entry_zone: tuple[float, float]
    target_zone: tuple[float, float]
    expected_value: float = Field(description="Dollars per $100 invested")
    win_probability: float
    liquidity_risk: LiquidityRisk
    explanation: TradeExplanation
    metadata: TradeMetadata


class AuditEntry(BaseModel):
    stage: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] = Field(default_factory=dict)
