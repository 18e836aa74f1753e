"""Database models for analyzed markets and their recommendations.

Rows reference markets.id (and recommendations.id for agent signals);
workflow checkpoints live in the LangGraph checkpointer, not here.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Stored as aware UTC; SQLite returns the values naive, see providers.core.as_utc.
Timestamp = DateTime(timezone=True)


def new_id() -> str:
    return str(uuid4())


class Market(SQLModel, table=True):
    """A Polymarket market tracked for analysis."""

    __tablename__ = "markets"

    id: str = Field(default_factory=new_id, primary_key=True)
    condition_id: str = Field(unique=True, index=True)
    question: str
    description: str | None = None
    event_type: str
    market_probability: float | None = None
    volume_24h: float | None = None
    liquidity: float | None = None
    status: str = Field(default="active", index=True)  # active | inactive | resolved
    resolved_outcome: str | None = None
    trending_score: float | None = None
    last_analyzed_at: datetime | None = Field(default=None, sa_type=Timestamp)
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class Recommendation(SQLModel, table=True):
    __tablename__ = "recommendations"

    id: str = Field(default_factory=new_id, primary_key=True)
    market_id: str = Field(foreign_key="markets.id", index=True)
    direction: str  # LONG_YES | LONG_NO | NO_TRADE
    fair_probability: float | None = None
    market_edge: float | None = None
    expected_value: float | None = None
    win_probability: float | None = None
    liquidity_risk: str | None = None
    confidence: str  # high | moderate | low
    entry_zone_min: float | None = None
    entry_zone_max: float | None = None
    target_zone_min: float | None = None
    target_zone_max: float | None = None
    explanation: str | None = None
    catalysts: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    risks: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp, index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class AgentSignalRecord(SQLModel, table=True):
    __tablename__ = "agent_signals"

    id: str = Field(default_factory=new_id, primary_key=True)
    market_id: str = Field(foreign_key="markets.id", index=True)
    recommendation_id: str | None = Field(
        default=None, foreign_key="recommendations.id", index=True
    )
    agent_name: str
    agent_type: str
    direction: str
    fair_probability: float | None = None
    confidence: float | None = None
    key_drivers: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    # "metadata" is reserved on declarative classes.
    signal_metadata: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)


class AnalysisHistory(SQLModel, table=True):
    __tablename__ = "analysis_history"

    id: str = Field(default_factory=new_id, primary_key=True)
    market_id: str = Field(foreign_key="markets.id", index=True)
    analysis_type: str  # initial | update | resolution
    status: str  # success | failed | partial
    duration_ms: int | None = None
    cost_usd: float | None = None
    agents_used: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=Timestamp)
