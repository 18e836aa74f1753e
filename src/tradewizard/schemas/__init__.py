"""Pydantic schemas for API and runtime use. Not persisted to DB."""
from tradewizard.schemas.markets import (MarketQuote, MarketResolution,
                                         MarketsPage, OrderBook, OrderLevel,
                                         OutcomeInfo, RankedMarket,
                                         RealtimePrice, Source)
from tradewizard.schemas.workflow import (AgentAnalysis, AgentError,
                                          AgentSignal, AuditEntry,
                                          BriefingMetadata, Catalyst,
                                          ConsensusProbability, DebateRecord,
                                          DebateTest, IngestionError,
                                          IngestionResult,
                                          MarketBriefingDocument,
                                          RecommendationError, Thesis,
                                          TradeExplanation, TradeMetadata,
                                          TradeRecommendation)

__all__ = [
    "AgentAnalysis",
    "AgentError",
    "AgentSignal",
    "AuditEntry",
    "BriefingMetadata",
    "Catalyst",
    "ConsensusProbability",
    "DebateRecord",
    "DebateTest",
    "IngestionError",
    "IngestionResult",
    "MarketBriefingDocument",
    "MarketQuote",
    "MarketResolution",
    "MarketsPage",
    "OrderBook",
    "OrderLevel",
    "OutcomeInfo",
    "RankedMarket",
    "RealtimePrice",
    "RecommendationError",
    "Source",
    "Thesis",
    "TradeExplanation",
    "TradeMetadata",
    "TradeRecommendation",
]
