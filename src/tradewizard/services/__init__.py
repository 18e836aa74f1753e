"""Service layer: provider orchestration, market discovery and performance analysis."""
from tradewizard.services.analysis import (PerformanceMetrics,
                                           RecommendationPnL,
                                           calculate_performance_metrics,
                                           calculate_recommendation_pnl)
from tradewizard.services.discovery import MarketDiscoveryService
from tradewizard.services.market_service import MarketService

__all__ = [
    "MarketDiscoveryService",
    "MarketService",
    "PerformanceMetrics",
    "RecommendationPnL",
    "calculate_performance_metrics",
    "calculate_recommendation_pnl",
]
