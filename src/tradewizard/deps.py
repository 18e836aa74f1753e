"""FastAPI dependency injection: app.state holds singletons; Depends() resolves them.

No external DI container. Lifespan (main.py) creates the client, services and
workflow once and attaches them to app.state; these getters are used by Depends().
"""
from typing import Annotated

from fastapi import Depends, HTTPException, Request, WebSocket
from langgraph.checkpoint.base import BaseCheckpointSaver

from tradewizard.services import MarketService
from tradewizard.services.recommendations import RecommendationService


def get_market_service(request: Request) -> MarketService:
    """Resolve the Polymarket MarketService from app.state (created at startup)."""
    return request.app.state.market_service


def get_market_service_ws(websocket: WebSocket) -> MarketService:
    """Resolve the Polymarket MarketService for WebSocket routes."""
    return websocket.scope["app"].state.market_service


def get_recommendation_service(request: Request) -> RecommendationService:
    """Resolve RecommendationService; 503 when the workflow could not be configured."""
    service = getattr(request.app.state, "recommendation_service", None)
    if service is None:
        raise HTTPException(
            503, detail="Recommendation engine is not configured (check LLM settings)"
        )
    return service


def get_checkpointer(request: Request) -> BaseCheckpointSaver:
    checkpointer = getattr(request.app.state, "checkpointer", None)
    if checkpointer is None:
        raise HTTPException(503, detail="Workflow checkpointer is not available")
    return checkpointer


# Type aliases for route injection
MarketServiceDep = Annotated[MarketService, Depends(get_market_service)]
MarketServiceWs = Annotated[MarketService, Depends(get_market_service_ws)]
RecommendationServiceDep = Annotated[RecommendationService, Depends(get_recommendation_service)]
CheckpointerDep = Annotated[BaseCheckpointSaver, Depends(get_checkpointer)]
