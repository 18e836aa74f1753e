"""Main module for the TradeWizard service."""
import logging
import os
from contextlib import AsyncExitStack, asynccontextmanager

import uvicorn
from fastapi import FastAPI, Query
from fastapi.responses import RedirectResponse

from tradewizard.config import (ConfigError, load_config,
                                load_database_config, load_polymarket_config)
from tradewizard.db import DatabasePersistence, create_db_engine, init_db
from tradewizard.db.checkpointer import open_checkpointer
from tradewizard.logging_setup import configure_logging
from tradewizard.middleware import (TagRedirectMiddleware,
                                    is_valid_political_tag,
                                    political_tag_display_name)
from tradewizard.providers import PolymarketClient
from tradewizard.routers import (analysis_router, orders_router,
                                 polymarket_router, recommendations_router)
from tradewizard.services import MarketService
from tradewizard.services.recommendations import RecommendationService
from tradewizard.workflow import create_workflow

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Create client, services and workflow at startup; close them on shutdown.

    Market data routes work without LLM credentials; the recommendation
    routes answer 503 until the engine configuration is valid.
    """
    try:
        config = load_config()
    except ConfigError as exc:
        config = None
        configure_logging(os.getenv("LOG_LEVEL") or "info")
        logger.warning("Recommendation engine disabled: %s", exc)
    else:
        configure_logging(config.logging.level)

    client = PolymarketClient(config.polymarket if config else load_polymarket_config())
    engine = create_db_engine(config.database if config else load_database_config())
    init_db(engine)
    persistence = DatabasePersistence(engine)

    fastapi_app.state.market_service = MarketService(client)
    fastapi_app.state.persistence = persistence
    fastapi_app.state.recommendation_service = None
    fastapi_app.state.checkpointer = None

    async with AsyncExitStack() as stack:
        if config is not None:
            checkpointer = await stack.enter_async_context(open_checkpointer(config))
            workflow = create_workflow(client, config, checkpointer=checkpointer)
            fastapi_app.state.checkpointer = checkpointer
            fastapi_app.state.recommendation_service = RecommendationService(
                workflow, config, persistence
            )

        yield

    # Close provider resources (e.g. httpx clients)
    try:
        await client.close()
    except Exception as exc:  # pylint: disable=broad-except
        logger.warning("Error closing provider %s: %s", type(client).__name__, exc)
    engine.dispose()


app = FastAPI(
    title="TradeWizard",
    description="Polymarket data and multi-agent trade recommendations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(TagRedirectMiddleware)

app.include_router(polymarket_router)
app.include_router(recommendations_router)
app.include_router(analysis_router)
app.include_router(orders_router)


@app.get("/")
def health(tag: str | None = Query(default=None)):
    """Return health check status, with the page title for a political tag."""
    if not tag:
        return {"status": "ok"}
    tag = tag.lower()
    if not is_valid_political_tag(tag):
        return {"status": "ok", "tag": tag}
    return {"status": "ok", "tag": tag, "title": political_tag_display_name(tag)}


@app.get("/{tag}", include_in_schema=False)
def tag_page(tag: str):
    """Path-style tag links (`/trump`) redirect to the homepage filter; others go home."""
    tag = tag.lower()
    if tag == "all" or not is_valid_political_tag(tag):
        return RedirectResponse(url="/", status_code=307)
    return RedirectResponse(url=f"/?tag={tag}", status_code=307)


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    uvicorn.run("tradewizard.main:app", host="127.0.0.1", port=8001)


def run_dev():
    """Run the development server with auto-reload."""
    uvicorn.run("tradewizard.main:app", host="0.0.0.0", port=8000, reload=True)
