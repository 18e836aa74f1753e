"""API routers.

- /api/polymarket - tradeable markets, quotes, prices and the price stream
- /api/recommendations - stored recommendations and their performance
- /api/analysis - on-demand workflow runs and audit trails
- /api/orders - order-form validation
"""
from tradewizard.routers.analysis import router as analysis_router
from tradewizard.routers.orders import router as orders_router
from tradewizard.routers.polymarket import router as polymarket_router
from tradewizard.routers.recommendations import \
    router as recommendations_router

__all__ = [
    "analysis_router",
    "orders_router",
    "polymarket_router",
    "recommendations_router",
]
