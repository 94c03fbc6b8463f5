"""API route modules."""

from catmatch.api.routes.catalog import router as catalog_router
from catmatch.api.routes.health import router as health_router
from catmatch.api.routes.matches import router as matches_router
from catmatch.api.routes.stats import router as stats_router
from catmatch.api.routes.uploads import router as uploads_router

__all__ = [
    "health_router",
    "uploads_router",
    "matches_router",
    "catalog_router",
    "stats_router",
]
