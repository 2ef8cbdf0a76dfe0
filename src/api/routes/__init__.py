"""API routes package."""

from .cache_routes import router as cache_router
from .health_routes import router as health_router
from .scrape_routes import router as scrape_router

__all__ = ["health_router", "cache_router", "scrape_router"]
