"""API 엔드포인트 패키지 - export only."""

from .dependencies import get_cache_store, get_orchestrator
from .routes import cache_router, health_router, scrape_router

__all__ = ["health_router", "cache_router", "scrape_router", "get_orchestrator", "get_cache_store"]
