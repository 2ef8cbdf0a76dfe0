"""FastAPI 의존성 - app.state에 보관된 레지스트리 조회"""
from fastapi import HTTPException, Request

from src.cache.store import CacheStore
from src.engine.orchestrator import ScrapeOrchestrator


def get_orchestrator(request: Request) -> ScrapeOrchestrator:
    """lifespan에서 생성한 ScrapeOrchestrator"""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Scrape engine is not initialized")
    return orchestrator


def get_cache_store(request: Request) -> CacheStore:
    return get_orchestrator(request).cache
