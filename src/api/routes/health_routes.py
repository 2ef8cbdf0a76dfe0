"""헬스 체크 엔드포인트"""
from fastapi import APIRouter, Depends
from datetime import datetime

from src.schemas.scrape_schema import HealthResponse
from src.api.dependencies import get_orchestrator
from src.engine.orchestrator import ScrapeOrchestrator
from src import __version__

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - Redis 연결 상태 (끊겨 있어도 메모리 폴백으로 동작하므로 degraded)
    - 브라우저 실행 여부
    """
    redis_ok = await orchestrator.cache.health_check()

    return HealthResponse(
        status="ok" if redis_ok else "degraded",
        timestamp=datetime.now(),
        version=__version__,
        cache_source="redis" if redis_ok else "memory",
        browser_running=orchestrator.executor.engine.is_running,
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "가격 추적 스크래핑 서비스",
        "version": __version__,
        "docs": "/docs"
    }
