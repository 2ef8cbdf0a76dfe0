"""캐시 모니터링/관리 엔드포인트"""
import time

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_orchestrator
from src.core.logging import logger
from src.engine.orchestrator import ScrapeOrchestrator
from src.schemas.scrape_schema import (
    CacheActionResponse,
    CacheHealthResponse,
    CacheStatsResponse,
    CacheTestResponse,
    CacheTestResult,
)

router = APIRouter(prefix="/api/cache", tags=["cache"])


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """캐시 통계 + origin별 대기열 상태"""
    stats = await orchestrator.cache.stats()
    return CacheStatsResponse(
        status="success",
        cache=stats,
        queues=orchestrator.queue_status(),
    )


@router.get("/health", response_model=CacheHealthResponse)
async def cache_health(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """캐시 백엔드 상태 (source: redis | memory)"""
    healthy = await orchestrator.cache.health_check()
    return CacheHealthResponse(
        status="success",
        healthy=healthy,
        source="redis" if healthy else "memory",
    )


@router.post("/clear", response_model=CacheActionResponse)
async def clear_cache(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """전체 캐시 삭제"""
    if not await orchestrator.clear_cache():
        raise HTTPException(status_code=500, detail="Failed to clear cache")
    return CacheActionResponse(status="success", message="Cache cleared successfully")


@router.get("/test", response_model=CacheTestResponse)
async def test_cache(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """set → get → exists → delete 동작 확인"""
    cache = orchestrator.cache
    test_key = f"test:cache:{int(time.time() * 1000)}"
    test_data = {"message": "Hello from cache!", "timestamp": time.time()}

    stored = await cache.set(test_key, test_data, 60)
    retrieved = await cache.get(test_key)
    exists = await cache.exists(test_key)
    await cache.delete(test_key)

    data_match = bool(
        retrieved.hit
        and isinstance(retrieved.value, dict)
        and retrieved.value.get("message") == test_data["message"]
    )
    logger.info(f"[API] Cache test: set={stored}, get={retrieved.hit}, exists={exists}")

    return CacheTestResponse(
        status="success" if data_match else "fail",
        test=CacheTestResult(set=stored, get=retrieved.hit, exists=exists, data_match=data_match),
        source="redis" if cache.is_connected else "memory",
        message="Cache test completed successfully" if data_match else "Cache test failed",
    )


@router.delete("/{key:path}", response_model=CacheActionResponse)
async def delete_cache_key(key: str, orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """특정 캐시 키 삭제 (scrape 키는 URL을 포함하므로 path 형식 허용)"""
    await orchestrator.clear_cache(key)
    return CacheActionResponse(status="success", message=f"Cache key '{key}' cleared successfully")
