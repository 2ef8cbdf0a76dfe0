"""FastAPI 앱 팩토리"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from src.core.config import settings
from src.core.logging import logger
from src.api import cache_router, health_router, scrape_router
from src.engine.factory import create_orchestrator
from src.scheduler.cache_sweep import CacheSweepScheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기

    레지스트리(캐시/큐/실행자/오케스트레이터)는 여기서 한 번만 만들고
    app.state로 라우트에 전달합니다.
    """
    logger.info("Starting application...")
    orchestrator = create_orchestrator()
    await orchestrator.cache.connect()

    sweeper = CacheSweepScheduler(orchestrator.cache)
    sweeper.start()

    app.state.orchestrator = orchestrator
    app.state.cache_sweeper = sweeper
    logger.info("Application started")
    yield
    logger.info("Shutting down application...")
    sweeper.shutdown()
    try:
        await orchestrator.close()
    except Exception as e:
        logger.error(f"Error during shutdown: {type(e).__name__}: {e}")
    app.state.orchestrator = None


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(cache_router)
    app.include_router(scrape_router)

    return app

# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
