"""Scrape Routes (Engine Layer)

HTTP Layer가 ScrapeOrchestrator로 요청을 위임하는 단순한 Translator 역할만 수행합니다.
"""

from fastapi import APIRouter, Depends

from src.api.dependencies import get_orchestrator
from src.core.exceptions import FetchFailedException
from src.core.logging import logger, sanitize_for_log
from src.engine.orchestrator import ScrapeOrchestrator
from src.schemas.scrape_schema import (
    ProductInfo,
    QueueStatusResponse,
    ReviewRequest,
    ReviewsData,
    ReviewsResponse,
    ScrapeRequest,
    ScrapeResponse,
)

router = APIRouter(prefix="/api/v1", tags=["scrape"])


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape_product(
    request: ScrapeRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """상품 정보 스크래핑 API

    Flow:
        1. HTTP Request 수신 (URL 검증)
        2. Engine에 위임 (Cache → OriginQueue → ScrapeExecutor)
        3. 결과를 HTTP Response로 변환
    """
    logger.info(f"[API] Scrape request: {sanitize_for_log(request.url)}")

    try:
        result = await orchestrator.fetch(request.url)
    except FetchFailedException as e:
        logger.warning(f"[API] Scrape failed: {e.error_code}")
        return ScrapeResponse(
            status="fail",
            data=None,
            message=e.message,
            error_code=e.error_code,
        )

    message = "캐시된 정보입니다" if result.from_cache else "상품 정보를 가져왔습니다"
    return ScrapeResponse(
        status="success",
        data=ProductInfo(**result.to_dict()),
        message=message,
        error_code=None,
    )


@router.post("/reviews", response_model=ReviewsResponse)
async def scrape_reviews(
    request: ReviewRequest,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """상품 리뷰 스크래핑 API (Amazon, Flipkart)

    리뷰가 없는 상품은 빈 목록으로 성공합니다.
    """
    logger.info(f"[API] Review request: {sanitize_for_log(request.url)} (max={request.max_reviews})")

    try:
        result = await orchestrator.fetch_reviews(request.url, request.max_reviews)
    except FetchFailedException as e:
        logger.warning(f"[API] Review scrape failed: {e.error_code}")
        return ReviewsResponse(status="fail", data=None, message=e.message, error_code=e.error_code)

    if result.from_cache:
        message = "캐시된 리뷰입니다"
    elif result.reviews:
        message = f"리뷰 {len(result.reviews)}건을 가져왔습니다"
    else:
        message = "등록된 리뷰가 없습니다"
    return ReviewsResponse(
        status="success",
        data=ReviewsData(**result.to_dict()),
        message=message,
        error_code=None,
    )


@router.get("/queue/status", response_model=QueueStatusResponse)
async def queue_status(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """origin별 대기열 길이/처리 여부"""
    return QueueStatusResponse(status="success", data=orchestrator.queue_status())
