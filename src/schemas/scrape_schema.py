"""Pydantic 스키마 정의 (스크래핑/캐시 운영 API)"""
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime


class ScrapeRequest(BaseModel):
    """상품 스크래핑 요청"""
    url: str = Field(..., min_length=1, max_length=2048, description="상품 URL")

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """URL 검증"""
        v = v.strip()
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL은 http:// 또는 https://로 시작해야 합니다')
        return v


class ProductInfo(BaseModel):
    """추출된 상품 정보"""
    name: str | None = Field(None, description="상품명")
    price: float = Field(..., gt=0, description="가격")
    image: str | None = Field(None, description="대표 이미지 URL")
    availability: str = Field(..., description="in_stock | out_of_stock | limited")
    discount: int = Field(0, ge=0, le=100, description="할인율 (%)")
    source: str = Field(..., description="amazon | flipkart | myntra")
    url: str | None = Field(None, description="상품 URL")
    scraped_at: str = Field(..., description="추출 시각 (ISO 8601)")

    # Engine Layer 메타데이터
    from_cache: bool = Field(False, description="캐시 히트 여부")
    cached_at: float | None = Field(None, description="캐시 저장 시각 (epoch seconds)")
    cache_tier: str | None = Field(None, description="primary | fallback")
    queue_wait_ms: float = Field(0.0, ge=0, description="큐 대기 시간 (밀리초)")
    elapsed_ms: float | None = Field(None, ge=0, description="소요 시간 (밀리초)")


class ScrapeResponse(BaseModel):
    """스크래핑 응답"""
    status: str = Field(..., description="success or fail")
    data: Optional[ProductInfo] = Field(None, description="상품 정보")
    message: str = Field(..., description="응답 메시지")
    error_code: str | None = Field(None, description="에러 코드 (fail 시)")


class ReviewRequest(ScrapeRequest):
    """상품 리뷰 요청"""
    max_reviews: int = Field(10, ge=1, le=50, description="최대 리뷰 수")


class ReviewInfo(BaseModel):
    """리뷰 1건"""
    rating: float = Field(..., gt=0, le=5, description="별점")
    text: str = Field(..., min_length=1, description="제목 + 본문")
    reviewer: str = Field("Anonymous", description="작성자")
    date: str = Field("", description="사이트 표기 작성일")
    verified_purchase: bool = Field(False, description="구매 인증 여부")
    helpful_votes: int = Field(0, ge=0, description="도움이 됨 수")
    source: str = Field(..., description="amazon | flipkart")


class ReviewsData(BaseModel):
    reviews: list[ReviewInfo] = Field(default_factory=list)
    count: int = Field(0, ge=0)
    from_cache: bool = Field(False, description="캐시 히트 여부")
    cached_at: float | None = Field(None, description="캐시 저장 시각 (epoch seconds)")
    cache_tier: str | None = Field(None, description="primary | fallback")
    queue_wait_ms: float = Field(0.0, ge=0, description="큐 대기 시간 (밀리초)")
    elapsed_ms: float | None = Field(None, ge=0, description="소요 시간 (밀리초)")


class ReviewsResponse(BaseModel):
    """리뷰 응답"""
    status: str = Field(..., description="success or fail")
    data: Optional[ReviewsData] = Field(None, description="리뷰 목록")
    message: str = Field(..., description="응답 메시지")
    error_code: str | None = Field(None, description="에러 코드 (fail 시)")


class QueueStatusItem(BaseModel):
    """origin별 대기열 상태"""
    origin: str
    queue_length: int = Field(..., ge=0)
    is_active: bool
    estimated_wait_ms: float = Field(..., ge=0)


class QueueStatusResponse(BaseModel):
    status: str = Field("success")
    data: list[QueueStatusItem] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class CacheStatsResponse(BaseModel):
    """캐시/큐 통계"""
    status: str = Field(..., description="success or fail")
    cache: dict[str, Any] = Field(default_factory=dict)
    queues: list[QueueStatusItem] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class CacheHealthResponse(BaseModel):
    """캐시 상태"""
    status: str
    healthy: bool
    source: str = Field(..., description="redis | memory")
    timestamp: datetime = Field(default_factory=datetime.now)


class CacheActionResponse(BaseModel):
    """캐시 삭제 결과"""
    status: str
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)


class CacheTestResult(BaseModel):
    set: bool
    get: bool
    exists: bool
    data_match: bool


class CacheTestResponse(BaseModel):
    status: str
    test: CacheTestResult
    source: str
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str = Field(..., description="ok | degraded")
    timestamp: datetime
    version: str
    cache_source: str = Field(..., description="redis | memory")
    browser_running: bool = Field(False)
