"""Fetch Result - 오케스트레이터 반환 형식

캐시 히트와 새 스크래핑 결과를 같은 형태로 돌려줍니다.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from src.cache.store import CacheTier
from src.crawlers.result import ExtractionResult, Review


class FetchState(str, Enum):
    """fetch 1건의 상태

    NOT_STARTED → CACHE_CHECK → {CACHE_HIT | QUEUED → EXECUTING →
    {SUCCESS | RETRYING → EXECUTING | FAILED}}
    """

    NOT_STARTED = "not_started"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"  # terminal
    QUEUED = "queued"
    EXECUTING = "executing"
    RETRYING = "retrying"
    SUCCESS = "success"  # terminal
    FAILED = "failed"  # terminal

    @property
    def is_terminal(self) -> bool:
        return self in (FetchState.CACHE_HIT, FetchState.SUCCESS, FetchState.FAILED)


@dataclass
class FetchResult:
    """fetch 결과 표준 포맷

    Attributes:
        product: 추출된 상품 정보
        state: 최종 상태 (CACHE_HIT | SUCCESS)
        from_cache: 캐시에서 반환되었는지 여부
        cached_at: 캐시 저장 시각 (epoch seconds, 캐시 히트일 때만)
        cache_tier: 캐시 계층 (캐시 히트일 때만)
        queue_wait_ms: 큐 대기 시간 (밀리초)
        elapsed_ms: 전체 소요 시간 (밀리초)
    """

    product: ExtractionResult
    state: FetchState
    from_cache: bool = False
    cached_at: Optional[float] = None
    cache_tier: Optional[CacheTier] = None
    queue_wait_ms: float = 0.0
    elapsed_ms: Optional[float] = None

    @classmethod
    def from_cache(
        cls,
        product: ExtractionResult,
        cached_at: Optional[float],
        cache_tier: Optional[CacheTier],
        elapsed_ms: float,
    ) -> "FetchResult":
        return cls(
            product=product,
            state=FetchState.CACHE_HIT,
            from_cache=True,
            cached_at=cached_at,
            cache_tier=cache_tier,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_scrape(
        cls, product: ExtractionResult, queue_wait_ms: float, elapsed_ms: float
    ) -> "FetchResult":
        return cls(
            product=product,
            state=FetchState.SUCCESS,
            from_cache=False,
            queue_wait_ms=queue_wait_ms,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = self.product.to_dict()
        data.update(
            {
                "from_cache": self.from_cache,
                "cached_at": self.cached_at,
                "cache_tier": self.cache_tier.value if self.cache_tier else None,
                "queue_wait_ms": round(self.queue_wait_ms, 2),
                "elapsed_ms": round(self.elapsed_ms, 2) if self.elapsed_ms is not None else None,
            }
        )
        return data


@dataclass
class ReviewFetchResult:
    """리뷰 fetch 결과 (빈 목록도 성공)"""

    reviews: List[Review]
    state: FetchState
    from_cache: bool = False
    cached_at: Optional[float] = None
    cache_tier: Optional[CacheTier] = None
    queue_wait_ms: float = 0.0
    elapsed_ms: Optional[float] = None

    @classmethod
    def from_cache(
        cls,
        reviews: List[Review],
        cached_at: Optional[float],
        cache_tier: Optional[CacheTier],
        elapsed_ms: float,
    ) -> "ReviewFetchResult":
        return cls(
            reviews=reviews,
            state=FetchState.CACHE_HIT,
            from_cache=True,
            cached_at=cached_at,
            cache_tier=cache_tier,
            elapsed_ms=elapsed_ms,
        )

    @classmethod
    def from_scrape(
        cls, reviews: List[Review], queue_wait_ms: float, elapsed_ms: float
    ) -> "ReviewFetchResult":
        return cls(
            reviews=reviews,
            state=FetchState.SUCCESS,
            queue_wait_ms=queue_wait_ms,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reviews": [review.to_dict() for review in self.reviews],
            "count": len(self.reviews),
            "from_cache": self.from_cache,
            "cached_at": self.cached_at,
            "cache_tier": self.cache_tier.value if self.cache_tier else None,
            "queue_wait_ms": round(self.queue_wait_ms, 2),
            "elapsed_ms": round(self.elapsed_ms, 2) if self.elapsed_ms is not None else None,
        }
