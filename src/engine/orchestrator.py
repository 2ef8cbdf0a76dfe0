"""Scrape Orchestrator - 엔진 진입점

상품 URL 1건을 처리하는 전체 흐름을 조율합니다.

1. URL → 플랫폼 어댑터 선택 (지원하지 않으면 큐에 넣지 않고 즉시 실패)
2. 캐시 확인 (히트면 큐를 거치지 않음)
3. origin 큐에 스크래핑 작업 등록 (origin별 직렬 + 최소 간격)
4. 결과 캐싱 후 반환, 실패는 ErrorCategory로 정규화

리뷰 조회(fetch_reviews)도 같은 흐름을 따르며 캐시 키만 다릅니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from src.cache.store import CacheStore
from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.exceptions import (
    ConnectionLevelException,
    ErrorCategory,
    ExtractionFailedException,
    FetchFailedException,
    NavigationTimeoutException,
    QueueShutdownException,
    ScrapeException,
    StaleEngineException,
    UnsupportedPlatformException,
)
from src.core.logging import logger, sanitize_for_log
from src.crawlers.executor import ScrapeExecutor
from src.crawlers.platforms import PlatformAdapter, default_platforms, resolve_platform
from src.crawlers.result import ExtractionResult, Review
from src.queues.origin_queue import OriginQueue
from src.utils.url_utils import (
    extract_origin,
    generate_review_cache_key,
    generate_scrape_cache_key,
)

from .result import FetchResult, FetchState, ReviewFetchResult


def categorize_error(exc: BaseException) -> ErrorCategory:
    """하위 계층 예외 → 호출자용 ErrorCategory"""
    if isinstance(exc, FetchFailedException):
        return exc.category
    if isinstance(exc, UnsupportedPlatformException):
        return ErrorCategory.UNSUPPORTED_PLATFORM
    if isinstance(exc, (NavigationTimeoutException, asyncio.TimeoutError)):
        return ErrorCategory.TIMEOUT
    if isinstance(exc, (ConnectionLevelException, StaleEngineException, QueueShutdownException)):
        return ErrorCategory.NETWORK
    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorCategory.NETWORK
    if isinstance(exc, ExtractionFailedException):
        return ErrorCategory.EXTRACTION_FAILED
    return ErrorCategory.EXTRACTION_FAILED


class ScrapeOrchestrator:
    """스크래핑 오케스트레이터

    CacheStore / OriginQueue / ScrapeExecutor를 참조로 받아 조합합니다.
    애플리케이션 시작 시 한 번 생성해 app.state에 보관합니다.

    Usage:
        orchestrator = ScrapeOrchestrator(cache, queue, executor)
        result = await orchestrator.fetch("https://www.amazon.in/dp/B0CHX1W1XY")
        print(result.product.price, result.from_cache)
    """

    def __init__(
        self,
        cache: CacheStore,
        queue: OriginQueue,
        executor: ScrapeExecutor,
        platforms: Optional[tuple[PlatformAdapter, ...]] = None,
        cache_ttl_s: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            cache: 캐시 저장소
            queue: origin 큐 레지스트리
            executor: 스크래핑 실행자
            platforms: 지원 플랫폼 어댑터 (기본: Amazon, Flipkart, Myntra)
            cache_ttl_s: 스크래핑 결과 캐시 TTL (초, 기본 1시간)
            clock: 소요 시간 측정용 시계
        """
        if cache is None:
            raise ValueError("cache must not be None")
        if queue is None:
            raise ValueError("queue must not be None")
        if executor is None:
            raise ValueError("executor must not be None")

        self.cache = cache
        self.queue = queue
        self.executor = executor
        self.platforms = platforms or default_platforms()
        self.cache_ttl_s = cache_ttl_s or settings.cache_ttl_s
        self._clock = clock or system_clock

    async def fetch(self, url: str) -> FetchResult:
        """상품 정보 조회 (캐시 또는 새 스크래핑)

        Args:
            url: 상품 URL

        Returns:
            FetchResult: 상품 정보와 캐시 여부

        Raises:
            FetchFailedException: 지원하지 않는 URL이거나 모든 재시도가 실패한 경우
        """
        started = self._clock.now()
        safe_url = sanitize_for_log(url)
        state = self._transition(safe_url, FetchState.NOT_STARTED, FetchState.NOT_STARTED)

        origin = extract_origin(url)
        adapter = resolve_platform(url, self.platforms) if origin else None
        if origin is None or adapter is None:
            self._transition(safe_url, state, FetchState.FAILED)
            logger.warning(f"[Orchestrator] Unsupported platform: {safe_url}")
            raise FetchFailedException(
                ErrorCategory.UNSUPPORTED_PLATFORM,
                url,
                {"url": url, "reason": "unsupported_platform"},
            )

        cache_key = self.cache_key_for(url)
        state = self._transition(safe_url, state, FetchState.CACHE_CHECK)
        queued = False

        async def scrape() -> Dict[str, Any]:
            nonlocal state

            def on_retry(attempt: int, error: ScrapeException) -> None:
                nonlocal state
                state = self._transition(safe_url, state, FetchState.RETRYING)
                logger.info(f"[Orchestrator] Retrying after attempt {attempt}: {error.error_code}")
                state = self._transition(safe_url, state, FetchState.EXECUTING)

            state = self._transition(safe_url, state, FetchState.EXECUTING)
            result = await self.executor.execute(adapter, url, on_retry=on_retry)
            return result.to_dict()

        try:
            cached = await self.cache.get(cache_key)
            if cached.hit:
                product = self._restore(cached.value)
                if product is not None:
                    self._transition(safe_url, state, FetchState.CACHE_HIT)
                    return FetchResult.from_cache(
                        product,
                        cached_at=cached.created_at,
                        cache_tier=cached.tier,
                        elapsed_ms=self._elapsed_ms(started),
                    )
                await self.cache.delete(cache_key)

            state = self._transition(safe_url, state, FetchState.QUEUED)
            queued = True
            outcome = await self.queue.enqueue(
                origin, scrape, cache_key=cache_key, cache_ttl_s=self.cache_ttl_s
            )
        except Exception as e:
            category = categorize_error(e)
            self._transition(safe_url, state, FetchState.FAILED)
            logger.error(
                f"[Orchestrator] Fetch failed for {safe_url}: {category.value} "
                f"({type(e).__name__}: {e})"
            )
            details = {"url": url, "reason": getattr(e, "error_code", type(e).__name__)}
            raise FetchFailedException(category, url, details) from e

        product = self._restore(outcome.value)
        if product is None:
            self._transition(safe_url, state, FetchState.FAILED)
            raise FetchFailedException(ErrorCategory.EXTRACTION_FAILED, url)

        if outcome.from_cache:
            # 캐시 확인과 등록 사이에 다른 요청이 결과를 채운 경우
            self._transition(safe_url, state, FetchState.CACHE_HIT)
            return FetchResult.from_cache(
                product,
                cached_at=outcome.cached_at,
                cache_tier=outcome.cache_tier,
                elapsed_ms=self._elapsed_ms(started),
            )

        self._transition(safe_url, state, FetchState.SUCCESS)
        logger.info(
            f"[Orchestrator] Scraped {adapter.name} in {self._elapsed_ms(started):.0f}ms "
            f"(queued={queued}, wait={outcome.queue_wait_ms:.0f}ms)"
        )
        return FetchResult.from_scrape(
            product,
            queue_wait_ms=outcome.queue_wait_ms,
            elapsed_ms=self._elapsed_ms(started),
        )

    async def fetch_reviews(self, url: str, max_reviews: Optional[int] = None) -> ReviewFetchResult:
        """상품 리뷰 조회 (상품 조회와 같은 origin 큐, 별도 캐시 키)

        Args:
            url: 상품 URL
            max_reviews: 최대 리뷰 수 (기본 settings.crawler_max_reviews)

        Returns:
            ReviewFetchResult: 리뷰 목록 (없으면 빈 목록)

        Raises:
            FetchFailedException: 리뷰를 지원하지 않는 URL이거나 모든 재시도가 실패한 경우
        """
        started = self._clock.now()
        safe_url = sanitize_for_log(url)
        limit = settings.crawler_max_reviews if max_reviews is None else max_reviews
        if limit < 1:
            raise ValueError(f"max_reviews must be >= 1: {limit}")

        origin = extract_origin(url)
        adapter = resolve_platform(url, self.platforms) if origin else None
        if origin is None or adapter is None or not adapter.supports_reviews:
            reason = "unsupported_platform" if adapter is None else "reviews_not_supported"
            logger.warning(f"[Orchestrator] Reviews unavailable ({reason}): {safe_url}")
            raise FetchFailedException(
                ErrorCategory.UNSUPPORTED_PLATFORM, url, {"url": url, "reason": reason}
            )

        cache_key = self.review_cache_key_for(url, limit)

        async def scrape() -> List[Dict[str, Any]]:
            def on_retry(attempt: int, error: ScrapeException) -> None:
                logger.info(
                    f"[Orchestrator] Retrying reviews after attempt {attempt}: {error.error_code}"
                )

            reviews = await self.executor.execute_reviews(
                adapter, url, max_reviews=limit, on_retry=on_retry
            )
            return [review.to_dict() for review in reviews]

        try:
            cached = await self.cache.get(cache_key)
            if cached.hit:
                reviews = self._restore_reviews(cached.value)
                if reviews is not None:
                    return ReviewFetchResult.from_cache(
                        reviews,
                        cached_at=cached.created_at,
                        cache_tier=cached.tier,
                        elapsed_ms=self._elapsed_ms(started),
                    )
                await self.cache.delete(cache_key)

            outcome = await self.queue.enqueue(
                origin, scrape, cache_key=cache_key, cache_ttl_s=self.cache_ttl_s
            )
        except Exception as e:
            category = categorize_error(e)
            logger.error(
                f"[Orchestrator] Review fetch failed for {safe_url}: {category.value} "
                f"({type(e).__name__}: {e})"
            )
            details = {"url": url, "reason": getattr(e, "error_code", type(e).__name__)}
            raise FetchFailedException(category, url, details) from e

        reviews = self._restore_reviews(outcome.value)
        if reviews is None:
            raise FetchFailedException(ErrorCategory.EXTRACTION_FAILED, url)

        if outcome.from_cache:
            return ReviewFetchResult.from_cache(
                reviews,
                cached_at=outcome.cached_at,
                cache_tier=outcome.cache_tier,
                elapsed_ms=self._elapsed_ms(started),
            )

        logger.info(
            f"[Orchestrator] Scraped {len(reviews)} {adapter.name} reviews "
            f"in {self._elapsed_ms(started):.0f}ms"
        )
        return ReviewFetchResult.from_scrape(
            reviews,
            queue_wait_ms=outcome.queue_wait_ms,
            elapsed_ms=self._elapsed_ms(started),
        )

    def queue_status(self) -> List[Dict[str, Any]]:
        """origin별 대기열 상태 (origin, queue_length, is_active, estimated_wait_ms)"""
        return [status.as_dict() for status in self.queue.status()]

    async def clear_cache(self, key: Optional[str] = None) -> bool:
        """캐시 삭제 (key가 없으면 전체)"""
        if key:
            logger.info(f"[Orchestrator] Clearing cache key: {key}")
        else:
            logger.info("[Orchestrator] Clearing all scrape cache")
        return await self.cache.clear(key)

    def cache_key_for(self, url: str) -> str:
        return generate_scrape_cache_key(url)

    def review_cache_key_for(self, url: str, max_reviews: Optional[int] = None) -> str:
        limit = settings.crawler_max_reviews if max_reviews is None else max_reviews
        return generate_review_cache_key(url, limit)

    def source_for(self, url: str) -> Optional[str]:
        """URL의 플랫폼 태그 (지원하지 않으면 None)"""
        adapter = resolve_platform(url, self.platforms) if extract_origin(url) else None
        return adapter.name if adapter else None

    async def stats(self) -> Dict[str, Any]:
        cache_stats = await self.cache.stats()
        return {
            "cache": cache_stats,
            "queues": self.queue_status(),
            "browser": {
                "running": self.executor.engine.is_running,
                "generation": self.executor.engine.generation,
            },
        }

    async def close(self) -> None:
        """큐 → 브라우저 → 캐시 순으로 정리"""
        await self.queue.shutdown()
        await self.executor.close()
        await self.cache.close()
        logger.info("[Orchestrator] Closed")

    @staticmethod
    def _restore(value: Any) -> Optional[ExtractionResult]:
        if isinstance(value, ExtractionResult):
            return value
        if not isinstance(value, dict):
            logger.warning(f"[Orchestrator] Unexpected cached value type: {type(value).__name__}")
            return None
        try:
            return ExtractionResult.from_dict(value)
        except (ExtractionFailedException, TypeError, ValueError) as e:
            logger.warning(f"[Orchestrator] Discarding invalid cached value: {e}")
            return None

    @staticmethod
    def _restore_reviews(value: Any) -> Optional[List[Review]]:
        if not isinstance(value, list):
            logger.warning(f"[Orchestrator] Unexpected cached reviews type: {type(value).__name__}")
            return None
        try:
            return [Review.from_dict(item) for item in value]
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"[Orchestrator] Discarding invalid cached reviews: {e}")
            return None

    @staticmethod
    def _transition(url: str, current: FetchState, new: FetchState) -> FetchState:
        if current != new:
            logger.debug(f"[Orchestrator] {url}: {current.value} -> {new.value}")
        return new

    def _elapsed_ms(self, started: float) -> float:
        return max(0.0, (self._clock.now() - started) * 1000)
