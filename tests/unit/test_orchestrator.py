"""ScrapeOrchestrator 테스트 (실제 CacheStore/OriginQueue + Fake executor)"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.cache.store import CacheStore, CacheTier
from src.core.exceptions import (
    ConnectionLevelException,
    ErrorCategory,
    ExtractionFailedException,
    FetchFailedException,
    NavigationTimeoutException,
    QueueShutdownException,
    StaleEngineException,
    UnsupportedPlatformException,
)
from src.crawlers.result import ExtractionResult, Review
from src.engine import FetchState, ScrapeOrchestrator, categorize_error
from src.queues.origin_queue import OriginQueue
from tests.fixtures import URLS


def make_result(adapter, url, on_retry=None) -> ExtractionResult:
    return ExtractionResult(name="Apple iPhone 15", price=154900, source=adapter.name, url=url)


def make_reviews(adapter, url, max_reviews=None, on_retry=None) -> list[Review]:
    return [Review(rating=5, text="Great phone", source=adapter.name)][:max_reviews]


@pytest.fixture
def store(clock) -> CacheStore:
    return CacheStore(redis_url="", clock=clock)


@pytest.fixture
def executor():
    """ScrapeExecutor 모의 객체."""
    executor = MagicMock()
    executor.execute = AsyncMock(side_effect=make_result)
    executor.execute_reviews = AsyncMock(side_effect=make_reviews)
    executor.close = AsyncMock()
    executor.engine.is_running = True
    executor.engine.generation = 1
    return executor


@pytest.fixture
def orchestrator(store, executor, clock) -> ScrapeOrchestrator:
    queue = OriginQueue(store, min_delay_s=10, clock=clock)
    return ScrapeOrchestrator(store, queue, executor, cache_ttl_s=3600, clock=clock)


class TestFetch:
    @pytest.mark.asyncio
    async def test_second_fetch_within_ttl_is_served_from_cache(self, orchestrator, executor):
        """TTL 내 두 번째 조회는 캐시에서 같은 결과, 스크래핑은 1회"""
        first = await orchestrator.fetch(URLS["amazon"])
        second = await orchestrator.fetch(URLS["amazon"])

        assert first.from_cache is False
        assert first.state == FetchState.SUCCESS
        assert second.from_cache is True
        assert second.state == FetchState.CACHE_HIT
        assert second.product == first.product
        assert second.cache_tier == CacheTier.FALLBACK
        assert executor.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_cache_expires_after_one_hour(self, orchestrator, executor, clock):
        await orchestrator.fetch(URLS["amazon"])
        clock.tick(3601)

        result = await orchestrator.fetch(URLS["amazon"])

        assert result.from_cache is False
        assert executor.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_same_origin_requests_are_spaced(self, orchestrator, executor, clock):
        first = asyncio.create_task(orchestrator.fetch(URLS["amazon"]))
        second = asyncio.create_task(orchestrator.fetch(URLS["amazon_other"]))
        other_origin = asyncio.create_task(orchestrator.fetch(URLS["flipkart"]))

        await clock.settle()
        status = {item["origin"]: item for item in orchestrator.queue_status()}
        assert status["www.amazon.in"]["queue_length"] == 1
        assert status["www.amazon.in"]["is_active"] is True

        await clock.run_all()

        assert (await first).queue_wait_ms == 0
        assert (await second).queue_wait_ms == 10_000
        assert (await other_origin).queue_wait_ms == 0

    @pytest.mark.asyncio
    async def test_adapter_selected_by_domain(self, orchestrator, executor):
        await orchestrator.fetch(URLS["myntra"])

        adapter, url = executor.execute.await_args.args
        assert adapter.name == "myntra"
        assert url == URLS["myntra"]

    @pytest.mark.asyncio
    async def test_invalid_cached_value_is_discarded(self, orchestrator, store, executor):
        cache_key = orchestrator.cache_key_for(URLS["amazon"])
        await store.set(cache_key, {"name": "broken", "price": -1}, 60)

        result = await orchestrator.fetch(URLS["amazon"])

        assert result.from_cache is False
        assert result.product.price == 154900
        assert executor.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_retry_notifications_do_not_break_fetch(self, orchestrator, executor):
        async def retrying(adapter, url, on_retry=None):
            on_retry(1, ExtractionFailedException("no price"))
            return make_result(adapter, url)

        executor.execute.side_effect = retrying

        result = await orchestrator.fetch(URLS["flipkart"])
        assert result.state == FetchState.SUCCESS


class TestUnsupported:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["unsupported", "malformed"])
    async def test_fails_immediately_and_never_queues(self, orchestrator, executor, key):
        with pytest.raises(FetchFailedException) as exc_info:
            await orchestrator.fetch(URLS[key])

        assert exc_info.value.category == ErrorCategory.UNSUPPORTED_PLATFORM
        assert exc_info.value.error_code == "UNSUPPORTED_PLATFORM"
        assert orchestrator.queue_status() == []
        executor.execute.assert_not_called()


class TestErrorNormalization:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,category",
        [
            (ConnectionLevelException("socket hang up", 1), ErrorCategory.NETWORK),
            (StaleEngineException(1, 2), ErrorCategory.NETWORK),
            (NavigationTimeoutException("navigation", 30), ErrorCategory.TIMEOUT),
            (ExtractionFailedException("no price"), ErrorCategory.EXTRACTION_FAILED),
            (KeyError("price"), ErrorCategory.EXTRACTION_FAILED),
        ],
    )
    async def test_downstream_errors_are_categorized(self, orchestrator, executor, store, error, category):
        executor.execute.side_effect = error

        with pytest.raises(FetchFailedException) as exc_info:
            await orchestrator.fetch(URLS["amazon"])

        assert exc_info.value.category == category
        assert exc_info.value.__cause__ is error
        assert exc_info.value.message == FetchFailedException.MESSAGES[category]
        # 실패는 캐시되지 않음
        assert (await store.get(orchestrator.cache_key_for(URLS["amazon"]))).hit is False

    @pytest.mark.parametrize(
        "error,category",
        [
            (UnsupportedPlatformException("https://example.com"), ErrorCategory.UNSUPPORTED_PLATFORM),
            (QueueShutdownException("www.amazon.in"), ErrorCategory.NETWORK),
            (asyncio.TimeoutError(), ErrorCategory.TIMEOUT),
            (ConnectionResetError(), ErrorCategory.NETWORK),
            (RuntimeError("?"), ErrorCategory.EXTRACTION_FAILED),
        ],
    )
    def test_categorize_error(self, error, category):
        assert categorize_error(error) == category


class TestOperations:
    @pytest.mark.asyncio
    async def test_clear_cache_forces_new_scrape(self, orchestrator, executor, clock):
        await orchestrator.fetch(URLS["amazon"])
        assert await orchestrator.clear_cache() is True

        # 같은 origin 재요청은 최소 간격을 기다림
        task = asyncio.create_task(orchestrator.fetch(URLS["amazon"]))
        await clock.run_all()
        result = await task
        assert result.from_cache is False
        assert executor.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_clear_single_key(self, orchestrator, store):
        await orchestrator.fetch(URLS["amazon"])
        key = orchestrator.cache_key_for(URLS["amazon"])

        await orchestrator.clear_cache(key)

        assert (await store.get(key)).hit is False

    def test_cache_key_and_source(self, orchestrator):
        assert orchestrator.cache_key_for(URLS["flipkart"]) == f"scrape:{URLS['flipkart']}"
        assert orchestrator.source_for(URLS["flipkart"]) == "flipkart"
        assert orchestrator.source_for(URLS["unsupported"]) is None
        assert orchestrator.source_for(URLS["malformed"]) is None

    @pytest.mark.asyncio
    async def test_stats(self, orchestrator):
        await orchestrator.fetch(URLS["amazon"])

        stats = await orchestrator.stats()

        assert stats["cache"]["source"] == "memory"
        assert stats["cache"]["fallback_size"] == 1
        assert stats["queues"][0]["origin"] == "www.amazon.in"
        assert stats["browser"] == {"running": True, "generation": 1}

    @pytest.mark.asyncio
    async def test_close(self, orchestrator, executor):
        await orchestrator.close()

        executor.close.assert_awaited_once()
        with pytest.raises(QueueShutdownException):
            orchestrator.queue.submit("www.amazon.in", AsyncMock())

    def test_requires_collaborators(self, store, executor):
        with pytest.raises(ValueError):
            ScrapeOrchestrator(store, None, executor)


class TestFetchReviews:
    @pytest.mark.asyncio
    async def test_reviews_are_cached_under_their_own_key(self, orchestrator, executor, store):
        first = await orchestrator.fetch_reviews(URLS["amazon"], max_reviews=5)
        second = await orchestrator.fetch_reviews(URLS["amazon"], max_reviews=5)

        assert first.from_cache is False
        assert first.state == FetchState.SUCCESS
        assert [r.text for r in first.reviews] == ["Great phone"]
        assert second.from_cache is True
        assert second.reviews == first.reviews
        assert executor.execute_reviews.await_count == 1

        review_key = orchestrator.review_cache_key_for(URLS["amazon"], 5)
        assert review_key != orchestrator.cache_key_for(URLS["amazon"])
        assert (await store.get(review_key)).hit is True
        assert (await store.get(orchestrator.cache_key_for(URLS["amazon"]))).hit is False

    @pytest.mark.asyncio
    async def test_different_limit_is_a_different_entry(self, orchestrator, executor, clock):
        await orchestrator.fetch_reviews(URLS["flipkart"], max_reviews=5)
        task = asyncio.create_task(orchestrator.fetch_reviews(URLS["flipkart"], max_reviews=10))
        await clock.run_all()

        assert (await task).from_cache is False
        assert executor.execute_reviews.await_count == 2

    @pytest.mark.asyncio
    async def test_shares_origin_spacing_with_product_fetch(self, orchestrator, executor, clock):
        product = asyncio.create_task(orchestrator.fetch(URLS["amazon"]))
        reviews = asyncio.create_task(orchestrator.fetch_reviews(URLS["amazon"]))

        await clock.run_all()

        assert (await product).queue_wait_ms == 0
        assert (await reviews).queue_wait_ms == 10_000
        assert executor.execute_reviews.await_args.kwargs["max_reviews"] == 10

    @pytest.mark.asyncio
    async def test_empty_review_list_is_success(self, orchestrator, executor):
        executor.execute_reviews.side_effect = None
        executor.execute_reviews.return_value = []

        result = await orchestrator.fetch_reviews(URLS["amazon"])

        assert result.reviews == []
        assert result.to_dict()["count"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["myntra", "unsupported", "malformed"])
    async def test_unsupported_fails_before_queueing(self, orchestrator, executor, key):
        with pytest.raises(FetchFailedException) as exc_info:
            await orchestrator.fetch_reviews(URLS[key])

        assert exc_info.value.category == ErrorCategory.UNSUPPORTED_PLATFORM
        assert orchestrator.queue_status() == []
        executor.execute_reviews.assert_not_called()

    @pytest.mark.asyncio
    async def test_failures_are_categorized_and_not_cached(self, orchestrator, executor, store):
        error = NavigationTimeoutException("navigation", 30)
        executor.execute_reviews.side_effect = error

        with pytest.raises(FetchFailedException) as exc_info:
            await orchestrator.fetch_reviews(URLS["amazon"])

        assert exc_info.value.category == ErrorCategory.TIMEOUT
        assert exc_info.value.__cause__ is error
        key = orchestrator.review_cache_key_for(URLS["amazon"])
        assert (await store.get(key)).hit is False

    @pytest.mark.asyncio
    async def test_invalid_cached_reviews_are_discarded(self, orchestrator, executor, store):
        await store.set(orchestrator.review_cache_key_for(URLS["amazon"]), [{"rating": 9}], 60)

        result = await orchestrator.fetch_reviews(URLS["amazon"])

        assert result.from_cache is False
        assert executor.execute_reviews.await_count == 1
