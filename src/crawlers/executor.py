"""Scrape Executor - 공유 브라우저로 상품 페이지 1건 추출 (분류된 재시도 포함)

실패는 세 종류로 분류됩니다.

- ConnectionLevelException: 브라우저 연결 단절. 다음 시도 전에 브라우저를
  교체하고 attempt * base_delay 만큼 대기
- NavigationTimeoutException / ExtractionFailedException: 브라우저는 그대로
  두고 다음 시도 진행
- StaleEngineException: 다른 작업이 브라우저를 교체함. 교체 없이 다음 시도

max_attempts를 모두 소진하면 마지막 예외를 그대로 던집니다.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from playwright.async_api import BrowserContext, Page, TimeoutError as PlaywrightTimeoutError

from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.exceptions import (
    BrowserLaunchException,
    ConnectionLevelException,
    ExtractionFailedException,
    NavigationTimeoutException,
    ScrapeException,
    StaleEngineException,
    UnsupportedPlatformException,
)
from src.core.logging import logger, sanitize_for_log
from src.crawlers.platforms.base import PlatformAdapter
from src.crawlers.playwright.browser import BrowserEngine, EngineHandle
from src.crawlers.playwright.pages import configure_page, open_isolated_context
from src.crawlers.result import ExtractionResult, Review


# 자동화 채널/소켓 단절을 나타내는 오류 메시지
CONNECTION_ERROR_MARKERS = (
    "target closed",
    "target page, context or browser has been closed",
    "browser has been closed",
    "browser has disconnected",
    "connection closed",
    "econnreset",
    "econnrefused",
    "socket hang up",
    "websocket",
    "pipe closed",
)


RetryListener = Callable[[int, ScrapeException], None]
T = TypeVar("T")


def classify_error(
    exc: BaseException,
    handle: Optional[EngineHandle] = None,
    operation: str = "scrape",
    timeout_s: float = 0.0,
) -> ScrapeException:
    """원시 예외를 재시도 정책용 ScrapeException으로 변환

    Args:
        exc: 시도 중 발생한 예외
        handle: 시도에 사용한 엔진 핸들 (연결 상태 확인용)
        operation: 타임아웃 메시지에 들어갈 단계 이름
        timeout_s: 해당 단계의 제한 시간

    Returns:
        ScrapeException: 분류된 예외 (이미 분류된 예외는 그대로)
    """
    if isinstance(exc, ScrapeException):
        return exc

    generation = handle.generation if handle is not None else 0

    if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
        return NavigationTimeoutException(operation, timeout_s)

    message = str(exc).lower()
    if any(marker in message for marker in CONNECTION_ERROR_MARKERS):
        return ConnectionLevelException(f"{type(exc).__name__}: {exc}", generation)
    if isinstance(exc, (ConnectionError, OSError)):
        return ConnectionLevelException(f"{type(exc).__name__}: {exc}", generation)
    if handle is not None and not handle.is_connected():
        return ConnectionLevelException(f"browser disconnected ({type(exc).__name__})", generation)

    return ExtractionFailedException(f"{type(exc).__name__}: {exc}")


class ScrapeExecutor:
    """Playwright 기반 상품 페이지 추출기

    Usage:
        executor = ScrapeExecutor()
        result = await executor.execute(AmazonAdapter(), "https://www.amazon.in/dp/...")
        await executor.close()
    """

    def __init__(
        self,
        engine: Optional[BrowserEngine] = None,
        max_attempts: Optional[int] = None,
        retry_base_delay_s: Optional[float] = None,
        navigation_timeout_s: Optional[float] = None,
        extraction_timeout_s: Optional[float] = None,
        block_resources: Optional[bool] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            engine: 공유 브라우저 엔진 (없으면 내부 생성)
            max_attempts: 최대 시도 횟수 (1 이상)
            retry_base_delay_s: 연결 단절 시 백오프 기본값 (초)
            navigation_timeout_s: page.goto 제한 시간 (초)
            extraction_timeout_s: 준비 + 추출 제한 시간 (초)
            block_resources: 이미지/폰트/미디어 요청 차단 여부
            clock: 백오프 대기용 시계 (테스트 주입용)
        """
        self.engine = engine or BrowserEngine()
        self.max_attempts = settings.crawler_max_attempts if max_attempts is None else max_attempts
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1: {self.max_attempts}")
        self.retry_base_delay_s = (
            settings.crawler_retry_base_delay_s if retry_base_delay_s is None else retry_base_delay_s
        )
        self.navigation_timeout_s = navigation_timeout_s or settings.crawler_navigation_timeout_s
        self.extraction_timeout_s = extraction_timeout_s or settings.crawler_extraction_timeout_s
        self.block_resources = block_resources
        self._clock = clock or system_clock

    async def execute(
        self,
        adapter: PlatformAdapter,
        url: str,
        on_retry: Optional[RetryListener] = None,
    ) -> ExtractionResult:
        """상품 페이지 추출 (분류된 재시도 포함)

        Args:
            adapter: URL에 맞는 플랫폼 어댑터
            url: 상품 URL
            on_retry: 재시도 직전에 (실패한 attempt, 예외)로 호출되는 콜백

        Returns:
            ExtractionResult: 추출 결과

        Raises:
            ConnectionLevelException: 마지막 시도가 연결 단절로 실패
            NavigationTimeoutException: 마지막 시도가 타임아웃으로 실패
            ExtractionFailedException: 마지막 시도가 추출 실패
            StaleEngineException: 마지막 시도 중 엔진이 교체됨
        """

        async def extract(page: Page) -> ExtractionResult:
            await adapter.prepare(page)
            return await adapter.extract(page, url)

        result = await self._run_with_retry(adapter, url, extract, on_retry)
        logger.info(f"[Scraper] Success: {adapter.name} price={result.price}")
        return result

    async def execute_reviews(
        self,
        adapter: PlatformAdapter,
        url: str,
        max_reviews: Optional[int] = None,
        on_retry: Optional[RetryListener] = None,
    ) -> list[Review]:
        """상품 페이지의 리뷰 추출 (재시도 정책은 execute와 동일)

        리뷰가 하나도 없는 페이지는 빈 목록으로 성공합니다.

        Raises:
            UnsupportedPlatformException: 어댑터에 리뷰 추출 전략이 없음
            ValueError: max_reviews < 1
        """
        if not adapter.supports_reviews:
            raise UnsupportedPlatformException(
                url, {"url": url, "source": adapter.name, "reason": "reviews_not_supported"}
            )
        limit = settings.crawler_max_reviews if max_reviews is None else max_reviews
        if limit < 1:
            raise ValueError(f"max_reviews must be >= 1: {limit}")

        async def extract(page: Page) -> list[Review]:
            await adapter.prepare_reviews(page)
            return await adapter.extract_reviews(page, url, limit)

        reviews = await self._run_with_retry(adapter, url, extract, on_retry)
        logger.info(f"[Scraper] Success: {adapter.name} reviews={len(reviews)}")
        return reviews

    async def _run_with_retry(
        self,
        adapter: PlatformAdapter,
        url: str,
        extract: Callable[[Page], Awaitable[T]],
        on_retry: Optional[RetryListener],
    ) -> T:
        safe_url = sanitize_for_log(url)
        last_error: Optional[ScrapeException] = None

        for attempt in range(1, self.max_attempts + 1):
            if last_error is not None and on_retry is not None:
                on_retry(attempt - 1, last_error)
            final = attempt >= self.max_attempts
            try:
                logger.info(
                    f"[Scraper] Attempt {attempt}/{self.max_attempts} for {adapter.name}: {safe_url}"
                )
                return await self._attempt(adapter, url, extract)

            except ConnectionLevelException as e:
                last_error = e
                logger.warning(f"[Scraper] Attempt {attempt} lost browser connection: {e.message}")
                if final:
                    self._log_exhausted(safe_url, e)
                    raise
                await self._recover_connection(e.generation)
                delay = attempt * self.retry_base_delay_s
                logger.info(f"[Scraper] Retrying in {delay:.1f}s...")
                await self._clock.sleep(delay)

            except StaleEngineException as e:
                last_error = e
                logger.warning(f"[Scraper] Attempt {attempt} aborted: {e.message}")
                if final:
                    self._log_exhausted(safe_url, e)
                    raise

            except (NavigationTimeoutException, ExtractionFailedException) as e:
                last_error = e
                logger.warning(f"[Scraper] Attempt {attempt} failed: {e}")
                if final:
                    self._log_exhausted(safe_url, e)
                    raise

        # max_attempts >= 1 이므로 도달하지 않음
        raise RuntimeError("retry loop exited without a result")

    def _log_exhausted(self, safe_url: str, error: ScrapeException) -> None:
        logger.error(f"[Scraper] All {self.max_attempts} attempts failed for {safe_url}: {error}")

    async def _recover_connection(self, stale_generation: int) -> None:
        try:
            await self.engine.relaunch(stale_generation)
        except BrowserLaunchException as e:
            # 다음 시도의 acquire()가 다시 실행을 시도함
            logger.error(f"[Scraper] Browser relaunch failed: {e.message}")

    async def _attempt(
        self,
        adapter: PlatformAdapter,
        url: str,
        extract: Callable[[Page], Awaitable[T]],
    ) -> T:
        handle = await self.engine.acquire()
        context: Optional[BrowserContext] = None
        stage, stage_timeout = "open_page", self.navigation_timeout_s
        try:
            context = await open_isolated_context(handle)
            page = await context.new_page()
            await configure_page(page, self.navigation_timeout_s, self.block_resources)
            self.engine.ensure_current(handle)

            stage = "navigation"
            await page.goto(
                url,
                wait_until=adapter.wait_until,
                timeout=self.navigation_timeout_s * 1000,
            )

            stage, stage_timeout = "extraction", self.extraction_timeout_s
            result = await asyncio.wait_for(extract(page), timeout=self.extraction_timeout_s)
            self.engine.ensure_current(handle)
            return result

        except ScrapeException:
            raise
        except Exception as e:
            raise classify_error(e, handle, stage, stage_timeout) from e
        finally:
            if context is not None:
                try:
                    await context.close()
                except Exception as e:
                    logger.warning(f"[Scraper] Failed to close context: {type(e).__name__}: {e}")

    async def close(self) -> None:
        """브라우저 리소스 정리"""
        try:
            await self.engine.close()
        except Exception as e:
            logger.warning(f"[Scraper] Failed to close browser engine: {type(e).__name__}: {e}")
