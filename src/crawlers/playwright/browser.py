"""Playwright 공유 브라우저 엔진 관리.

모든 origin의 drain loop가 하나의 Chromium 프로세스를 공유합니다.
브라우저는 처음 사용할 때 띄우고, 사용 전마다 연결 상태를 확인해
끊겨 있으면 정리 후 새로 띄웁니다. (재)실행할 때마다 generation이
증가하며, 작업은 시작한 generation을 들고 다니다가 엔진이 교체된
것을 발견하면 오래된 핸들을 쓰지 않고 바로 실패합니다.
"""

from __future__ import annotations

import asyncio
import platform
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from src.core.clock import system_clock
from src.core.config import settings
from src.core.exceptions import BrowserLaunchException, StaleEngineException
from src.core.logging import logger


Launcher = Callable[[], Awaitable[tuple[Optional[Playwright], Browser]]]


def build_launch_args() -> list[str]:
    args: list[str] = [
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--disable-accelerated-2d-canvas",
        "--disable-background-networking",
        "--disable-background-timer-throttling",
        "--disable-renderer-backgrounding",
        "--disable-default-apps",
        "--disable-extensions",
        "--no-first-run",
        "--no-default-browser-check",
        "--no-zygote",
    ]

    if platform.system().lower() == "linux":
        args.extend(["--no-sandbox", "--disable-setuid-sandbox"])

    deduped: list[str] = []
    seen: set[str] = set()
    for a in args:
        if a not in seen:
            seen.add(a)
            deduped.append(a)
    return deduped


@dataclass
class EngineHandle:
    """공유 브라우저 소유 핸들"""

    browser: Browser
    generation: int
    launched_at: float

    def is_connected(self) -> bool:
        try:
            return bool(self.browser.is_connected())
        except Exception:
            return False

    async def new_context(self, **options) -> BrowserContext:
        return await self.browser.new_context(**options)


class BrowserEngine:
    """Chromium 프로세스 수명 관리 (lazy launch + relaunch)"""

    def __init__(
        self,
        headless: Optional[bool] = None,
        launch_timeout_s: Optional[float] = None,
        launcher: Optional[Launcher] = None,
    ):
        """
        Args:
            headless: headless 모드 여부
            launch_timeout_s: 브라우저 실행 제한 시간 (초)
            launcher: (playwright, browser)를 반환하는 실행 함수 (테스트 주입용)
        """
        self.headless = settings.crawler_headless if headless is None else headless
        self.launch_timeout_s = launch_timeout_s or settings.crawler_launch_timeout_s
        self._launcher = launcher or self._launch_chromium
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._handle: Optional[EngineHandle] = None
        self._generation = 0
        self.launch_count = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._handle is not None and self._handle.is_connected()

    async def acquire(self) -> EngineHandle:
        """연결된 핸들 반환 (없거나 끊겼으면 새로 실행)"""
        async with self._lock:
            if self._handle is not None:
                if self._handle.is_connected():
                    return self._handle
                logger.warning(
                    f"[Playwright] Browser generation {self._handle.generation} disconnected, relaunching"
                )
            await self._teardown()
            return await self._launch()

    async def relaunch(self, stale_generation: Optional[int] = None) -> EngineHandle:
        """연결 단절 후 브라우저 교체

        Args:
            stale_generation: 실패한 작업이 사용하던 generation.
                이미 다른 작업이 교체해 둔 경우 다시 교체하지 않습니다.
        """
        async with self._lock:
            current = self._handle
            if (
                stale_generation is not None
                and current is not None
                and current.generation != stale_generation
                and current.is_connected()
            ):
                logger.info(
                    f"[Playwright] Generation {stale_generation} already replaced by {current.generation}"
                )
                return current
            await self._teardown()
            return await self._launch()

    def ensure_current(self, handle: EngineHandle) -> None:
        """핸들이 최신 generation인지 확인

        Raises:
            StaleEngineException: 작업 도중 엔진이 교체된 경우
        """
        if handle.generation != self._generation:
            raise StaleEngineException(handle.generation, self._generation)

    async def close(self) -> None:
        async with self._lock:
            await self._teardown()
        logger.info("[Playwright] Browser engine closed")

    async def _launch(self) -> EngineHandle:
        self._generation += 1
        generation = self._generation
        logger.info(f"[Playwright] Launching browser (generation {generation})...")
        try:
            pw, browser = await asyncio.wait_for(self._launcher(), timeout=self.launch_timeout_s)
        except asyncio.TimeoutError:
            logger.error(f"[Playwright] Launch timeout after {self.launch_timeout_s}s")
            await self._teardown()
            raise BrowserLaunchException(f"timeout after {self.launch_timeout_s}s", generation)
        except Exception as e:
            logger.error(f"[Playwright] Failed to launch browser: {type(e).__name__}: {e}")
            await self._teardown()
            raise BrowserLaunchException(f"{type(e).__name__}: {e}", generation) from e

        self._playwright = pw
        self._handle = EngineHandle(browser=browser, generation=generation, launched_at=system_clock.now())
        self.launch_count += 1
        logger.info(f"[Playwright] Browser launched successfully (generation {generation})")
        return self._handle

    async def _launch_chromium(self) -> tuple[Optional[Playwright], Browser]:
        pw = await async_playwright().start()
        try:
            browser = await pw.chromium.launch(
                headless=self.headless,
                args=build_launch_args(),
                timeout=self.launch_timeout_s * 1000,
            )
        except BaseException:
            await pw.stop()
            raise
        return pw, browser

    async def _teardown(self) -> None:
        handle, pw = self._handle, self._playwright
        self._handle = None
        self._playwright = None

        if handle is not None:
            try:
                await handle.browser.close()
            except Exception as e:
                logger.warning(f"[Playwright] Error closing previous browser: {type(e).__name__}: {e}")
        if pw is not None:
            try:
                await pw.stop()
            except Exception as e:
                logger.warning(f"[Playwright] Error stopping playwright: {type(e).__name__}: {e}")
