"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (가상 시계, Playwright 브라우저/페이지)

금지:
- 실제 브라우저 실행
- 실제 Redis 접속
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import os
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


# ============================================================================
# 가상 시계
# ============================================================================

class FakeClock:
    """테스트용 가상 시계

    - auto_advance=False: sleep()은 advance()/run_all()로 시간을 진행할 때까지 대기
    - auto_advance=True: sleep()은 즉시 시간을 진행하고 반환 (백오프 기록용)
    """

    def __init__(self, start: float = 1_700_000_000.0, auto_advance: bool = False):
        self._now = start
        self.start = start
        self.auto_advance = auto_advance
        self.sleeps: list[float] = []
        self._sleepers: list[tuple[float, int, asyncio.Future]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def elapsed(self) -> float:
        return self._now - self.start

    def tick(self, seconds: float) -> None:
        """대기 중인 sleep을 깨우지 않고 시간만 이동 (동기 코드용)"""
        self._now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.auto_advance:
            self._now += max(0.0, seconds)
            await asyncio.sleep(0)
            return
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._seq), future))
        await future

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, _, f in self._sleepers if not f.done())

    async def settle(self) -> None:
        """대기 중인 태스크가 더 진행할 수 없을 때까지 이벤트 루프 양보"""
        for _ in range(50):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """seconds만큼 시간을 진행하며 만료된 sleep을 순서대로 깨움"""
        target = self._now + seconds
        await self.settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await self.settle()
        self._now = target
        await self.settle()

    async def run_all(self, max_steps: int = 1000) -> None:
        """남은 sleep이 없을 때까지 시간을 진행"""
        await self.settle()
        steps = 0
        while self._sleepers and steps < max_steps:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await self.settle()
            steps += 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def instant_clock() -> FakeClock:
    return FakeClock(auto_advance=True)


# ============================================================================
# Playwright Fake
# ============================================================================

PageBehavior = Callable[["FakePage", str], Any]


class FakePage:
    """Playwright Page 대역 (goto/evaluate 동작을 주입)"""

    def __init__(self, context: "FakeContext"):
        self.context = context
        self.default_timeout_ms: Optional[float] = None
        self.routes: list[tuple[str, Any]] = []
        self.visited: list[tuple[str, str, float]] = []

    def set_default_timeout(self, timeout_ms: float) -> None:
        self.default_timeout_ms = timeout_ms

    async def route(self, pattern: str, handler: Any) -> None:
        self.routes.append((pattern, handler))

    async def goto(self, url: str, wait_until: str = "load", timeout: float = 30000) -> None:
        self.visited.append((url, wait_until, timeout))
        launcher = self.context.browser.launcher
        launcher.goto_calls += 1
        if launcher.on_goto is not None:
            result = launcher.on_goto(self, url)
            if asyncio.iscoroutine(result):
                await result

    async def evaluate(self, script: str, payload: Any = None) -> Any:
        launcher = self.context.browser.launcher
        launcher.evaluate_calls += 1
        if launcher.on_evaluate is not None:
            result = launcher.on_evaluate(self, payload)
            if asyncio.iscoroutine(result):
                result = await result
            return result
        return dict(launcher.raw_fields)

    async def wait_for_selector(self, selector: str, timeout: float = 0) -> None:
        return None

    async def wait_for_timeout(self, timeout_ms: float) -> None:
        return None

    async def click(self, selector: str, timeout: float = 0) -> None:
        return None


class FakeContext:
    def __init__(self, browser: "FakeBrowser", options: dict[str, Any]):
        self.browser = browser
        self.options = options
        self.pages: list[FakePage] = []
        self.closed = False

    async def new_page(self) -> FakePage:
        page = FakePage(self)
        self.pages.append(page)
        return page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Playwright Browser 대역"""

    def __init__(self, launcher: "FakeLauncher"):
        self.launcher = launcher
        self.connected = True
        self.closed = False
        self.contexts: list[FakeContext] = []

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **options: Any) -> FakeContext:
        context = FakeContext(self, options)
        self.contexts.append(context)
        self.launcher.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakeLauncher:
    """BrowserEngine(launcher=...)에 주입하는 실행 함수"""

    def __init__(self):
        self.browsers: list[FakeBrowser] = []
        self.contexts: list[FakeContext] = []
        self.on_goto: Optional[PageBehavior] = None
        self.on_evaluate: Optional[PageBehavior] = None
        self.raw_fields: dict[str, Any] = {}
        self.goto_calls = 0
        self.evaluate_calls = 0
        self.fail_launches = 0

    @property
    def launches(self) -> int:
        return len(self.browsers)

    @property
    def current(self) -> FakeBrowser:
        return self.browsers[-1]

    async def __call__(self) -> tuple[None, FakeBrowser]:
        if self.fail_launches > 0:
            self.fail_launches -= 1
            raise RuntimeError("Executable doesn't exist")
        browser = FakeBrowser(self)
        self.browsers.append(browser)
        return None, browser


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()

