"""BrowserEngine 유닛 테스트 (Fake launcher)"""
import asyncio

import pytest

from src.core.exceptions import BrowserLaunchException, StaleEngineException
from src.crawlers.playwright import BrowserEngine, build_launch_args, configure_page


@pytest.fixture
def engine(launcher) -> BrowserEngine:
    return BrowserEngine(headless=True, launch_timeout_s=5, launcher=launcher)


@pytest.mark.asyncio
async def test_lazy_launch_and_reuse(engine, launcher):
    assert launcher.launches == 0

    first = await engine.acquire()
    second = await engine.acquire()

    assert first is second
    assert first.generation == 1
    assert launcher.launches == 1
    assert engine.is_running is True


@pytest.mark.asyncio
async def test_disconnected_browser_is_replaced(engine, launcher):
    handle = await engine.acquire()
    launcher.current.connected = False

    fresh = await engine.acquire()

    assert fresh.generation == 2
    assert fresh is not handle
    assert launcher.launches == 2
    assert launcher.browsers[0].closed is True


@pytest.mark.asyncio
async def test_relaunch_skips_when_already_replaced(engine, launcher):
    """다른 작업이 이미 교체한 경우 다시 교체하지 않음"""
    old = await engine.acquire()
    await engine.relaunch(stale_generation=old.generation)
    assert engine.generation == 2

    current = await engine.relaunch(stale_generation=old.generation)

    assert current.generation == 2
    assert launcher.launches == 2


@pytest.mark.asyncio
async def test_ensure_current_detects_stale_handle(engine):
    old = await engine.acquire()
    engine.ensure_current(old)

    await engine.relaunch()

    with pytest.raises(StaleEngineException) as exc_info:
        engine.ensure_current(old)
    assert exc_info.value.started_generation == 1
    assert exc_info.value.current_generation == 2


@pytest.mark.asyncio
async def test_launch_failure_raises_connection_level_error(engine, launcher):
    launcher.fail_launches = 1

    with pytest.raises(BrowserLaunchException) as exc_info:
        await engine.acquire()
    assert exc_info.value.error_code == "BROWSER_LAUNCH_ERROR"
    assert engine.is_running is False

    handle = await engine.acquire()
    assert handle.generation == 2


@pytest.mark.asyncio
async def test_launch_timeout():
    async def hanging_launcher():
        await asyncio.sleep(10)

    engine = BrowserEngine(launch_timeout_s=0.01, launcher=hanging_launcher)

    with pytest.raises(BrowserLaunchException):
        await engine.acquire()


@pytest.mark.asyncio
async def test_close(engine, launcher):
    await engine.acquire()
    await engine.close()

    assert launcher.current.closed is True
    assert engine.is_running is False


def test_launch_args_are_unique():
    args = build_launch_args()
    assert "--disable-dev-shm-usage" in args
    assert len(args) == len(set(args))


@pytest.mark.asyncio
async def test_configure_page_blocks_resources(launcher):
    _, browser = await launcher()
    context = await browser.new_context()
    page = await context.new_page()

    await configure_page(page, timeout_s=30, block_resources=True)

    assert page.default_timeout_ms == 30_000
    assert [pattern for pattern, _ in page.routes] == ["**/*"]


@pytest.mark.asyncio
async def test_configure_page_without_blocking(launcher):
    _, browser = await launcher()
    context = await browser.new_context()
    page = await context.new_page()

    await configure_page(page, timeout_s=10, block_resources=False)

    assert page.routes == []
