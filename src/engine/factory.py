"""엔진 레지스트리 구성

CacheStore / OriginQueue / ScrapeExecutor / ScrapeOrchestrator를 한 번만
만들어 서로 참조로 연결합니다. 전역 싱글톤 없이 app.state 등에 보관합니다.
"""

from typing import Optional

from src.cache.store import CacheStore
from src.core.clock import Clock
from src.core.config import settings
from src.crawlers.executor import ScrapeExecutor
from src.crawlers.playwright.browser import BrowserEngine
from src.queues.origin_queue import OriginQueue

from .orchestrator import ScrapeOrchestrator


def create_orchestrator(
    cache: Optional[CacheStore] = None,
    executor: Optional[ScrapeExecutor] = None,
    clock: Optional[Clock] = None,
) -> ScrapeOrchestrator:
    """설정값으로 오케스트레이터 생성

    Args:
        cache: 사용할 캐시 저장소 (없으면 settings.redis_url로 생성, 연결은 호출자가 수행)
        executor: 사용할 실행자 (없으면 공유 BrowserEngine으로 생성)
        clock: 큐/캐시/백오프에 공통으로 사용할 시계

    Returns:
        ScrapeOrchestrator
    """
    cache = cache or CacheStore(redis_url=settings.redis_url, clock=clock)
    queue = OriginQueue(cache, min_delay_s=settings.queue_min_delay_s, clock=clock)
    executor = executor or ScrapeExecutor(
        engine=BrowserEngine(
            headless=settings.crawler_headless,
            launch_timeout_s=settings.crawler_launch_timeout_s,
        ),
        clock=clock,
    )
    return ScrapeOrchestrator(cache, queue, executor, cache_ttl_s=settings.cache_ttl_s, clock=clock)
