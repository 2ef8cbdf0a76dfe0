"""메모리 폴백 캐시 정리 스케줄러

Redis 장애 중 쌓인 메모리 폴백 항목은 조회 시에도 지워지지만,
다시 조회되지 않는 키는 이 주기 작업이 정리합니다.
"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.cache.store import CacheStore
from src.core.config import settings
from src.core.logging import logger


JOB_ID = "cache_fallback_sweep"


class CacheSweepScheduler:
    """만료된 폴백 항목을 주기적으로 정리"""

    def __init__(
        self,
        store: CacheStore,
        interval_s: Optional[int] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.store = store
        self.interval_s = interval_s or settings.cache_sweep_interval_s
        self.scheduler = scheduler or AsyncIOScheduler()

    def run_sweep(self) -> int:
        """정리 1회 실행 (정리된 항목 수 반환)"""
        try:
            removed = self.store.sweep_fallback()
        except Exception as e:
            logger.error(f"[Scheduler] Cache sweep failed: {type(e).__name__}: {e}", exc_info=True)
            return 0
        logger.debug(
            f"[Scheduler] Cache sweep removed {removed} entries "
            f"({self.store.fallback_size} remaining)"
        )
        return removed

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_s),
            id=JOB_ID,
            name="Cache fallback sweep",
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"[Scheduler] Cache sweep job scheduled every {self.interval_s}s")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("[Scheduler] Cache sweep scheduler stopped")
