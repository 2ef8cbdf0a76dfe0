"""폴백 캐시 정리 스케줄러 유닛 테스트"""
from unittest.mock import MagicMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from src.cache.store import CacheStore
from src.scheduler.cache_sweep import JOB_ID, CacheSweepScheduler


@pytest.mark.asyncio
async def test_run_sweep_removes_expired_entries(clock):
    store = CacheStore(redis_url="", clock=clock)
    await store.set("a", 1, 5)
    await store.set("b", 2, 500)
    clock.tick(10)

    sweeper = CacheSweepScheduler(store, interval_s=600, scheduler=MagicMock())
    assert sweeper.run_sweep() == 1
    assert store.fallback_size == 1


def test_start_registers_interval_job():
    scheduler = MagicMock()
    scheduler.running = False
    sweeper = CacheSweepScheduler(MagicMock(), interval_s=600, scheduler=scheduler)

    sweeper.start()

    _, kwargs = scheduler.add_job.call_args
    assert kwargs["id"] == JOB_ID
    assert isinstance(kwargs["trigger"], IntervalTrigger)
    assert kwargs["trigger"].interval.total_seconds() == 600
    scheduler.start.assert_called_once()


def test_sweep_failure_is_logged_not_raised():
    store = MagicMock()
    store.sweep_fallback.side_effect = RuntimeError("boom")
    sweeper = CacheSweepScheduler(store, interval_s=600, scheduler=MagicMock())

    assert sweeper.run_sweep() == 0


@pytest.mark.asyncio
async def test_asyncio_scheduler_lifecycle(clock):
    sweeper = CacheSweepScheduler(CacheStore(redis_url="", clock=clock), interval_s=600)

    sweeper.start()
    assert sweeper.scheduler.running is True
    assert sweeper.scheduler.get_job(JOB_ID) is not None

    sweeper.shutdown()
    assert sweeper.scheduler.running is False
