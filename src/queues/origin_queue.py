"""Origin Queue - 도메인(origin)별 직렬 실행 큐

같은 origin에 대한 작업은 하나씩, 등록 순서대로, 최소 간격(min_delay_s)을
두고 실행됩니다. origin마다 독립된 drain task가 돌기 때문에 서로 다른
origin은 병렬로 처리됩니다.

- 캐시 히트는 큐를 거치지 않고 즉시 반환 (rate limit 대기 없음)
- 이 계층은 재시도하지 않음 (재시도 정책은 ScrapeExecutor 담당)
- 작업별 타임아웃 없음: 끝나지 않는 작업은 해당 origin 큐를 멈추게 함
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Optional

from src.cache.store import CacheStore, CacheTier
from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.exceptions import QueueShutdownException
from src.core.logging import logger


Operation = Callable[[], Awaitable[Any]]


@dataclass
class QueueResult:
    """큐 처리 결과

    Attributes:
        value: 작업 결과 (또는 캐시된 값)
        from_cache: 캐시 히트 여부
        queue_wait_ms: 등록부터 실행 시작까지 대기 시간 (캐시 히트면 0)
        cached_at: 캐시 저장 시각 (캐시 히트일 때만)
        cache_tier: 캐시 계층 (캐시 히트일 때만)
    """

    value: Any
    from_cache: bool = False
    queue_wait_ms: float = 0.0
    cached_at: Optional[float] = None
    cache_tier: Optional[CacheTier] = None


@dataclass
class QueuedOperation:
    origin: str
    operation: Operation
    future: "asyncio.Future[QueueResult]"
    enqueued_at: float
    cache_key: Optional[str] = None
    cache_ttl_s: Optional[float] = None


@dataclass
class OriginQueueState:
    """origin 하나의 대기열 상태.

    active는 drain task가 이 origin을 처리 중일 때만 True입니다.
    """

    origin: str
    pending: Deque[QueuedOperation] = field(default_factory=deque)
    active: bool = False
    task: Optional["asyncio.Task[None]"] = None
    in_flight: Optional[QueuedOperation] = None
    last_finished_at: Optional[float] = None
    processed: int = 0


@dataclass
class OriginStatus:
    origin: str
    queue_length: int
    is_active: bool
    estimated_wait_ms: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "origin": self.origin,
            "queue_length": self.queue_length,
            "is_active": self.is_active,
            "estimated_wait_ms": self.estimated_wait_ms,
        }


def _mark_retrieved(future: "asyncio.Future[QueueResult]") -> None:
    # 호출자가 취소된 뒤 실패한 작업은 결과를 읽는 쪽이 없음
    if not future.cancelled():
        future.exception()


class OriginQueue:
    """origin별 FIFO 큐 레지스트리.

    애플리케이션 시작 시 한 번 생성해 필요한 곳에 참조로 전달합니다.

    Usage:
        queue = OriginQueue(cache_store, min_delay_s=10.0)
        result = await queue.enqueue(
            "www.amazon.in",
            lambda: executor.execute(adapter, url),
            cache_key="scrape:...",
            cache_ttl_s=3600,
        )
    """

    def __init__(
        self,
        cache: CacheStore,
        min_delay_s: Optional[float] = None,
        clock: Optional[Clock] = None,
    ):
        if cache is None:
            raise ValueError("cache must not be None")

        self.cache = cache
        self.min_delay_s = settings.queue_min_delay_s if min_delay_s is None else min_delay_s
        if self.min_delay_s < 0:
            raise ValueError(f"min_delay_s must be >= 0: {self.min_delay_s}")
        self._clock = clock or system_clock
        self._states: dict[str, OriginQueueState] = {}
        self._closed = False

    async def enqueue(
        self,
        origin: str,
        operation: Operation,
        cache_key: Optional[str] = None,
        cache_ttl_s: Optional[float] = None,
    ) -> QueueResult:
        """작업 등록 또는 캐시 결과 반환

        Args:
            origin: 직렬화 단위 (hostname)
            operation: 인자 없는 코루틴 팩토리
            cache_key: 결과 캐시 키 (선택)
            cache_ttl_s: 결과 캐시 TTL (초)

        Returns:
            QueueResult: 작업 결과 또는 캐시 값

        Raises:
            Exception: operation이 던진 예외를 그대로 전달
            QueueShutdownException: 실행 전에 큐가 종료된 경우
        """
        if not origin:
            raise ValueError("origin must not be empty")

        if cache_key:
            cached = await self.cache.get(cache_key)
            if cached.hit:
                logger.info(f"[Queue] Cache hit for {cache_key} ({cached.tier.value})")
                return QueueResult(
                    value=cached.value,
                    from_cache=True,
                    cached_at=cached.created_at,
                    cache_tier=cached.tier,
                )

        future = self.submit(origin, operation, cache_key=cache_key, cache_ttl_s=cache_ttl_s)
        # 호출자가 취소돼도 작업은 끝까지 실행되고 결과는 캐시에 남는다
        return await asyncio.shield(future)

    def submit(
        self,
        origin: str,
        operation: Operation,
        cache_key: Optional[str] = None,
        cache_ttl_s: Optional[float] = None,
    ) -> "asyncio.Future[QueueResult]":
        """캐시 확인 없이 대기열에 추가하고 결과 future 반환"""
        if self._closed:
            raise QueueShutdownException(origin)

        loop = asyncio.get_running_loop()
        state = self._states.get(origin)
        if state is None:
            state = self._states[origin] = OriginQueueState(origin=origin)

        item = QueuedOperation(
            origin=origin,
            operation=operation,
            future=loop.create_future(),
            enqueued_at=self._clock.now(),
            cache_key=cache_key,
            cache_ttl_s=cache_ttl_s,
        )
        item.future.add_done_callback(_mark_retrieved)
        state.pending.append(item)
        logger.info(f"[Queue] Queuing request for {origin} (position: {len(state.pending)})")

        if not state.active:
            state.active = True
            state.task = loop.create_task(self._drain(state), name=f"origin-queue:{origin}")
        return item.future

    def status(self) -> list[OriginStatus]:
        """origin별 대기열 상태"""
        return [self.status_for(origin) for origin in self._states]

    def status_for(self, origin: str) -> OriginStatus:
        state = self._states.get(origin)
        length = len(state.pending) if state else 0
        return OriginStatus(
            origin=origin,
            queue_length=length,
            is_active=bool(state and state.active),
            estimated_wait_ms=length * self.min_delay_s * 1000,
        )

    def is_active(self, origin: str) -> bool:
        state = self._states.get(origin)
        return bool(state and state.active)

    async def shutdown(self) -> None:
        """drain task 취소 및 대기 중인 작업 실패 처리"""
        self._closed = True
        tasks = []
        for state in self._states.values():
            abandoned = list(state.pending)
            if state.in_flight is not None:
                abandoned.append(state.in_flight)
            state.pending.clear()
            for item in abandoned:
                if not item.future.done():
                    item.future.set_exception(QueueShutdownException(state.origin))
            if state.task is not None and not state.task.done():
                state.task.cancel()
                tasks.append(state.task)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for state in self._states.values():
            # 시작 전에 취소된 drain task는 finally를 실행하지 않음
            state.active = False
            state.task = None
            state.in_flight = None
        logger.info(f"[Queue] Shut down ({len(tasks)} drain tasks cancelled)")

    async def _drain(self, state: OriginQueueState) -> None:
        """origin 하나를 비울 때까지 처리하는 단일 consumer"""
        try:
            await self._wait_for_spacing(state)
            while state.pending:
                item = state.pending.popleft()
                await self._run_item(state, item)
                if state.pending:
                    logger.info(
                        f"[Queue] Waiting {self.min_delay_s}s before next request to {state.origin}..."
                    )
                    await self._clock.sleep(self.min_delay_s)
            logger.info(f"[Queue] Queue for {state.origin} completed")
        except Exception as e:
            # 작업 자체가 아닌 큐 내부 처리(대기 등)에서 실패한 경우
            logger.error(
                f"[Queue] Drain loop for {state.origin} aborted: {type(e).__name__}: {e}",
                exc_info=True,
            )
            stranded = list(state.pending)
            if state.in_flight is not None:
                stranded.append(state.in_flight)
            state.pending.clear()
            for item in stranded:
                if not item.future.done():
                    item.future.set_exception(e)
        finally:
            state.active = False
            state.task = None
            state.in_flight = None

    async def _wait_for_spacing(self, state: OriginQueueState) -> None:
        # 큐가 비었다가 곧바로 다시 채워진 경우에도 최소 간격 유지
        if state.last_finished_at is None or self.min_delay_s <= 0:
            return
        remaining = state.last_finished_at + self.min_delay_s - self._clock.now()
        if remaining > 0:
            logger.info(f"[Queue] Waiting {remaining:.2f}s to respect spacing for {state.origin}")
            await self._clock.sleep(remaining)

    async def _run_item(self, state: OriginQueueState, item: QueuedOperation) -> None:
        started_at = self._clock.now()
        wait_ms = max(0.0, (started_at - item.enqueued_at) * 1000)
        state.in_flight = item
        logger.info(
            f"[Queue] Processing request for {state.origin} ({len(state.pending)} remaining in queue)"
        )
        try:
            value = await item.operation()
        except Exception as e:
            logger.error(f"[Queue] Request failed for {state.origin}: {type(e).__name__}: {e}")
            if not item.future.done():
                item.future.set_exception(e)
            else:
                logger.warning(f"[Queue] Dropping failure for abandoned request on {state.origin}")
        else:
            if item.cache_key:
                await self.cache.set(item.cache_key, value, item.cache_ttl_s)
            if not item.future.done():
                item.future.set_result(
                    QueueResult(value=value, from_cache=False, queue_wait_ms=wait_ms)
                )
        finally:
            state.in_flight = None
            state.processed += 1
            state.last_finished_at = self._clock.now()
