"""Circuit Breaker + Metrics tracking for the cache backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from src.core.clock import Clock, system_clock
from src.core.logging import logger


@dataclass
class BackendMetrics:
    """캐시 백엔드 호출 메트릭."""

    backend_hits: int = 0
    backend_failures: int = 0
    fallback_reads: int = 0
    fallback_writes: int = 0

    def record_backend_hit(self) -> None:
        self.backend_hits += 1

    def record_backend_failure(self) -> None:
        self.backend_failures += 1

    def record_fallback_read(self) -> None:
        self.fallback_reads += 1

    def record_fallback_write(self) -> None:
        self.fallback_writes += 1

    @property
    def backend_success_rate(self) -> float:
        """백엔드 성공률 (0.0~1.0)."""
        total = self.backend_hits + self.backend_failures
        return self.backend_hits / total if total > 0 else 0.0

    def as_dict(self) -> dict:
        return {
            "backend_hits": self.backend_hits,
            "backend_failures": self.backend_failures,
            "fallback_reads": self.fallback_reads,
            "fallback_writes": self.fallback_writes,
            "backend_success_rate": round(self.backend_success_rate, 4),
        }

    def __repr__(self) -> str:
        return (
            f"Metrics(backend: {self.backend_hits}H/{self.backend_failures}F={self.backend_success_rate:.1%}, "
            f"fallback: {self.fallback_reads}R/{self.fallback_writes}W)"
        )


class CircuitBreaker:
    """캐시 백엔드 Circuit Breaker.

    - 연속 실패 시 회로 개방 (백엔드 호출 생략, 메모리 폴백 사용)
    - 개방 후 일정 시간 후 자동 복구 (다음 호출이 백엔드를 다시 시도)
    - 성공 시 즉시 회로 닫기
    """

    def __init__(
        self,
        fail_threshold: int = 1,
        open_duration_sec: float = 30.0,
        clock: Optional[Clock] = None,
    ) -> None:
        """초기화.

        Args:
            fail_threshold: 회로 개방 임계값 (연속 실패 횟수)
            open_duration_sec: 개방 상태 유지 시간 (초)
            clock: 시간 소스 (테스트용 주입)
        """
        self.fail_threshold = fail_threshold
        self.open_duration_sec = open_duration_sec
        self._clock = clock or system_clock

        self._fail_count = 0
        self._open_until: float = 0.0
        self.metrics = BackendMetrics()

    def record_success(self) -> None:
        """성공 기록 → 회로 닫기."""
        if self._open_until > 0.0 or self._fail_count:
            logger.info("[CIRCUIT_BREAKER] Cache backend reachable again, CLOSED")
        self._fail_count = 0
        self._open_until = 0.0
        self.metrics.record_backend_hit()

    def record_failure(self) -> None:
        """실패 기록 → 임계값 도달 시 회로 개방."""
        self._fail_count += 1
        self.metrics.record_backend_failure()

        if self._fail_count >= self.fail_threshold:
            self._open_until = self._clock.now() + self.open_duration_sec
            logger.warning(
                f"[CIRCUIT_BREAKER] OPEN (fail_count={self._fail_count} >= {self.fail_threshold}). "
                f"Cache backend skipped for {self.open_duration_sec}s"
            )

    def is_open(self) -> bool:
        """회로가 개방되었는가?"""
        if self._open_until <= 0.0:
            return False

        if self._clock.now() >= self._open_until:
            # half-open: 다음 호출에서 백엔드 재시도
            self._open_until = 0.0
            logger.info("[CIRCUIT_BREAKER] HALF-OPEN (probing cache backend)")
            return False

        return True

    def get_remaining_open_time(self) -> float:
        """회로 개방 남은 시간 (초)."""
        if self._open_until <= 0.0:
            return 0.0
        return max(0.0, self._open_until - self._clock.now())

    def __repr__(self) -> str:
        status = "OPEN" if self.is_open() else "CLOSED"
        open_time = self.get_remaining_open_time()
        return f"CircuitBreaker({status}, fail_count={self._fail_count}/{self.fail_threshold}, open_time={open_time:.1f}s)"
