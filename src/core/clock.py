"""시간 소스 추상화.

큐 지연/캐시 만료를 테스트에서 가상 시계로 검증할 수 있도록
now()/sleep()을 주입 가능한 객체로 분리합니다.
"""

from __future__ import annotations

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float:
        """현재 시각 (epoch seconds)"""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


class SystemClock:
    """실제 시계.

    캐시 엔트리 생성 시각은 Redis에 저장되어 프로세스 재시작 후에도
    비교되므로 monotonic이 아닌 wall clock을 사용합니다.
    """

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


system_clock = SystemClock()
