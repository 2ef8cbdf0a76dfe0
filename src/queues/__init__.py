"""Per-origin rate-limited queues - export only."""

from .origin_queue import (
    OriginQueue,
    OriginQueueState,
    OriginStatus,
    QueuedOperation,
    QueueResult,
)

__all__ = [
    "OriginQueue",
    "OriginQueueState",
    "OriginStatus",
    "QueuedOperation",
    "QueueResult",
]
