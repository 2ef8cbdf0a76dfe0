"""Tiered cache (Redis + in-memory fallback) - export only."""

from .circuit_breaker import BackendMetrics, CircuitBreaker
from .store import CacheEntry, CacheLookup, CacheStore, CacheTier

__all__ = [
    "BackendMetrics",
    "CircuitBreaker",
    "CacheEntry",
    "CacheLookup",
    "CacheStore",
    "CacheTier",
]
