"""Tiered cache - Redis(주) + 프로세스 메모리(폴백)

캐시는 순수한 최적화 계층이므로 어떤 public 메서드도 호출자에게
예외를 던지지 않습니다. Redis가 시작 시점부터 죽어 있거나 호출 도중
끊기면 동일한 만료 규칙을 가진 메모리 맵으로 조용히 전환하고,
Redis가 복구되면 (폴백 항목 이전 없이) 다음 호출부터 다시 사용합니다.

TTL 단위는 전 구간 초(seconds)이며, Redis 경계에서만 PX(ms)로 변환합니다.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from redis.asyncio import Redis

from src.cache.circuit_breaker import CircuitBreaker
from src.core.clock import Clock, system_clock
from src.core.config import settings
from src.core.exceptions import CacheBackendException, CacheSerializationException
from src.core.logging import logger


class CacheTier(str, Enum):
    """조회 결과를 제공한 캐시 계층 (provenance)"""

    PRIMARY = "primary"
    FALLBACK = "fallback"


@dataclass
class CacheEntry:
    """메모리 폴백 캐시 항목"""

    key: str
    value: Any
    created_at: float
    ttl_s: float
    tier: CacheTier = CacheTier.FALLBACK

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl_s

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def age(self, now: float) -> float:
        return max(0.0, now - self.created_at)


@dataclass
class CacheLookup:
    """캐시 조회 결과 (값 + 출처 + 나이)"""

    hit: bool
    value: Any = None
    tier: Optional[CacheTier] = None
    created_at: Optional[float] = None
    age_s: Optional[float] = None

    @classmethod
    def miss(cls) -> "CacheLookup":
        return cls(hit=False)

    @classmethod
    def from_entry(cls, entry: CacheEntry, now: float) -> "CacheLookup":
        return cls(
            hit=True,
            value=entry.value,
            tier=entry.tier,
            created_at=entry.created_at,
            age_s=entry.age(now),
        )


class CacheStore:
    """Redis + 메모리 폴백 TTL 캐시"""

    def __init__(
        self,
        redis_url: Optional[str] = None,
        client: Optional[Redis] = None,
        key_prefix: Optional[str] = None,
        default_ttl_s: Optional[float] = None,
        clock: Optional[Clock] = None,
        breaker: Optional[CircuitBreaker] = None,
    ):
        """
        Args:
            redis_url: Redis 접속 URL (빈 문자열이면 메모리 전용)
            client: 이미 생성된 Redis 클라이언트 (테스트 주입용)
            key_prefix: Redis 키 네임스페이스
            default_ttl_s: set() 호출 시 ttl 미지정이면 사용할 TTL (초)
            clock: 시간 소스
            breaker: 백엔드 회로차단기
        """
        self._redis_url = settings.redis_url if redis_url is None else redis_url
        self._client = client
        self._prefix = settings.cache_key_prefix if key_prefix is None else key_prefix
        self._default_ttl_s = default_ttl_s or settings.cache_ttl_s
        self._clock = clock or system_clock
        self._breaker = breaker or CircuitBreaker(
            fail_threshold=1,
            open_duration_sec=settings.cache_backend_retry_s,
            clock=self._clock,
        )
        self._fallback: dict[str, CacheEntry] = {}
        self._connected = False
        # Redis 삭제에 실패한 키 → 삭제 시각. 그 이전에 만들어진 Redis 값은 미스로 처리
        self._tombstones: dict[str, float] = {}
        self._cleared_at = 0.0
        self._max_ttl_s = self._default_ttl_s

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Redis 연결 시도. 실패해도 예외 없이 메모리 폴백으로 동작."""
        if self._client is None:
            if not self._redis_url:
                logger.info("[Cache] No redis_url configured, using in-memory cache only")
                return False
            try:
                self._client = Redis.from_url(
                    self._redis_url,
                    decode_responses=True,
                    socket_connect_timeout=settings.cache_connect_timeout_s,
                    socket_timeout=settings.cache_socket_timeout_s,
                )
            except Exception as e:
                logger.error(f"[Cache] Invalid redis configuration: {type(e).__name__}: {e}")
                self._client = None
                return False

        try:
            await self._client.ping()
            self._on_backend_ok()
            logger.info("[Cache] Redis connection established")
            return True
        except Exception as e:
            self._on_backend_error(CacheBackendException("ping", f"{type(e).__name__}: {e}"))
            logger.warning("[Cache] Falling back to in-memory cache")
            return False

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
            logger.info("[Cache] Redis disconnected")
        except Exception as e:
            logger.warning(f"[Cache] Redis disconnect error: {type(e).__name__}: {e}")
        finally:
            self._client = None
            self._connected = False

    async def health_check(self) -> bool:
        """Redis 연결 상태 확인"""
        if self._client is None:
            return False
        try:
            await self._client.ping()
            self._on_backend_ok()
            return True
        except Exception as e:
            self._on_backend_error(CacheBackendException("ping", f"{type(e).__name__}: {e}"))
            return False

    # ------------------------------------------------------------------
    # public operations (never raise)
    # ------------------------------------------------------------------

    async def set(self, key: str, value: Any, ttl_s: Optional[float] = None) -> bool:
        """값 저장

        Args:
            key: 캐시 키
            value: JSON 직렬화 가능한 값
            ttl_s: TTL (초)

        Returns:
            저장 여부 (ttl이 0 이하이면 저장하지 않음)
        """
        ttl = self._default_ttl_s if ttl_s is None else ttl_s
        if ttl <= 0:
            logger.warning(f"[Cache] Refusing to cache {key} with non-positive TTL: {ttl}")
            return False
        self._max_ttl_s = max(self._max_ttl_s, ttl)

        now = self._clock.now()
        if self._backend_usable():
            try:
                payload = self._serialize(value, now, ttl)
            except CacheSerializationException as e:
                logger.error(f"[Cache] {e}")
            else:
                try:
                    await self._client.set(self._full_key(key), payload, px=self._ttl_ms(ttl))
                    self._on_backend_ok()
                    # 복구 후 같은 키의 예전 폴백 값이 다시 읽히지 않도록 제거
                    self._fallback.pop(key, None)
                    self._tombstones.pop(key, None)
                    logger.info(f"[Cache] Redis: cached {key} (TTL: {ttl}s)")
                    return True
                except Exception as e:
                    self._on_backend_error(CacheBackendException("set", f"{type(e).__name__}: {e}"))

        self._fallback[key] = CacheEntry(key=key, value=value, created_at=now, ttl_s=ttl)
        self._breaker.metrics.record_fallback_write()
        logger.info(f"[Cache] Memory: cached {key} (TTL: {ttl}s)")
        return True

    async def get(self, key: str) -> CacheLookup:
        """값 조회. Redis 우선, 미스/장애 시 메모리 폴백."""
        now = self._clock.now()
        if self._backend_usable():
            try:
                raw = await self._client.get(self._full_key(key))
                self._on_backend_ok()
            except Exception as e:
                self._on_backend_error(CacheBackendException("get", f"{type(e).__name__}: {e}"))
            else:
                if raw is not None:
                    lookup = self._decode(key, raw, now)
                    if lookup.hit:
                        logger.info(f"[Cache] Redis: cache hit for {key}")
                        return lookup

        lookup = self._get_fallback(key, now)
        if lookup.hit:
            self._breaker.metrics.record_fallback_read()
            logger.info(f"[Cache] Memory: cache hit for {key}")
        return lookup

    async def exists(self, key: str) -> bool:
        """get()과 같은 만료/손상 규칙으로 존재 여부 확인"""
        now = self._clock.now()
        if self._backend_usable():
            try:
                raw = await self._client.get(self._full_key(key))
                self._on_backend_ok()
            except Exception as e:
                self._on_backend_error(CacheBackendException("exists", f"{type(e).__name__}: {e}"))
            else:
                if raw is not None and self._decode(key, raw, now).hit:
                    return True

        return self._get_fallback(key, now).hit

    async def delete(self, key: str) -> bool:
        """두 계층 모두에서 키 삭제

        관리 작업이므로 회로가 열려 있어도 Redis 삭제를 시도합니다.
        그래도 실패하면 삭제 시각을 기록해 이전에 저장된 Redis 값을
        만료될 때까지 미스로 처리합니다.
        """
        now = self._clock.now()
        removed = self._fallback.pop(key, None) is not None
        if self._client is not None:
            try:
                removed = bool(await self._client.delete(self._full_key(key))) or removed
                self._on_backend_ok()
                self._tombstones.pop(key, None)
            except Exception as e:
                self._on_backend_error(CacheBackendException("delete", f"{type(e).__name__}: {e}"))
                self._tombstones[key] = now
                logger.warning(f"[Cache] Redis delete failed, masking {key} until it expires")
        logger.info(f"[Cache] Deleted {key}")
        return removed

    async def clear(self, key: Optional[str] = None) -> bool:
        """특정 키 또는 (prefix 범위의) 전체 캐시 삭제"""
        if key:
            await self.delete(key)
            return True

        now = self._clock.now()
        self._fallback.clear()
        if self._client is not None:
            try:
                batch: list[str] = []
                async for full_key in self._client.scan_iter(match=f"{self._prefix}*", count=500):
                    batch.append(full_key)
                    if len(batch) >= 500:
                        await self._client.delete(*batch)
                        batch.clear()
                if batch:
                    await self._client.delete(*batch)
                self._on_backend_ok()
                self._tombstones.clear()
                self._cleared_at = 0.0
            except Exception as e:
                self._on_backend_error(CacheBackendException("clear", f"{type(e).__name__}: {e}"))
                self._cleared_at = now
                logger.warning("[Cache] Redis clear failed, masking entries written before now")
        logger.info("[Cache] Cleared all cache")
        return True

    async def get_many(self, keys: Iterable[str]) -> dict[str, CacheLookup]:
        """여러 키 조회 (히트만 반환)"""
        keys = list(keys)
        now = self._clock.now()
        results: dict[str, CacheLookup] = {}
        if keys and self._backend_usable():
            try:
                raws = await self._client.mget([self._full_key(k) for k in keys])
                self._on_backend_ok()
            except Exception as e:
                self._on_backend_error(CacheBackendException("mget", f"{type(e).__name__}: {e}"))
            else:
                for key, raw in zip(keys, raws):
                    if raw is None:
                        continue
                    lookup = self._decode(key, raw, now)
                    if lookup.hit:
                        results[key] = lookup

        for key in keys:
            if key in results:
                continue
            lookup = self._get_fallback(key, now)
            if lookup.hit:
                results[key] = lookup
        return results

    async def set_many(self, items: dict[str, Any], ttl_s: Optional[float] = None) -> bool:
        """여러 키 저장 (Redis pipeline)"""
        ttl = self._default_ttl_s if ttl_s is None else ttl_s
        if ttl <= 0 or not items:
            return False
        self._max_ttl_s = max(self._max_ttl_s, ttl)

        now = self._clock.now()
        if self._backend_usable():
            try:
                payloads = {k: self._serialize(v, now, ttl) for k, v in items.items()}
            except CacheSerializationException as e:
                logger.error(f"[Cache] {e}")
            else:
                try:
                    async with self._client.pipeline(transaction=False) as pipe:
                        for key, payload in payloads.items():
                            pipe.set(self._full_key(key), payload, px=self._ttl_ms(ttl))
                        await pipe.execute()
                    self._on_backend_ok()
                    for key in items:
                        self._fallback.pop(key, None)
                        self._tombstones.pop(key, None)
                    logger.info(f"[Cache] Redis: cached {len(items)} keys")
                    return True
                except Exception as e:
                    self._on_backend_error(CacheBackendException("mset", f"{type(e).__name__}: {e}"))

        for key, value in items.items():
            self._fallback[key] = CacheEntry(key=key, value=value, created_at=now, ttl_s=ttl)
            self._breaker.metrics.record_fallback_write()
        logger.info(f"[Cache] Memory: cached {len(items)} keys")
        return True

    def sweep_fallback(self) -> int:
        """만료된 메모리 폴백 항목 정리 (주기 작업에서 호출)"""
        now = self._clock.now()
        expired = [k for k, entry in self._fallback.items() if entry.is_expired(now)]
        for key in expired:
            del self._fallback[key]
        if expired:
            logger.info(f"[Cache] Memory: cleaned {len(expired)} expired entries")

        # 마스킹 대상 Redis 값이 모두 만료됐으면 삭제 기록도 정리
        horizon = now - self._max_ttl_s
        for key in [k for k, deleted_at in self._tombstones.items() if deleted_at < horizon]:
            del self._tombstones[key]
        if self._cleared_at and self._cleared_at < horizon:
            self._cleared_at = 0.0
        return len(expired)

    async def stats(self) -> dict[str, Any]:
        """캐시 통계 (운영 상태 확인용)"""
        stats: dict[str, Any] = {
            "connected": self.is_connected,
            "source": "redis" if self.is_connected else "memory",
            "fallback_size": self.fallback_size,
            "fallback_keys": sorted(self._fallback.keys())[:50],
            "metrics": self._breaker.metrics.as_dict(),
        }
        if self._backend_usable():
            try:
                memory = await self._client.info("memory")
                stats["backend"] = {
                    "used_memory_human": memory.get("used_memory_human"),
                    "keys": await self._client.dbsize(),
                }
                self._on_backend_ok()
            except Exception as e:
                self._on_backend_error(CacheBackendException("info", f"{type(e).__name__}: {e}"))
                stats["connected"] = False
                stats["source"] = "memory"
        return stats

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._connected and not self._breaker.is_open()

    @property
    def fallback_size(self) -> int:
        return len(self._fallback)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _backend_usable(self) -> bool:
        return self._client is not None and not self._breaker.is_open()

    def _on_backend_ok(self) -> None:
        self._connected = True
        self._breaker.record_success()

    def _on_backend_error(self, error: CacheBackendException) -> None:
        self._connected = False
        self._breaker.record_failure()
        logger.error(f"[Cache] {error}")

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _ttl_ms(ttl_s: float) -> int:
        # Redis 경계에서만 ms로 변환
        return max(1, int(round(ttl_s * 1000)))

    @staticmethod
    def _serialize(value: Any, now: float, ttl_s: float) -> str:
        try:
            return json.dumps({"data": value, "created_at": now, "ttl": ttl_s}, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise CacheSerializationException("serialize", str(e))

    def _decode(self, key: str, raw: str, now: float) -> CacheLookup:
        try:
            envelope = json.loads(raw)
            created_at = float(envelope["created_at"])
            ttl_s = float(envelope["ttl"])
            data = envelope["data"]
        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"[Cache] {CacheSerializationException('deserialize', f'{key}: {e}')}")
            return CacheLookup.miss()

        if now > created_at + ttl_s:
            return CacheLookup.miss()
        if created_at <= self._cleared_at or created_at <= self._tombstones.get(key, 0.0):
            # 삭제 요청 이전에 저장된 값 (Redis 삭제 실패로 남아 있음)
            return CacheLookup.miss()
        return CacheLookup(
            hit=True,
            value=data,
            tier=CacheTier.PRIMARY,
            created_at=created_at,
            age_s=max(0.0, now - created_at),
        )

    def _get_fallback(self, key: str, now: float) -> CacheLookup:
        entry = self._fallback.get(key)
        if entry is None:
            return CacheLookup.miss()
        if entry.is_expired(now):
            # lazy pruning
            del self._fallback[key]
            return CacheLookup.miss()
        return CacheLookup.from_entry(entry, now)
