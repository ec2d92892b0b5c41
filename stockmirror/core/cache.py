import json
import time
from dataclasses import dataclass
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from stockmirror.core.config import get_settings


@dataclass
class CacheResult:
    hit: bool
    value: Any | None


@dataclass
class _FallbackEntry:
    value: str
    stored_at: float
    ttl_seconds: int

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


class CacheClient:
    """JSON cache backed by Redis, or by an in-process dict when Redis is unreachable.

    Both backends honour the TTL: Redis through SETEX, the fallback by storing
    the write timestamp and checking freshness on read.
    """

    def __init__(self) -> None:
        self.settings = get_settings()
        self._fallback: dict[str, _FallbackEntry] = {}
        self._redis: Redis | None = None
        if self.settings.cache_enabled:
            try:
                self._redis = Redis.from_url(self.settings.redis_url, decode_responses=True)
                self._redis.ping()
            except RedisError:
                self._redis = None

    def get_json(self, key: str) -> CacheResult:
        value: str | None = None
        try:
            if self._redis:
                value = self._redis.get(key)
            else:
                value = self._fallback_get(key)
        except RedisError:
            value = self._fallback_get(key)
        if value is None:
            return CacheResult(hit=False, value=None)
        return CacheResult(hit=True, value=json.loads(value))

    def set_json(self, key: str, payload: Any, ttl_seconds: int) -> None:
        encoded = json.dumps(payload, default=str)
        try:
            if self._redis:
                self._redis.setex(key, ttl_seconds, encoded)
            else:
                self._fallback_set(key, encoded, ttl_seconds)
        except RedisError:
            self._fallback_set(key, encoded, ttl_seconds)

    def delete(self, key: str) -> None:
        self._fallback.pop(key, None)
        try:
            if self._redis:
                self._redis.delete(key)
        except RedisError:
            pass

    def _fallback_get(self, key: str) -> str | None:
        entry = self._fallback.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(time.monotonic()):
            self._fallback.pop(key, None)
            return None
        return entry.value

    def _fallback_set(self, key: str, encoded: str, ttl_seconds: int) -> None:
        self._fallback[key] = _FallbackEntry(value=encoded, stored_at=time.monotonic(), ttl_seconds=ttl_seconds)


cache_client = CacheClient()
