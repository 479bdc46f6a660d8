"""Redis-backed cache for read-mostly slot listings.

Every mutating path that can change what a provider's calendar looks like
(booking create/reschedule/cancel/no-show/complete, deposit confirmation,
template upsert) must call :func:`invalidate_availability_cache`.
"""

import logging
import os
import random
from datetime import date
from typing import Any, Optional

import redis

from app.core.config import settings
from .json import dumps, loads

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


class _NullRedis:
    """No-op Redis client used when Redis is disabled or unavailable.

    Methods mirror the minimal surface used in this codebase so callers can
    proceed without needing try/except around get_redis_client().
    """

    def get(self, key: str):
        return None

    def setex(self, key: str, expire: int, value: str):
        return None

    def scan_iter(self, pattern: str):
        return iter(())

    def delete(self, key: str):
        return 0

    def close(self):
        return None


def get_redis_client() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        url = (settings.REDIS_URL or "").strip()
        # Allow disabling via empty/none/disabled/false
        if not url or url.lower() in {"none", "disabled", "false", "0"}:
            _redis_client = _NullRedis()  # type: ignore[assignment]
            return _redis_client
        try:
            conn_to = float(os.getenv("REDIS_CONNECT_TIMEOUT", "0.5"))
            read_to = float(os.getenv("REDIS_SOCKET_TIMEOUT", "0.5"))
        except ValueError:
            conn_to = read_to = 0.5
        try:
            _redis_client = redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=conn_to,
                socket_timeout=read_to,
            )
        except (redis.exceptions.RedisError, ValueError) as exc:
            logger.warning("Redis disabled, could not create client: %s", exc)
            _redis_client = _NullRedis()  # type: ignore[assignment]
    return _redis_client


def _apply_jitter(expire: int) -> int:
    """Return a TTL with a small random jitter to prevent cache stampedes."""
    return expire + random.randint(0, max(1, expire // 10))


class SlotCache:
    """Namespaced get/set/invalidate-by-prefix over the shared Redis client.

    Values are JSON documents. Redis failures degrade to cache misses.
    """

    def __init__(self, namespace: str, ttl: Optional[int] = None) -> None:
        self.namespace = namespace
        self._ttl = ttl

    @property
    def ttl(self) -> int:
        return self._ttl if self._ttl is not None else settings.AVAILABILITY_CACHE_TTL

    def key(self, *parts: Any) -> str:
        return ":".join([self.namespace, *(str(p) for p in parts)])

    def get(self, key: str) -> Any | None:
        client = get_redis_client()
        try:
            data = client.get(key)
        except redis.exceptions.RedisError as exc:
            logger.warning("Redis unavailable: %s", exc)
            return None
        if not data:
            return None
        try:
            return loads(data)
        except ValueError as exc:
            # Treat malformed payloads as cache misses instead of 500s.
            logger.warning("Could not decode cache entry %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any) -> None:
        if self.ttl <= 0:
            return None
        client = get_redis_client()
        try:
            client.setex(key, _apply_jitter(self.ttl), dumps(value))
        except redis.exceptions.RedisError as exc:
            logger.warning("Could not cache %s: %s", key, exc)
        return None

    def invalidate_by_prefix(self, *parts: Any) -> int:
        """Delete every key under ``namespace:parts...:``. Returns keys removed."""
        client = get_redis_client()
        pattern = self.key(*parts, "*")
        deleted = 0
        try:
            for key in client.scan_iter(pattern):
                deleted += int(client.delete(key) or 0)
        except redis.exceptions.RedisError as exc:
            logger.warning("Could not clear cache prefix %s: %s", pattern, exc)
        return deleted


AVAILABILITY_KEY_PREFIX = "availability"
availability_cache = SlotCache(AVAILABILITY_KEY_PREFIX)


def get_cached_availability(provider_id: str, when: date) -> list | None:
    return availability_cache.get(availability_cache.key(provider_id, when.isoformat()))


def cache_availability(data: list, provider_id: str, when: date) -> None:
    availability_cache.set(availability_cache.key(provider_id, when.isoformat()), data)


def invalidate_availability_cache(provider_id: str) -> int:
    return availability_cache.invalidate_by_prefix(provider_id)


def close_redis_client() -> None:
    """Close the global Redis client if it exists."""
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        except redis.exceptions.RedisError as exc:  # pragma: no cover - best effort
            logger.warning("Error closing Redis client: %s", exc)
        finally:
            _redis_client = None
