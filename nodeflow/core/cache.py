"""Cache service with Redis (production) or in-process memory (development) backend.

Redis is used when REDIS_ENABLED=true so that step results survive a process
restart and are shared by every worker that may pick up a retried run. The
memory backend is sufficient for a single process and for tests.
"""

import json
import time
from typing import Any, Dict, Optional, Tuple

import redis.asyncio as redis

from nodeflow.core.config import Settings
from nodeflow.core.logging import get_logger

logger = get_logger(__name__)


class CacheService:
    """Async key/value cache with Redis or memory backend.

    Values are stored JSON-encoded on both backends so a value read back is
    always a fresh copy of what was written.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.redis: Optional[redis.Redis] = None
        # key -> (serialized value, expiry timestamp or None)
        self.memory_cache: Dict[str, Tuple[str, Optional[float]]] = {}
        self.use_redis = settings.redis_enabled and bool(settings.redis_url)

    def is_redis_available(self) -> bool:
        """Whether the Redis backend is connected."""
        return self.use_redis and self.redis is not None

    async def startup(self):
        """Initialize cache connection."""
        if self.use_redis:
            try:
                self.redis = redis.from_url(
                    self.settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_timeout=5,
                    socket_connect_timeout=5,
                    retry_on_timeout=True
                )
                await self.redis.ping()
                logger.info("Redis cache initialized", url=self.settings.redis_url)
            except Exception as e:
                logger.warning("Redis connection failed, falling back to memory", error=str(e))
                self.use_redis = False
                self.redis = None
        else:
            logger.info("Using in-memory cache", redis_enabled=self.settings.redis_enabled)

    async def shutdown(self):
        """Close cache connections."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis cache connections closed")

        self.memory_cache.clear()

    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache, None when missing or expired."""
        try:
            if self.is_redis_available():
                raw = await self.redis.get(key)
            else:
                raw = self._memory_get(key)
        except Exception as e:
            logger.error("Cache get failed", key=key, error=str(e))
            raise

        logger.debug("Cache get", cache_key=key, cache_hit=raw is not None)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """Set value in cache with optional TTL (seconds)."""
        ttl = ttl or self.settings.step_cache_ttl
        serialized = json.dumps(value)

        try:
            if self.is_redis_available():
                await self.redis.setex(key, ttl, serialized)
            else:
                now = time.time()
                self._sweep_expired(now)
                self.memory_cache[key] = (serialized, now + ttl)
        except Exception as e:
            logger.error("Cache set failed", key=key, error=str(e))
            raise

        logger.debug("Cache set", cache_key=key, ttl=ttl)

    async def delete(self, key: str) -> bool:
        """Delete value from cache."""
        if self.is_redis_available():
            deleted = bool(await self.redis.delete(key))
        else:
            deleted = self.memory_cache.pop(key, None) is not None
        logger.debug("Cache delete", cache_key=key, deleted=deleted)
        return deleted

    async def clear_pattern(self, pattern: str) -> int:
        """Clear keys matching a prefix pattern such as ``step:run-1:*``."""
        if self.is_redis_available():
            keys = [key async for key in self.redis.scan_iter(match=pattern)]
            deleted = await self.redis.delete(*keys) if keys else 0
        else:
            prefix = pattern.rstrip("*")
            keys = [k for k in self.memory_cache if k.startswith(prefix)]
            for key in keys:
                del self.memory_cache[key]
            deleted = len(keys)

        logger.debug("Cache clear", pattern=pattern, deleted=deleted)
        return deleted

    def _memory_get(self, key: str) -> Optional[str]:
        entry = self.memory_cache.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at < time.time():
            del self.memory_cache[key]
            return None
        return raw

    def _sweep_expired(self, now: float) -> None:
        """Drop every expired memory entry; keys never read again would otherwise stay."""
        expired = [k for k, (_, expires_at) in self.memory_cache.items()
                   if expires_at is not None and expires_at < now]
        for key in expired:
            del self.memory_cache[key]
