"""Redis cache service for enrichment provider lookups (photos, coordinates, routes)."""

import hashlib
import json
import logging
from typing import Any

import redis.asyncio as redis

from groupvoyage.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-backed cache. Every failure reads as a miss."""

    def __init__(self):
        self._redis: redis.Redis | None = None
        self._disabled = False

    async def _get_redis(self) -> redis.Redis | None:
        if self._disabled:
            return None
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                self._disabled = True
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception:
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl or settings.provider_cache_ttl)
            return True
        except Exception:
            return False

    # Typed helpers

    @staticmethod
    def _digest(query: str) -> str:
        return hashlib.sha1(query.strip().lower().encode("utf-8")).hexdigest()

    def photo_key(self, query: str) -> str:
        return f"photo:{self._digest(query)}"

    def geocode_key(self, query: str) -> str:
        return f"geocode:{self._digest(query)}"

    def route_key(self, origin: tuple[float, float], dest: tuple[float, float], mode: str) -> str:
        return f"route:{origin[0]:.5f},{origin[1]:.5f}:{dest[0]:.5f},{dest[1]:.5f}:{mode}"

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


cache_service = CacheService()
