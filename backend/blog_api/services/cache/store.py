"""Key-value store adapter over Upstash Redis.

Every operation degrades to cache-miss behaviour: when the backend is not
configured, unreachable, or fails mid-request, reads return None and writes
become no-ops. Nothing raised by the backend reaches the caller.
"""

import asyncio
import json
from typing import Any

from upstash_redis.asyncio import Redis

from blog_api.core.config import get_settings
from blog_api.core.logging import get_logger
from blog_api.services.cache.constants import TTL_DEFAULT

logger = get_logger(__name__)


class KeyValueStore:
    """JSON values with TTLs and glob-pattern deletion."""

    def __init__(self, client: Redis | None = None) -> None:
        self._client = client
        self._connected = False

    async def connect(self) -> None:
        """Create the client (unless one was injected) and verify it answers.

        On any failure the store stays disabled; this never raises.
        """
        if self._connected:
            return

        if self._client is None:
            settings = get_settings()
            if not settings.redis_available:
                logger.info("Redis cache not configured, caching disabled")
                return
            try:
                self._client = Redis(
                    url=settings.upstash_redis_rest_url,
                    token=settings.upstash_redis_rest_token,
                )
            except Exception as e:
                logger.warning("Failed to initialize Redis cache", error=str(e))
                self._client = None
                return

        try:
            await self._client.ping()
        except Exception as e:
            logger.warning("Redis cache unavailable, caching disabled", error=str(e))
            return

        self._connected = True
        logger.info("Redis cache connected")

    async def close(self) -> None:
        """Release the client's HTTP session."""
        client, self._client = self._client, None
        self._connected = False
        if client is None:
            return
        try:
            await client.close()
        except Exception as e:
            logger.debug("Redis cache close failed", error=str(e))

    @property
    def is_available(self) -> bool:
        """Check if cache is available."""
        return self._client is not None and self._connected

    @staticmethod
    def make_key(prefix: str, *parts: str | int) -> str:
        """Create a cache key from prefix and parts."""
        return ":".join([prefix, *(str(p) for p in parts)])

    async def get(self, key: str) -> Any | None:
        """Return the decoded value stored under ``key``, or None."""
        if not self.is_available:
            return None

        try:
            raw = await self._client.get(key)  # type: ignore[union-attr]
        except Exception as e:
            logger.warning("Cache get failed", key=key, error=str(e))
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Cache JSON decode failed", key=key)
            return None

    async def set(self, key: str, value: Any, ttl: int = TTL_DEFAULT) -> bool:
        """Store ``value`` as JSON, expiring after ``ttl`` seconds.

        Overwrites any existing entry. Returns False when nothing was stored.
        """
        if not self.is_available:
            return False

        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning("Cache value not serializable", key=key, error=str(e))
            return False

        try:
            await self._client.set(key, payload, ex=max(1, int(ttl)))  # type: ignore[union-attr]
            return True
        except Exception as e:
            logger.warning("Cache set failed", key=key, error=str(e))
            return False

    async def delete(self, pattern: str) -> int:
        """Delete every key matching the glob ``pattern`` in one batch.

        A pattern without wildcards deletes that single key. Returns the
        number of keys removed (0 when the backend is unavailable).
        """
        if not self.is_available:
            return 0

        try:
            keys = await self._client.keys(pattern)  # type: ignore[union-attr]
            if not keys:
                return 0
            await self._client.delete(*keys)  # type: ignore[union-attr]
            return len(keys)
        except Exception as e:
            logger.warning("Cache delete failed", pattern=pattern, error=str(e))
            return 0

    async def check_health(self, timeout: float = 5.0) -> bool:
        """Check Redis connectivity with timeout."""
        if not self.is_available:
            return False

        try:
            result = await asyncio.wait_for(
                self._client.ping(),  # type: ignore[union-attr]
                timeout=timeout,
            )
            return bool(result)
        except asyncio.TimeoutError:
            logger.error("Redis health check timed out", timeout=timeout)
            return False
        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False
