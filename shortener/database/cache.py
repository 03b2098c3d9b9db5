"""Redis cache layer for link lookups."""

import json
import logging
from typing import Optional

import redis.asyncio as redis

from .models import Link


class RedisCache:
    """Read-through Redis cache for links.

    Entries carry ``expires_at`` and are given a Redis TTL no longer than the
    link's remaining life, so the service's expiry check always sees the
    authoritative expiry. Every failure is logged and treated as a miss.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        ttl_seconds: int = 3600,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            ttl_seconds: Upper bound on cache entry lifetime
            logger: Optional logger instance
        """
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = logger or logging.getLogger(__name__)
        self.configured = redis_url is not None
        self.enabled = self.configured
        self.client: Optional[redis.Redis] = None

        if redis_url:
            self.logger.info(f"Redis cache enabled with TTL={ttl_seconds}s")

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self.enabled:
            return

        try:
            self.client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self.client.ping()
            self.logger.info("Connected to Redis")
        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.enabled = False

    async def get_link(self, code: str) -> Optional[Link]:
        """Get a cached link.

        Args:
            code: Short code

        Returns:
            Cached link or None
        """
        if not self.enabled or not self.client:
            return None

        try:
            raw = await self.client.get(self.get_cache_key(code))
            if raw is None:
                return None
            return Link.from_dict(json.loads(raw))
        except Exception as e:
            self.logger.error(f"Cache get error: {e}")
            return None

    async def set_link(self, link: Link, now: int) -> bool:
        """Cache a link for at most its remaining lifetime.

        Args:
            link: Link to cache
            now: Current Unix time

        Returns:
            True if successful
        """
        if not self.enabled or not self.client:
            return False

        ttl = min(self.ttl_seconds, link.expires_at - now)
        if ttl <= 0:
            return False

        try:
            await self.client.setex(
                self.get_cache_key(link.code), ttl, json.dumps(link.to_dict())
            )
            return True
        except Exception as e:
            self.logger.error(f"Cache set error: {e}")
            return False

    async def delete(self, code: str) -> bool:
        """Delete a cached link.

        Args:
            code: Short code

        Returns:
            True if deleted
        """
        if not self.enabled or not self.client:
            return False

        try:
            result = await self.client.delete(self.get_cache_key(code))
            return result > 0
        except Exception as e:
            self.logger.error(f"Cache delete error: {e}")
            return False

    async def ping(self) -> bool:
        """Return True if no cache is configured or it answers a ping.

        A configured cache that failed to connect reports unhealthy.
        """
        if not self.configured:
            return True
        if not self.enabled or not self.client:
            return False
        try:
            await self.client.ping()
            return True
        except Exception as e:
            self.logger.error(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connection."""
        if self.client:
            await self.client.aclose()
            self.logger.info("Redis connection closed")

    def get_cache_key(self, code: str) -> str:
        """Generate cache key for a short code."""
        return f"shortener:link:{code}"
