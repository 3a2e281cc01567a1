"""Redis cache service for pricing caching and invalidation pub/sub."""

import json
import logging
from typing import Any, Callable, Optional

import redis

from hostpanel.core.config import settings

logger = logging.getLogger("hostpanel")


class CacheService:
    """Redis-backed caching service. Every failure is non-fatal."""

    def __init__(self, url: Optional[str] = None, enabled: Optional[bool] = None):
        self._url = url or settings.REDIS_URL
        self.enabled = settings.CACHE_ENABLED if enabled is None else enabled
        self._client: Optional[redis.Redis] = None

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._url,
                decode_responses=True,
                max_connections=50,
                socket_connect_timeout=2,
            )
        return self._client

    def get(self, key: str) -> Optional[str]:
        """Get a cached value by key."""
        if not self.enabled:
            return None
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.debug("Cache get failed for %s: %s", key, e)
            return None

    def set(self, key: str, value: str, ttl_seconds: int = 600) -> bool:
        """Set a cached value with TTL."""
        if not self.enabled:
            return False
        try:
            self.client.setex(key, ttl_seconds, value)
            return True
        except redis.RedisError as e:
            logger.debug("Cache set failed for %s: %s", key, e)
            return False

    def get_json(self, key: str) -> Optional[Any]:
        """Get and parse a JSON cached value."""
        raw = self.get(key)
        if raw:
            try:
                return json.loads(raw)
            except ValueError:
                self.delete(key)
        return None

    def set_json(self, key: str, value: Any, ttl_seconds: int = 600) -> bool:
        """Serialize and cache a JSON value."""
        return self.set(key, json.dumps(value, default=str), ttl_seconds)

    def delete(self, key: str) -> bool:
        """Delete a cached key."""
        if not self.enabled:
            return False
        try:
            self.client.delete(key)
            return True
        except redis.RedisError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False

    def publish(self, channel: str, message: str) -> bool:
        """Publish a message to a Redis channel (cross-process fanout)."""
        if not self.enabled:
            return False
        try:
            self.client.publish(channel, message)
            return True
        except redis.RedisError as e:
            logger.debug("Publish to %s failed: %s", channel, e)
            return False

    def subscribe(self, channel: str, handler: Callable[[dict], None]):
        """Run ``handler`` for each message on ``channel`` in a daemon thread.

        Returns the worker thread, or None when Redis is unavailable.
        """
        if not self.enabled:
            return None
        try:
            pubsub = self.client.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(**{channel: handler})
            return pubsub.run_in_thread(sleep_time=1.0, daemon=True)
        except redis.RedisError as e:
            logger.warning("Subscribe to %s failed: %s", channel, e)
            return None

    def health_check(self) -> bool:
        """Check if Redis is reachable."""
        if not self.enabled:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache_service = CacheService()
