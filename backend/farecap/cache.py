"""
Caching layer for fare tables.
Uses Redis for a cache shared across processes, in front of a per-process copy.
"""

import logging
import time
from typing import Optional

import redis

from farecap.models import FareConfig

logger = logging.getLogger(__name__)

FARE_CONFIG_KEY = "farecap:fare_config"


class FareConfigCache:
    """
    Two-level cache for the fare table:
    1. In-memory copy (process level)
    2. Redis (shared across processes)
    The database stays the source of truth.
    """

    def __init__(self, redis_url: Optional[str] = None, ttl: int = 3600, redis_client=None):
        """
        Initialize cache with an optional Redis connection.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379)
            ttl: Time to live in seconds (default 1 hour)
            redis_client: Ready-made client, used instead of redis_url
        """
        self.ttl = ttl
        self.redis_client = redis_client

        self._config: Optional[FareConfig] = None
        self._config_timestamp: float = 0

        if self.redis_client is None and redis_url:
            try:
                self.redis_client = redis.from_url(redis_url)
                self.redis_client.ping()
                logger.info("Redis cache initialized at %s", redis_url)
            except redis.RedisError as e:
                logger.warning("Redis connection failed: %s. Using in-memory cache only.", e)
                self.redis_client = None

    def _is_memory_cache_valid(self) -> bool:
        if self._config is None:
            return False
        return (time.time() - self._config_timestamp) < self.ttl

    def get_config(self) -> Optional[FareConfig]:
        """
        Get the cached fare table, or None on a miss.

        Lookup order: in-memory copy, then Redis.
        """
        if self._is_memory_cache_valid():
            return self._config

        if self.redis_client:
            try:
                cached_value = self.redis_client.get(FARE_CONFIG_KEY)
            except redis.RedisError as e:
                logger.warning("Redis get error: %s", e)
                cached_value = None
            if cached_value:
                config = FareConfig.model_validate_json(cached_value)
                self._remember(config)
                return config

        return None

    def _remember(self, config: FareConfig):
        self._config = config
        self._config_timestamp = time.time()

    def set_config(self, config: FareConfig):
        """Store the fare table in all cache levels."""
        self._remember(config)

        if self.redis_client:
            try:
                self.redis_client.setex(FARE_CONFIG_KEY, self.ttl, config.model_dump_json())
            except redis.RedisError as e:
                logger.warning("Redis set error: %s", e)

    def invalidate(self):
        """Drop the fare table from all cache levels."""
        self._config = None
        self._config_timestamp = 0

        if self.redis_client:
            try:
                self.redis_client.delete(FARE_CONFIG_KEY)
            except redis.RedisError as e:
                logger.warning("Redis delete error: %s", e)
        logger.info("Fare table cache invalidated")


# Global cache instance (singleton pattern)
_fare_config_cache: Optional[FareConfigCache] = None


def get_fare_config_cache() -> FareConfigCache:
    """Get singleton fare table cache instance."""
    global _fare_config_cache
    if _fare_config_cache is None:
        from farecap.config import settings
        _fare_config_cache = FareConfigCache(redis_url=settings.REDIS_URL, ttl=settings.CACHE_TTL)
    return _fare_config_cache


def get_fare_config_with_cache() -> FareConfig:
    """
    Get the fare table using a cache-first strategy.

    Raises:
        ConfigurationMissingError: If the stored table is incomplete
    """
    cache = get_fare_config_cache()

    config = cache.get_config()
    if config is not None:
        return config

    from farecap.database import get_db_manager
    config = get_db_manager().get_fare_config()
    cache.set_config(config)
    return config
