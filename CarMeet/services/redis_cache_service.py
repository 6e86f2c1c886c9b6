"""
Redis Cache Service for CarMeet
Holds cached club views and unread counts; keys are dropped when a mutation invalidates them
"""
import os
import json
import redis
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

class RedisCacheService:
    """Redis-based cache service for storing frequently accessed views"""

    def __init__(self, redis_url: Optional[str] = None, redis_client=None):
        """Initialize Redis connection, or adopt an already-built client"""
        self.redis_client = redis_client
        if self.redis_client is None:
            self._initialize_redis(redis_url)

    def _initialize_redis(self, redis_url: Optional[str]):
        """Initialize Redis connection with proper SSL configuration for Heroku"""
        try:
            redis_url = redis_url or os.environ.get('REDIS_URL') or os.environ.get('REDIS_TLS_URL')
            if not redis_url:
                logger.warning('REDIS_URL/REDIS_TLS_URL environment variables not found; Redis cache will be disabled.')
                self.redis_client = None
                return

            # For Heroku Redis, handle SSL configuration
            if redis_url.startswith('rediss://'):  # Heroku Redis uses rediss:// for SSL
                self.redis_client = redis.from_url(
                    redis_url,
                    ssl_cert_reqs=None,  # Skip certificate verification for Heroku
                    decode_responses=True
                )
            else:
                self.redis_client = redis.from_url(
                    redis_url,
                    decode_responses=True
                )

            # Test connection
            self.redis_client.ping()
            logger.info(f"Redis cache service initialized successfully with URL: {redis_url[:20]}...")

        except redis.RedisError as e:
            logger.error(f"Failed to initialize Redis cache service: {e}")
            self.redis_client = None

    def is_connected(self) -> bool:
        """Check if Redis is connected and available"""
        if not self.redis_client:
            return False
        try:
            self.redis_client.ping()
            return True
        except redis.RedisError:
            return False

    def set(self, key: str, value: Any, expire_seconds: int = 3600) -> bool:
        """
        Set a value in Redis cache

        Args:
            key: Cache key
            value: Value to cache (will be JSON serialized)
            expire_seconds: Expiration time in seconds (default 1 hour)

        Returns:
            True if successful, False otherwise
        """
        if not self.is_connected():
            logger.debug("Redis not connected, cannot set cache value")
            return False

        try:
            if isinstance(value, (dict, list)):
                serialized_value = json.dumps(value, default=str)
            else:
                serialized_value = str(value)

            result = self.redis_client.setex(key, expire_seconds, serialized_value)
            logger.debug(f"Set cache key '{key}' with expiration {expire_seconds}s")
            return bool(result)

        except (redis.RedisError, TypeError) as e:
            logger.error(f"Error setting cache key '{key}': {e}")
            return False

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from Redis cache

        Returns:
            Cached value or None if not found/error
        """
        if not self.is_connected():
            return None

        try:
            value = self.redis_client.get(key)
            if value is None:
                return None

            # Try to deserialize JSON, fallback to string
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value

        except redis.RedisError as e:
            logger.error(f"Error getting cache key '{key}': {e}")
            return None

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern

        Args:
            pattern: Pattern to match (e.g., 'view:club-123:*')

        Returns:
            Number of keys deleted
        """
        if not self.is_connected():
            logger.debug("Redis not connected, cannot delete cache pattern")
            return 0

        try:
            keys = list(self.redis_client.scan_iter(match=pattern))
            if keys:
                result = self.redis_client.delete(*keys)
                logger.info(f"Deleted {result} keys matching pattern '{pattern}'")
                return result
            return 0

        except redis.RedisError as e:
            logger.error(f"Error deleting cache pattern '{pattern}': {e}")
            return 0

# Global cache service instance
_cache_instance = None

def get_cache_service() -> RedisCacheService:
    """Get the global Redis cache service instance"""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = RedisCacheService()
    return _cache_instance

def set_cache_service(service: Optional[RedisCacheService]):
    """Replace the global cache service (app factory and tests)"""
    global _cache_instance
    _cache_instance = service
