"""
Redis Repository Base Class

Provides atomic JSON operations on top of a Redis client.
Implements the repository pattern for Redis-based data storage.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisRepository:
    """Base Redis repository with atomic JSON operations."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    @staticmethod
    def _decode(raw) -> Optional[Dict[str, Any]]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def set_json(self, key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Atomically set JSON data with optional TTL.

        Returns:
            True if successful, False otherwise
        """
        try:
            redis_key = self._make_key(key)
            json_data = json.dumps(data)

            if ttl:
                return bool(self.redis.setex(redis_key, ttl, json_data))
            return bool(self.redis.set(redis_key, json_data))
        except (RedisError, TypeError) as e:
            logger.error(f"Error setting JSON data for key {key}: {e}")
            return False

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get JSON data from Redis.

        Returns:
            Dictionary if found and valid JSON, None otherwise
        """
        try:
            return self._decode(self.redis.get(self._make_key(key)))
        except (RedisError, json.JSONDecodeError) as e:
            logger.error(f"Error getting JSON data for key {key}: {e}")
            return None

    def get_many_json(self, keys: List[str]) -> List[Optional[Dict[str, Any]]]:
        """Fetch several JSON values in one round trip, None for missing keys."""
        if not keys:
            return []
        try:
            pipeline = self.redis.pipeline()
            for key in keys:
                pipeline.get(self._make_key(key))
            results = pipeline.execute()
        except RedisError as e:
            logger.error(f"Error in batch get: {e}")
            return [None] * len(keys)

        decoded = []
        for key, raw in zip(keys, results):
            try:
                decoded.append(self._decode(raw))
            except json.JSONDecodeError as e:
                logger.error(f"Corrupt JSON at key {key}: {e}")
                decoded.append(None)
        return decoded

    def delete(self, key: str) -> bool:
        """
        Delete a key from Redis.

        Returns:
            True if key was deleted, False otherwise
        """
        try:
            return self.redis.delete(self._make_key(key)) > 0
        except RedisError as e:
            logger.error(f"Error deleting key {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        """Check if a key exists in Redis."""
        try:
            return self.redis.exists(self._make_key(key)) > 0
        except RedisError as e:
            logger.error(f"Error checking existence of key {key}: {e}")
            return False


class RedisConnectionManager:
    """Owns the connection pool shared by the job store and the vault."""

    def __init__(self, connection_pool: redis.ConnectionPool):
        self.connection_pool = connection_pool
        self._client = None

    @classmethod
    def from_url(cls, url: str, max_connections: int = 20) -> "RedisConnectionManager":
        """Build a pooled manager from a redis:// URL; raw bytes are returned."""
        return cls(
            redis.ConnectionPool.from_url(
                url,
                max_connections=max_connections,
                decode_responses=False,
                retry_on_timeout=True,
                socket_keepalive=True,
            )
        )

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return bool(self.client.ping())
        except (RedisConnectionError, RedisError):
            return False

    def close(self):
        """Close the connection pool."""
        if self.connection_pool:
            self.connection_pool.disconnect()
