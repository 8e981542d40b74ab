"""
Redis caching layer for vault and source listings.

The cache is an accelerator only: every backend failure is logged and
reported as a miss (reads) or ``False`` (writes), never raised.
"""

import json
import logging
from typing import Any, Optional
from dataclasses import dataclass

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


@dataclass
class CacheConfig:
    """Redis cache configuration"""
    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 2.0
    socket_connect_timeout: float = 2.0
    default_ttl: int = 300  # 5 minutes


class CacheKey:
    """Cache key generator with consistent formatting"""
    
    @staticmethod
    def vaults(user_id: str) -> str:
        return f"vaults:{user_id}"
    
    @staticmethod
    def vaults_pattern(user_id: str) -> str:
        return f"vaults:{user_id}*"
    
    @staticmethod
    def sources(vault_id: str) -> str:
        return f"sources:{vault_id}"
    
    @staticmethod
    def sources_pattern(vault_id: str) -> str:
        return f"sources:{vault_id}*"


class RedisCache:
    """Redis-based TTL cache holding JSON-encoded values"""
    
    def __init__(self, config: CacheConfig, client: Optional[redis.Redis] = None):
        self.config = config
        self.client = client or redis.Redis.from_url(
            config.url,
            socket_timeout=config.socket_timeout,
            socket_connect_timeout=config.socket_connect_timeout,
            decode_responses=True
        )
    
    @staticmethod
    def _serialize(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    
    async def get(self, key: str) -> Optional[Any]:
        """Get value from cache, ``None`` on miss or backend failure"""
        try:
            data = await self.client.get(key)
        except (RedisError, OSError) as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None
        
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None
    
    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache with TTL"""
        try:
            await self.client.set(key, self._serialize(value), ex=ttl or self.config.default_ttl)
            return True
        except (RedisError, OSError, TypeError, ValueError) as e:
            logger.warning(f"Cache set failed for {key}: {e}")
            return False
    
    async def delete(self, key: str) -> bool:
        """Delete key from cache"""
        try:
            await self.client.delete(key)
            return True
        except (RedisError, OSError) as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False
    
    async def delete_pattern(self, pattern: str) -> bool:
        """Delete every key matching a glob pattern"""
        try:
            keys = [key async for key in self.client.scan_iter(match=pattern, count=100)]
            if keys:
                await self.client.delete(*keys)
            return True
        except (RedisError, OSError) as e:
            logger.warning(f"Cache delete_pattern failed for {pattern}: {e}")
            return False
    
    async def ping(self) -> bool:
        """Check Redis connection health"""
        try:
            return bool(await self.client.ping())
        except (RedisError, OSError) as e:
            logger.warning(f"Redis health check failed: {e}")
            return False
    
    async def close(self):
        try:
            await self.client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis client: {e}")
