from typing import Any, Awaitable, Callable, Optional

from syncscript.db.cache import RedisCache
from syncscript.services.outcome import WriteOutcome
from syncscript.websocket.connection_manager import ChannelManager


class CollaborativeService:
    """
    Shared plumbing for services that read through the cache and fan writes
    out to the broadcast channel. ``cache`` may be None when caching is off.
    """
    
    def __init__(
        self,
        cache: Optional[RedisCache] = None,
        channel: Optional[ChannelManager] = None,
        cache_ttl: int = 300
    ):
        self.cache = cache
        self.channel = channel
        self.cache_ttl = cache_ttl
    
    async def cached(self, key: str, load: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, loading and storing it on a miss."""
        if self.cache is not None:
            hit = await self.cache.get(key)
            if hit is not None:
                return hit
        
        value = load()
        if self.cache is not None:
            await self.cache.set(key, value, ttl=self.cache_ttl)
        return value
    
    async def invalidate(self, outcome: WriteOutcome, *patterns: str) -> bool:
        if self.cache is None:
            return True
        ok = True
        for pattern in patterns:
            ok = await self.cache.delete_pattern(pattern) and ok
        return outcome.note("cache", ok)
    
    async def broadcast(self, outcome: WriteOutcome, send: Callable[[ChannelManager], Awaitable[bool]]) -> bool:
        if self.channel is None:
            return outcome.note("broadcast", False)
        return outcome.note("broadcast", await send(self.channel))
