# vitrine/core/cache.py

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from loguru import logger

from vitrine.core.config import settings


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class CacheManager:
    """Cache em memória com TTL por entrada e expiração lazy no `get`."""

    def __init__(self, default_ttl_seconds: float = 30 * 60, clock: Callable[[], float] = time.time):
        self.default_ttl_seconds = default_ttl_seconds
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        # ttl 0 ou None usa o default
        ttl_seconds = ttl or self.default_ttl_seconds
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def get(self, key: str) -> Any:
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._store[key]
            return None
        return entry.value

    async def get_or_set(self, key: str, fetcher: Callable[[], Awaitable[Any]], ttl: Optional[float] = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = await fetcher()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)

    def invalidate_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        matching = [key for key in self._store if regex.search(key)]
        for key in matching:
            del self._store[key]
        return len(matching)

    def cleanup(self) -> int:
        """Remove entradas expiradas. Retorna quantas foram removidas."""
        now = self._clock()
        expired = [key for key, entry in self._store.items() if now > entry.expires_at]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug(f"Cache cleanup removed {len(expired)} expired entries.")
        return len(expired)

    def clear(self) -> None:
        self._store.clear()

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._store), "keys": list(self._store.keys())}


global_cache = CacheManager(default_ttl_seconds=settings.CACHE_DEFAULT_TTL_SECONDS)


def get_cache() -> CacheManager:
    """FastAPI dependency for the process-wide cache."""
    return global_cache


async def run_periodic_cleanup(cache: CacheManager, interval_seconds: float, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
    """Loop de limpeza do cache; roda até ser cancelado no shutdown."""
    while True:
        await sleep(interval_seconds)
        cache.cleanup()
