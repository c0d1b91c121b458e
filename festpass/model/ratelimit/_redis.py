from __future__ import annotations
import logging
from typing import Tuple

import redis.asyncio as redis

from ._memory import WindowStore as MemoryWindowStore

logger = logging.getLogger(__name__)


# ---- keys
def k_window(key: str) -> str: return f"rl:{key}"


class WindowStore:
    """
    Fixed-window counters shared by every process that talks to the same
    Redis. INCR and PTTL run in one MULTI/EXEC; the first hit of a window
    sets its expiry.
    """

    def __init__(self, r: redis.Redis) -> None:
        self.r = r
        self._fallback = MemoryWindowStore()

    async def hit(
            self, key: str, now: float, window_seconds: float
    ) -> Tuple[int, float]:
        window_ms = int(window_seconds * 1000)
        try:
            pipe = self.r.pipeline(transaction=True)
            pipe.incr(k_window(key))
            pipe.pttl(k_window(key))
            count, ttl_ms = await pipe.execute()
            if ttl_ms is None or ttl_ms < 0:
                await self.r.pexpire(k_window(key), window_ms)
                ttl_ms = window_ms
        except redis.RedisError as e:
            logger.warning(
                "Redis unavailable for rate limiting, using memory: %s", e
            )
            return await self._fallback.hit(key, now, window_seconds)
        return int(count), now + ttl_ms / 1000.0
