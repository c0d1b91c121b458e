# model/ratelimit/__init__.py
import os
from typing import Optional
import redis.asyncio as redis

BACKEND = os.getenv("RATELIMIT_BACKEND", "memory").lower()  # 'memory' | 'redis'

if BACKEND == "redis":
    from ._redis import WindowStore as _WindowStore
else:
    from ._memory import WindowStore as _WindowStore


def new_store(*, r: Optional[redis.Redis] = None):
    if BACKEND == "redis":
        if r is None:
            raise RuntimeError("WindowStore(redis) requires r=redis.Redis")
        return _WindowStore(r)
    return _WindowStore()


WindowStore = _WindowStore
__all__ = ["WindowStore", "new_store", "BACKEND"]
