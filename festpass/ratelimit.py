from __future__ import annotations
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple

from .helpers import UNKNOWN_CLIENT


class WindowState(Protocol):
    async def hit(
            self, key: str, now: float, window_seconds: float
    ) -> Tuple[int, float]: ...


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float  # unix seconds
    limit: int

    def retry_after_seconds(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return max(0, math.ceil(self.reset_at - now))

    def retry_after_minutes(self, now: Optional[float] = None) -> int:
        return math.ceil(self.retry_after_seconds(now) / 60)


class RateLimiter:
    """Fixed-window throttle keyed by client address.

    The window state is injected so the in-process store can be swapped for
    a shared one without changing callers.
    """

    def __init__(
        self,
        state: WindowState,
        *,
        name: str,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.state = state
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    async def check(self, client_key: Optional[str]) -> RateLimitDecision:
        key = f"{self.name}:{client_key or UNKNOWN_CLIENT}"
        count, reset_at = await self.state.hit(
            key, self.clock(), self.window_seconds
        )
        allowed = count <= self.max_requests
        return RateLimitDecision(
            allowed=allowed,
            remaining=max(0, self.max_requests - count),
            reset_at=reset_at,
            limit=self.max_requests,
        )


# ----------------------------
# The two throttles the service runs
# ----------------------------
AUTH_MAX_ATTEMPTS = 10
AUTH_WINDOW_SECONDS = 15 * 60

CHAT_MAX_REQUESTS = 10
CHAT_WINDOW_SECONDS = 60


def auth_rate_limiter(state: WindowState, **kw) -> RateLimiter:
    return RateLimiter(state, name="auth", max_requests=AUTH_MAX_ATTEMPTS,
                       window_seconds=AUTH_WINDOW_SECONDS, **kw)


def chat_rate_limiter(state: WindowState, **kw) -> RateLimiter:
    return RateLimiter(state, name="chat", max_requests=CHAT_MAX_REQUESTS,
                       window_seconds=CHAT_WINDOW_SECONDS, **kw)
