from __future__ import annotations
from typing import Dict, List, Tuple

MAX_TRACKED_KEYS = 10_000


class WindowStore:
    """
    Fixed-window counters kept in process memory.

    Every hit sweeps expired windows, and the number of tracked keys is
    capped so an address flood cannot grow the map without bound. State
    lives as long as the process; a restart resets every counter.

    No awaits happen between read and write, so on one event loop a hit is
    atomic.
    """

    def __init__(self, max_keys: int = MAX_TRACKED_KEYS) -> None:
        self.max_keys = max(1, max_keys)
        # key -> [count, reset_at]
        self._windows: Dict[str, List[float]] = {}

    def _cleanup(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items()
                   if now > reset_at]
        for k in expired:
            del self._windows[k]

    def _evict_for(self, key: str) -> None:
        if key in self._windows or len(self._windows) < self.max_keys:
            return
        # drop the window closest to expiry
        oldest = min(self._windows, key=lambda k: self._windows[k][1])
        del self._windows[oldest]

    async def hit(
            self, key: str, now: float, window_seconds: float
    ) -> Tuple[int, float]:
        self._cleanup(now)
        w = self._windows.get(key)
        if w is None or now > w[1]:
            self._evict_for(key)
            w = [0, now + window_seconds]
            self._windows[key] = w
        w[0] += 1
        return int(w[0]), w[1]

    def __len__(self) -> int:
        return len(self._windows)
