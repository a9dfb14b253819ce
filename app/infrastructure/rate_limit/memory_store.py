from __future__ import annotations

import time
from typing import Callable

from app.domain.entities import RateWindow


class InMemoryRateStore:
    """
    Fixed-window counters kept in a dict for the life of the process.

    `hit` never awaits between reading and writing a window, so on the event
    loop the read-check-increment cannot interleave with another request.
    """

    def __init__(self, *, window_ms: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.window_ms = window_ms
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}
        self._next_sweep = clock() + self._window_seconds

    @property
    def _window_seconds(self) -> float:
        return self.window_ms / 1000

    def now(self) -> float:
        return self._clock()

    async def hit(self, key: str) -> RateWindow:
        now = self._clock()
        self._sweep(now)
        window = self._windows.get(key)
        if window is None or now >= window.reset_at:
            window = RateWindow(count=1, reset_at=now + self._window_seconds)
        else:
            window = RateWindow(count=window.count + 1, reset_at=window.reset_at)
        self._windows[key] = window
        return window

    async def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        for key in [k for k, w in self._windows.items() if now >= w.reset_at]:
            del self._windows[key]
        self._next_sweep = now + self._window_seconds
