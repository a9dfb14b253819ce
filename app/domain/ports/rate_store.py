from typing import Protocol

from app.domain.entities import RateWindow


class RateStorePort(Protocol):
    window_ms: int

    def now(self) -> float:
        """Current time on the clock `RateWindow.reset_at` is expressed in."""

    async def hit(self, key: str) -> RateWindow:
        """Count one request for `key`, opening a fresh window if none is live."""

    async def reset(self, key: str) -> None:
        """Forget the window for `key`."""
