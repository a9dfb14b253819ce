from __future__ import annotations

import time

from redis.asyncio import Redis

from app.domain.entities import RateWindow

_LUA_HIT = """
-- KEYS[1]: rate window key
-- ARGV[1]: window length (ms)
local count = redis.call('INCR', KEYS[1])
local ttl = redis.call('PTTL', KEYS[1])
if count == 1 or ttl < 0 then
  redis.call('PEXPIRE', KEYS[1], ARGV[1])
  ttl = tonumber(ARGV[1])
end
return {count, ttl}
"""


class RedisRateStore:
    """
    Fixed-window counters shared by every worker pointed at the same Redis.
    The increment and the expiry are one script, so a window is never left
    without a TTL.
    """

    def __init__(self, redis: Redis, *, window_ms: int, key_prefix: str = "rl:") -> None:
        self._redis = redis
        self._prefix = key_prefix
        self.window_ms = window_ms

    def _key(self, client: str) -> str:
        return f"{self._prefix}{client}"

    def now(self) -> float:
        return time.time()

    async def hit(self, key: str) -> RateWindow:
        count, ttl_ms = await self._redis.eval(_LUA_HIT, 1, self._key(key), self.window_ms)
        return RateWindow(count=int(count), reset_at=self.now() + int(ttl_ms) / 1000)

    async def reset(self, key: str) -> None:
        await self._redis.delete(self._key(key))
