# tests/integration/conftest.py
import pytest
import pytest_asyncio
from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError


@pytest_asyncio.fixture
async def redis_client():
    r = Redis.from_url("redis://redis:6379/0", encoding="utf-8", decode_responses=True)
    try:
        await r.ping()
    except (RedisConnectionError, OSError):
        await r.aclose()
        pytest.skip("redis://redis:6379/0 is not reachable")
    try:
        yield r
    finally:
        await r.aclose()
