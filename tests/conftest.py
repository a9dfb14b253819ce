import json

import pytest

from app.infrastructure.rate_limit.memory_store import InMemoryRateStore
from app.settings import Settings
from tests.fakes import API_KEY, TRUSTED_ORIGIN, FakeClock, FakeEmailOK


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        app_env="production",
        api_keys=f"{API_KEY},test-key-2",
        trusted_origins=f"{TRUSTED_ORIGIN},https://allowed-origin2.com",
        trust_proxy=False,
        rate_limit_window_ms=900_000,
        rate_limit_max=100,
        rate_limit_backend="memory",
        mail_transport="console",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def rate_store(clock) -> InMemoryRateStore:
    return InMemoryRateStore(window_ms=900_000, clock=clock)


@pytest.fixture()
def email() -> FakeEmailOK:
    return FakeEmailOK()


@pytest.fixture()
def valid_payload() -> dict:
    return {
        "from": "a@example.com",
        "to": ["b@example.com"],
        "subject": "hi",
        "text": "hello",
    }


@pytest.fixture()
def valid_body(valid_payload) -> bytes:
    return json.dumps(valid_payload).encode()
