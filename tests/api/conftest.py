import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.presentation.dependencies import get_email_port
from tests.fakes import FakeEmailOK


@pytest.fixture()
def app_and_email(settings):
    app = create_app(settings)
    email = FakeEmailOK()
    app.dependency_overrides[get_email_port] = lambda: email

    try:
        yield app, email
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_email):
    app, _ = app_and_email
    # production settings redirect plain http, so talk https by default
    return TestClient(app, base_url="https://testserver", raise_server_exceptions=False)


@pytest.fixture()
def sent(app_and_email) -> FakeEmailOK:
    return app_and_email[1]

