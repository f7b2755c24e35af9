import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from server import create_app

TEST_INTERVAL = 0.05


@pytest.fixture()
def settings() -> Settings:
    return Settings(base_url="https://pointer.example.com/", broadcast_interval=TEST_INTERVAL)


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c
