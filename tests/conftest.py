from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from datahub import config
from datahub.db.database import get_session
from datahub.main import app
from tests.fakes import FakeSession


@pytest.fixture
def auth_disabled(monkeypatch):
    monkeypatch.setattr(config, "DISABLE_API_KEY_AUTH", True)
    monkeypatch.setattr(config, "ENVIRONMENT", "test")


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def mock_session():
    return MagicMock()


def _client_for(session):
    app.dependency_overrides[get_session] = lambda: session
    return TestClient(app)


@pytest.fixture
def search_client(auth_disabled, fake_session):
    yield _client_for(fake_session)
    app.dependency_overrides.clear()


@pytest.fixture
def client(auth_disabled, mock_session):
    yield _client_for(mock_session)
    app.dependency_overrides.clear()


@pytest.fixture
def secured_client(monkeypatch, mock_session):
    monkeypatch.setattr(config, "DISABLE_API_KEY_AUTH", False)
    yield _client_for(mock_session)
    app.dependency_overrides.clear()
