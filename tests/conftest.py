"""Pytest configuration and fixtures."""

import os

# Keep test runs from writing ./logs/app.log; must be set before settings load.
os.environ.setdefault("LOG_FILE_PATH", "")

import pytest
from fastapi.testclient import TestClient

from toolkit_backend.main import app
from toolkit_backend.core.config import settings
from toolkit_backend.core.dependencies import notifier_dependency
from toolkit_backend.db.database import get_connection, init_db
from toolkit_backend.models.toolkit import Toolkit
from toolkit_backend.repositories.toolkit_repository import InventoryRepository
from tests.fakes import FakeNotifier


@pytest.fixture(autouse=True)
def temp_database(tmp_path, monkeypatch):
    """Point the app at a fresh SQLite file for every test."""
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'toolkits.db'}")
    monkeypatch.setattr(settings, "NOTIFICATIONS_ENABLED", False)
    init_db()
    yield


@pytest.fixture
def conn():
    """Open a connection to the per-test database."""
    connection = get_connection()
    yield connection
    connection.close()


@pytest.fixture
def repo(conn):
    return InventoryRepository(conn)


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(notifier):
    """TestClient whose notification collaborator records instead of sending."""
    app.dependency_overrides[notifier_dependency] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def helmet():
    """An unsaved Helmet toolkit with 10 items in Size:M / Yellow."""
    return Toolkit.create(
        toolkit_id="tk-helmet",
        name="Helmet",
        type="Head Protection",
        size="M",
        color="Yellow",
        stock_count=10,
    )
