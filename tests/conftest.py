"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database, so no state leaks
between tests and no database server is required.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from lifelog.core.config import settings
from lifelog.db.base import Database, get_db
from lifelog.main import app


@pytest.fixture()
def database():
    database = Database("sqlite://").open()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture()
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(database, tmp_path, monkeypatch):
    def override_get_db():
        session = database.session()
        try:
            yield session
        finally:
            session.close()

    monkeypatch.setattr(settings, "BACKUP_DIR", str(tmp_path / "backups"))
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def other_db():
    """A second, independent store."""
    database = Database("sqlite://").open()
    session = database.session()
    try:
        yield session
    finally:
        session.close()
        database.close()
