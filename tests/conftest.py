"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that `import app`
works consistently in all tests, and points the settings at an in-memory
SQLite database before any app module creates its engine.
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTO_APPLY_DB_MIGRATIONS", "false")
os.environ.setdefault("APP_ENV", "test")

# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.routes import create_app  # noqa: E402
from tests.utils import install_inmemory_db, make_session_factory  # noqa: E402


@pytest.fixture()
def app_with_inmemory_db():
    app = create_app()
    SessionLocal = install_inmemory_db(app)
    return app, SessionLocal


@pytest.fixture()
def client(app_with_inmemory_db):
    app, _ = app_with_inmemory_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def fake_redis(app_with_inmemory_db):
    app, _ = app_with_inmemory_db
    return app.state._test_redis


@pytest.fixture()
def session_factory():
    SessionLocal, engine = make_session_factory()
    yield SessionLocal
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    with session_factory() as session:
        yield session
