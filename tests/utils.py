from __future__ import annotations

import fnmatch
import json
from io import BytesIO
from typing import Any, Iterable

from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import get_db_session
from app.deps import get_db, get_redis
from app.models import Base


def make_session_factory() -> tuple[sessionmaker[Session], Engine]:
    """
    A fresh in-memory SQLite database with every table created.
    """
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )
    return SessionLocal, engine


def install_inmemory_db(app) -> sessionmaker[Session]:
    """
    Attach an in-memory SQLite database and an in-memory Redis to the FastAPI app.
    """

    SessionLocal, engine = make_session_factory()

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_db_session] = override_get_db

    redis = InMemoryRedis()
    app.state._test_redis = redis

    async def override_get_redis():
        return redis

    app.dependency_overrides[get_redis] = override_get_redis

    def _cleanup() -> None:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()

    app.add_event_handler("shutdown", _cleanup)

    return SessionLocal


class InMemoryRedis:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._counters: dict[str, int] = {}

    async def get(self, key: str):
        if key in self._counters:
            return str(self._counters[key])
        return self._data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None):
        self._data[key] = value

    async def incr(self, key: str) -> int:
        current = int(self._counters.get(key, 0))
        current += 1
        self._counters[key] = current
        return current

    async def keys(self, pattern: str):
        """使用 fnmatch 实现简单模式匹配。"""
        names = set(self._data) | set(self._counters)
        return [k for k in names if fnmatch.fnmatch(k, pattern)]

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
            if self._counters.pop(key, None) is not None:
                removed += 1
        return removed


def build_workbook(sheets: dict[str, Iterable[Iterable[Any]]]) -> bytes:
    """
    Build xlsx bytes from {sheet title: rows}; the first row is the header.
    """
    workbook = Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title=title)
        for row in rows:
            sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_json(document: dict[str, Any]) -> bytes:
    return json.dumps(document, ensure_ascii=False).encode("utf-8")
