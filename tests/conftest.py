# tests/conftest.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from contentcore.core.runtime_config import EngineConfig
from contentcore.core.settings import Settings
from contentcore.db.base import Base
from contentcore.db.session import enable_sqlite_savepoints, get_db
import contentcore.models.registry  # noqa: F401  (puebla Base.metadata)
from contentcore.services.blog_service import PostEngine
from contentcore.services.cache_service import MemoryCache
from contentcore.services.page_service import PageEngine

T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Reloj controlable: los tests avanzan el tiempo a mano."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def notify(self, paths: list[str]) -> None:
        self.calls.append(list(paths))

    @property
    def all_paths(self) -> list[str]:
        return [p for call in self.calls for p in call]


@pytest.fixture
def sql_engine():
    # BD en memoria nueva por test; StaticPool = una sola conexión compartida
    eng = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def db(sql_engine) -> Session:
    session = sessionmaker(bind=sql_engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def page_engine(clock, notifier) -> PageEngine:
    return PageEngine(
        config=EngineConfig(enable_hierarchy=True, max_depth=3, max_revisions=5, max_bulk_size=10),
        cache=MemoryCache(),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def post_engine(clock, notifier) -> PostEngine:
    return PostEngine(
        config=EngineConfig(base_path="/blog", max_revisions=5, max_bulk_size=10, max_categories_per_item=3),
        cache=MemoryCache(),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def cron_settings() -> Settings:
    return Settings(CRON_SECRET="s3cret")


@pytest.fixture
def client(db, page_engine, post_engine, cron_settings):
    """
    TestClient sobre la app real con overrides: misma sesión, engines del test
    y settings con secreto de cron.
    """
    from contentcore.api.deps.engines import get_page_engine, get_post_engine, get_settings
    from contentcore.main import app  # import tardío para evitar ciclos

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_page_engine] = lambda: page_engine
    app.dependency_overrides[get_post_engine] = lambda: post_engine
    app.dependency_overrides[get_settings] = lambda: cron_settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


