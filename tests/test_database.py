"""Tests for engine and session factory construction."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from endpoints import database
from endpoints.config import get_settings
from tests.app.api import DATABASE_PATH, engine


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def engine_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(
        database, "create_async_engine", lambda url, **options: calls.append((url, options))
    )
    return calls


def test_test_app_engine_uses_sqlite_file():
    assert engine.url.drivername == "sqlite+aiosqlite"
    assert engine.url.database == str(DATABASE_PATH)


def test_sqlite_keeps_default_pool(engine_calls):
    database.init_db("sqlite+aiosqlite:///./books.db")

    assert engine_calls == [
        ("sqlite+aiosqlite:///./books.db", {"pool_pre_ping": True, "echo": False})
    ]


def test_server_database_gets_pool_sizing(engine_calls):
    database.init_db("postgresql+asyncpg://books@localhost/books")

    url, options = engine_calls[0]
    assert url == "postgresql+asyncpg://books@localhost/books"
    assert (options["pool_size"], options["max_overflow"]) == (10, 20)


def test_url_defaults_to_settings(engine_calls, monkeypatch):
    monkeypatch.setenv("ENDPOINTS_DATABASE_URL", "sqlite+aiosqlite:///./catalog.db")

    database.init_db()

    assert engine_calls[0][0] == "sqlite+aiosqlite:///./catalog.db"


def test_session_factory_keeps_objects_loaded():
    factory = database.get_session_factory(engine)

    assert factory.class_ is AsyncSession
    assert factory.kw["expire_on_commit"] is False
