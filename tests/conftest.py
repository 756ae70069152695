"""Shared test fixtures for the endpoints test suite."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event

from endpoints import Application, Controller, format_jsonapi
from endpoints.schemas.jsonapi import JSONAPI_MEDIA_TYPE
from endpoints.store import MemoryAdapter, MemoryStore, RelationInfo
from tests.app.api import RESOURCES, engine, store
from tests.app.models import Author, Base, BookStore, Series
from tests.helpers import echo


@event.listens_for(engine.sync_engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(fanout_limit=2)


@pytest.fixture
def authors(memory_store) -> MemoryAdapter:
    return MemoryAdapter(
        memory_store,
        "authors",
        fields=["name"],
        relations=[RelationInfo(name="books", type="books", to_many=True)],
    )


@pytest.fixture
def tags(memory_store) -> MemoryAdapter:
    return MemoryAdapter(memory_store, "tags", fields=["label"], allow_client_generated_ids=True)


@pytest.fixture
def books(memory_store, authors, tags) -> MemoryAdapter:
    return MemoryAdapter(
        memory_store,
        "books",
        fields=["title", "date_published", "pages"],
        relations=[
            RelationInfo(name="author", type="authors", to_many=False, attribute="author_id"),
            RelationInfo(name="tags", type="tags", to_many=True),
        ],
    )


@pytest.fixture
def controller_class(memory_store):
    return Controller.extend(
        base_url="/v1",
        store=memory_store,
        formatter=format_jsonapi,
        responder=echo,
    )


# ---------------------------------------------------------------------------
# SQLite-backed application
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def database():
    """Create the schema with one author, series and store, drop it afterwards."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with store.session_factory() as session:
        session.add_all(
            [
                Author(id=1, name="Ursula K. Le Guin"),
                Series(id=1, title="Earthsea"),
                BookStore(id=1, name="Powell's"),
            ]
        )
        await session.commit()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def app(database):
    return Application(RESOURCES, package="tests.app.resources", prefix="/v1", stores=[store]).create_app()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Content-Type": JSONAPI_MEDIA_TYPE},
    ) as ac:
        yield ac
