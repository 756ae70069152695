from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from endpoints.config import get_settings


def init_db(database_url: str | None = None) -> AsyncEngine:
    """Create and return an async SQLAlchemy engine.

    Defaults to the configured ``database_url``. Pool sizing only applies
    to server databases; SQLite engines keep SQLAlchemy's default pool.
    """
    database_url = database_url or get_settings().database_url
    options: dict = {"pool_pre_ping": True, "echo": False}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return create_async_engine(database_url, **options)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create and return an async session factory bound to the given engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the async engine and release all connections."""
    await engine.dispose()
