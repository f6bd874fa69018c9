"""Database connection and session management with async support."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pingrind.exceptions import PersistenceError

from .models import Base


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///data/pingrind.db"

# Module-level engine cache: db_url -> (engine, session_factory)
_engines: dict[str, tuple[AsyncEngine, async_sessionmaker[AsyncSession]]] = {}


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    db_path = url.database
    if db_path and db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_wal(dbapi_conn, _record) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def get_async_engine(database_url: str = DEFAULT_DATABASE_URL) -> AsyncEngine:
    """Get or create the async engine for ``database_url``."""
    if database_url not in _engines:
        _ensure_sqlite_dir(database_url)
        engine = create_async_engine(database_url, echo=False, future=True)
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            event.listen(engine.sync_engine, "connect", _enable_sqlite_wal)
        factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            autoflush=False,
            expire_on_commit=False,
        )
        _engines[database_url] = (engine, factory)
    return _engines[database_url][0]


def get_async_session_factory(
    database_url: str = DEFAULT_DATABASE_URL,
) -> async_sessionmaker[AsyncSession]:
    """Get the async session factory bound to ``database_url``."""
    get_async_engine(database_url)
    return _engines[database_url][1]


@asynccontextmanager
async def get_session(
    database_url: str = DEFAULT_DATABASE_URL,
) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session as a context manager.

    Commits on clean exit, rolls back and re-raises otherwise. Database
    driver errors surface as ``PersistenceError``.
    """
    factory = get_async_session_factory(database_url)
    session = factory()
    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise PersistenceError(str(e)) from e
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def init_db_async(database_url: str = DEFAULT_DATABASE_URL) -> None:
    """Create all tables if they do not exist."""
    engine = get_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_async(database_url: str | None = None) -> None:
    """Dispose one engine (or all of them when no URL is given)."""
    urls = [database_url] if database_url else list(_engines)
    for url in urls:
        entry = _engines.pop(url, None)
        if entry is not None:
            await entry[0].dispose()
