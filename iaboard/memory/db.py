from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import AsyncAdaptedQueuePool
from sqlmodel import SQLModel

from iaboard.settings import get_settings
from iaboard.utils.logging import get_logger

from . import models  # noqa: F401  (registers tables on SQLModel.metadata)

LOGGER = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_engine_path: Optional[Path] = None
_session_maker: Optional[sessionmaker] = None


def database_path() -> Path:
    return get_settings().data_root / "iaboard.db"


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def get_engine() -> AsyncEngine:
    """Engine for the current ``data_root``; rebuilt when the root changes."""
    global _engine, _engine_path, _session_maker

    path = database_path()
    if _engine is None or _engine_path != path:
        path.parent.mkdir(parents=True, exist_ok=True)
        _engine = create_async_engine(
            f"sqlite+aiosqlite:///{path}",
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=AsyncAdaptedQueuePool,
            pool_size=10,
            max_overflow=10,
            pool_timeout=30,
        )
        event.listen(_engine.sync_engine, "connect", _set_sqlite_pragma)
        _session_maker = sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
        _engine_path = path
    return _engine


def async_session_factory() -> AsyncSession:
    get_engine()
    return _session_maker()


async def init_db() -> None:
    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    LOGGER.info("Database initialised at %s (WAL mode enabled)", _engine_path)


async def dispose_engine() -> None:
    global _engine, _engine_path, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _engine_path = None
    _session_maker = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_session_dependency() -> AsyncIterator[AsyncSession]:
    async with get_session() as session:
        yield session
