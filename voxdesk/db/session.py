"""Database engine and session scopes for the voxdesk stores.

One lazily created async engine per process. The data stores open a
short-lived session per operation through ``get_session_context``; the
detailed health check gets one through the ``get_session`` dependency.
Either way a scope commits on success and rolls back on any error.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from voxdesk.config import get_settings
from voxdesk.logging_config import get_logger

logger: Any = get_logger(__name__)

SessionFactory = Callable[[], AsyncSession]

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def sqlite_file_path(database_url: str) -> Path | None:
    """Database file behind a SQLite URL; None for in-memory or other backends."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return None
    if not url.database or url.database == ":memory:":
        return None
    return Path(url.database)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Stores read generated ids off rows after the scope commits
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine
    if _engine is None:
        settings = get_settings()

        db_file = sqlite_file_path(settings.database_url)
        if db_file is not None:
            db_file.parent.mkdir(parents=True, exist_ok=True)

        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
        )
        logger.debug(f"Database engine created ({make_url(settings.database_url).drivername})")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the process engine."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def init_db() -> None:
    """Create the accounts, appointments and call log tables.

    Called during application startup.
    """
    from voxdesk.db import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine. Called during application shutdown."""
    global _engine, _session_factory
    _session_factory = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None


@asynccontextmanager
async def get_session_context(
    session_factory: SessionFactory | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Transactional session scope.

    Stores pass their own factory in tests; production falls back to the
    process engine:
        async with get_session_context(self._session_factory) as session:
            ...
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.debug(f"Rolling back session after {type(e).__name__}")
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency wrapping ``get_session_context``."""
    async with get_session_context() as session:
        yield session
