# clinic/db/sql.py
from __future__ import annotations

from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from clinic.core.config import settings
from clinic.db.base import Base


def build_engine(dsn: str) -> AsyncEngine:
    """
    SQLite connections are bound to the event loop that opened them, so the
    file database is used without a pool. Server databases get a real pool.
    """
    if dsn.startswith("sqlite"):
        return create_async_engine(dsn, echo=settings.DB_ECHO, poolclass=NullPool)
    return create_async_engine(
        dsn,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )


engine = build_engine(settings.SQL_DSN)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commits what the handler left pending, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db() -> bool:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))
        return True


async def init_db(bind: AsyncEngine | None = None) -> None:
    """
    Create tables that do not exist yet.
    """
    # Register every model on Base.metadata
    from clinic.modules.users import models as _users_models  # noqa: F401
    from clinic.modules.appointments import models as _appointments_models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
