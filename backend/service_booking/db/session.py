"""
Async engine, session factory and the transaction boundary used by every
mutating engine operation.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from service_booking.core import errors
from service_booking.core.config import get_settings
from service_booking.core.logging import get_logger

logger = get_logger(__name__)


def build_engine(url: str, **overrides) -> AsyncEngine:
    """
    Create an async engine with bounded lock waits.

    PostgreSQL: lock_timeout makes a transaction stuck behind a provider lock
    fail instead of waiting forever. SQLite: the driver busy timeout plays
    the same role.
    """
    settings = get_settings()
    kwargs: dict = {"echo": settings.DEBUG, "pool_pre_ping": True}

    if url.startswith("postgresql+asyncpg"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            connect_args={
                "server_settings": {"lock_timeout": str(settings.DB_LOCK_TIMEOUT_MS)},
            },
        )
    elif url.startswith("sqlite"):
        kwargs["connect_args"] = {"timeout": max(settings.DB_LOCK_TIMEOUT_MS / 1000, 1)}

    kwargs.update(overrides)
    return create_async_engine(url, **kwargs)


engine = build_engine(get_settings().DATABASE_URL)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    One engine operation == one transaction.

    Commits when the block exits cleanly; rolls back on any exception so no
    partial state (booking without audit row, bumped lock token, ...) is
    ever visible. Driver errors are translated to engine errors here.
    """
    try:
        yield db
        await db.commit()
    except sa_exc.IntegrityError as exc:
        await db.rollback()
        translated = errors.from_integrity_error(exc)
        logger.warning("transaction_integrity_violation", reason=translated.reason, error=str(exc.orig))
        raise translated from exc
    except sa_exc.DBAPIError as exc:
        await db.rollback()
        logger.error("transaction_storage_failure", error=str(exc.orig))
        raise errors.StorageError() from exc
    except Exception:
        await db.rollback()
        raise
