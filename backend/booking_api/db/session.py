"""
Engine and session factories.

The engine is built from an explicit DatabaseConfig at startup and kept on
`app.state`; request handlers get one AsyncSession each through `get_db`.
"""

from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from booking_api.core.config import DatabaseConfig
from booking_api.core.exceptions import StorageError
from booking_api.core.logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create the async connection pool described by `config`."""
    url = make_url(config.url)

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(url, echo=config.echo)
        # SQLite ignores REFERENCES clauses unless asked per connection
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_async_engine(
            url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
        )

    logger.info(
        "database_engine_created",
        backend=url.get_backend_name(),
        host=url.host,
        database=url.database,
    )
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session for one request.
    Commits happen per write operation in the dispatcher, not here.
    """
    sessionmaker = request.app.state.sessionmaker
    async with sessionmaker() as session:
        yield session


# Driver errors, refused or dropped sockets, and an exhausted pool all mean
# the store is unusable for this request.
STORAGE_FAILURES = (DBAPIError, OSError, PoolTimeoutError)


def storage_error(exc: BaseException, where: str) -> StorageError:
    detail = str(getattr(exc, "orig", None) or exc)
    logger.error("storage_failure", where=where, error_type=type(exc).__name__, error=detail)
    return StorageError("Storage unavailable", detail=detail)


async def rollback_session(db: AsyncSession, where: str) -> None:
    """
    Roll back after a failed statement so later statements in the same
    request start from a clean transaction.
    """
    try:
        await db.rollback()
    except STORAGE_FAILURES as e:
        # The caller is already raising the original failure
        logger.warning("rollback_failed", where=where, error=str(e))
