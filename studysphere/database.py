"""
StudySphere — Async Database Engine & Session Factory

Two connection strategies share one pool configuration:

1. **Cloud Run** – ``cloud-sql-python-connector`` with IAM authentication,
   used when ``CLOUD_SQL_USE_UNIX_SOCKET`` is set and an instance connection
   name is configured.
2. **Local development** – a plain ``asyncpg`` URL from ``DATABASE_URL``.

``get_db`` is the FastAPI dependency every route uses to obtain a session.
"""

from __future__ import annotations

from typing import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from studysphere.config import get_settings

logger = structlog.get_logger("studysphere.database")


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model in ``studysphere.models``."""
    pass


_POOL_KWARGS = {
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}


def _build_cloud_sql_engine():
    """Create an async engine that connects through the Cloud SQL Python
    Connector (``project:region:instance``) with IAM authentication."""
    from google.cloud.sql.connector import Connector

    settings = get_settings()
    connector = Connector()

    async def _get_connection():
        return await connector.connect_async(
            settings.CLOUD_SQL_INSTANCE_CONNECTION,
            "asyncpg",
            user=settings.DB_USER,
            password=settings.DB_PASSWORD,
            db=settings.DB_NAME,
            enable_iam_auth=True,
        )

    engine = create_async_engine(
        "postgresql+asyncpg://",
        async_creator=_get_connection,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **_POOL_KWARGS,
    )

    logger.info(
        "database_engine_created",
        strategy="cloud_sql_connector",
        instance=settings.CLOUD_SQL_INSTANCE_CONNECTION,
    )
    return engine


def _build_local_engine():
    """Create an async engine from ``DATABASE_URL``.

    A bare ``postgresql://`` scheme is upgraded to the asyncpg dialect.
    """
    settings = get_settings()
    url = settings.DATABASE_URL

    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(
        url,
        echo=(settings.LOG_LEVEL == "DEBUG"),
        **_POOL_KWARGS,
    )

    logger.info("database_engine_created", strategy="database_url")
    return engine


def _create_engine():
    settings = get_settings()

    use_cloud_sql = (
        settings.CLOUD_SQL_USE_UNIX_SOCKET
        and settings.CLOUD_SQL_INSTANCE_CONNECTION
    )

    if use_cloud_sql:
        return _build_cloud_sql_engine()

    return _build_local_engine()


engine = _create_engine()

async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession``; commit on success, roll back on error.

    Usage in a FastAPI route::

        @router.get("/users")
        async def list_users(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
