"""Async engine and session factory for the portal database."""

import os

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from portal_search.core import get_settings

_DRIVER_PREFIXES = ("postgres://", "postgresql://", "postgresql+asyncpg://", "postgresql+psycopg2://")


def _configured_url() -> str:
    return os.getenv("DATABASE_URL") or get_settings().database_url


def _with_driver(url: str, scheme: str) -> str:
    for prefix in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            return scheme + url[len(prefix):]
    return url


def async_database_url(url: str | None = None) -> str:
    """Database URL for the asyncpg driver (the app)."""
    return _with_driver(url or _configured_url(), "postgresql+asyncpg://")


def sync_database_url(url: str | None = None) -> str:
    """Database URL for psycopg2 (alembic)."""
    return _with_driver(url or _configured_url(), "postgresql://")


engine = create_async_engine(
    async_database_url(),
    echo=os.getenv("SQL_ECHO", "0") == "1",
    pool_pre_ping=True,
    # DB_NULL_POOL=1 behind a transaction-mode connection pooler
    poolclass=NullPool if os.getenv("DB_NULL_POOL", "0") == "1" else None,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)
Base = declarative_base()
