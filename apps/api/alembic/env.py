"""Alembic environment: sync psycopg2 engine over the portal_search metadata."""

import os
import sys
from logging.config import fileConfig

# apps/api on the path so "portal_search" imports without an install
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from alembic import context
from sqlalchemy import create_engine, pool

from portal_search.db import models  # noqa: F401
from portal_search.db.session import Base, sync_database_url

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _url() -> str:
    # -x db_url=... overrides DATABASE_URL for one-off runs
    return context.get_x_argument(as_dictionary=True).get("db_url") or sync_database_url()


def run_migrations_offline() -> None:
    """Emit SQL without connecting."""
    context.configure(
        url=_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(_url(), poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
