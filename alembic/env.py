"""Alembic environment for the object sync tables.

    alembic upgrade head

Migrations run on a synchronous engine; the async driver suffix is stripped
from DATABASE_URL.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from src.object_sync.config import get_settings
from src.object_sync.core.database import Base
from src.object_sync.mapping import models  # noqa: F401 -- registers tables

# Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_url() -> str:
    """DATABASE_URL with the async driver replaced by the default sync one."""
    url = get_settings().DATABASE_URL
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = create_engine(sync_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
