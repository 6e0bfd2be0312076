"""Alembic environment: async online migrations and offline SQL output.

The URL always comes from application settings, never from alembic.ini.
"""

import asyncio
from logging.config import fileConfig
from typing import Any

from sqlalchemy import pool, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from blog_api.core.config import get_settings
from blog_api.db.models import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = get_settings().database_url

# pg_advisory_lock key; serialises migrations started by several replicas
MIGRATION_LOCK_ID = 0x626C6F67  # "blog"


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    is_postgres = database_url.startswith("postgresql")
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = database_url

    # asyncpg prepared statements break behind pgbouncer
    connect_args: dict[str, Any] = (
        {"statement_cache_size": 0, "prepared_statement_cache_size": 0, "timeout": 10}
        if is_postgres
        else {}
    )
    engine = async_engine_from_config(
        section,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )

    async with engine.connect() as connection:
        if is_postgres:
            await connection.execute(text(f"SELECT pg_advisory_lock({MIGRATION_LOCK_ID})"))
        try:
            await connection.run_sync(_migrate)
            await connection.commit()
        finally:
            if is_postgres:
                await connection.execute(text(f"SELECT pg_advisory_unlock({MIGRATION_LOCK_ID})"))
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
