"""Alembic environment for the complaint_hub schema, run on the async engine."""

from __future__ import annotations

import asyncio
import logging
from logging.config import fileConfig
from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from complaint_hub.core.database import DATABASE_URL, Base

# Registers profiles, user_roles, workers and complaints on the metadata.
import complaint_hub.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", DATABASE_URL)


def _skip_empty_revisions(context_, revision, directives) -> None:
    """Do not write an autogenerated revision that has no operations."""
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No schema changes detected; revision not written")


# Column lengths follow settings (e.g. COMPLAINT_TITLE_MAX_LENGTH), so both
# types and server defaults take part in autogenerate comparisons.
_compare_options = {
    "target_metadata": target_metadata,
    "compare_type": True,
    "compare_server_default": True,
    "process_revision_directives": _skip_empty_revisions,
}


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_compare_options,
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    context.configure(connection=connection, **_compare_options)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations against the configured database over asyncpg."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(_run_sync_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
