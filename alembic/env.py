"""Alembic environment for the control-plane schema.

Migrates the shared tables (companies, tenant_configurations):
  alembic upgrade head

Tenant schemas are not migrated here; the Schema Deployer creates them
with idempotent DDL at provisioning time.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool, text

from src.capacity.config import get_settings
from src.capacity.core.database import SHARED_PLACEHOLDER, SharedBase, translate_map
from src.capacity.models import shared  # noqa: F401

# Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = SharedBase.metadata


def _sync_url() -> str:
    return get_settings().DATABASE_URL.replace("+asyncpg", "")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    settings = get_settings()

    context.configure(
        url=_sync_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        version_table_schema=settings.SHARED_SCHEMA,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    settings = get_settings()
    schema = settings.SHARED_SCHEMA

    connectable = create_engine(_sync_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        # The version table lives in the control-plane schema, so it must
        # exist before Alembic looks for it
        connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
        connection.commit()

        # Models declare schema="shared"; map it to the configured name
        if schema != SHARED_PLACEHOLDER:
            connection = connection.execution_options(schema_translate_map=translate_map(settings))

        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            version_table_schema=schema,
            include_schemas=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
