"""Async SQLAlchemy engine with multi-tenant schema isolation.

Provides:
- SharedBase: Declarative base for control-plane tables (companies, tenant registry)
- TenantBase: Declarative base for per-tenant schema tables (placeholder schema="tenant")
- create_engine(): engine with a pool checkout event that resets tenant context
- translate_map(): schema_translate_map for shared / tenant placeholders
- control_plane_connection(): schema-mapped connection to the control plane
- init_db(): creates the control-plane schema and tables
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from src.capacity.config import Settings
from src.capacity.core.exceptions import UpstreamUnavailable

logger = structlog.get_logger(__name__)

SHARED_PLACEHOLDER = "shared"
TENANT_PLACEHOLDER = "tenant"

# Errors meaning "the database could not be reached", as opposed to a
# statement the database rejected
CONNECTIVITY_ERRORS = (OSError, OperationalError, InterfaceError)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the hosted Postgres instance."""
    engine = create_async_engine(
        settings.DATABASE_URL,
        pool_size=20,
        max_overflow=10,
        pool_pre_ping=True,
        echo=False,
    )

    # Reset session variables on every connection checkout so a tenant's
    # search_path / app.current_tenant_id never leaks into the next request
    @event.listens_for(engine.sync_engine, "checkout")
    def reset_tenant_context(dbapi_conn: Any, connection_record: Any, connection_proxy: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("RESET ALL")
        cursor.close()

    return engine


def translate_map(settings: Settings, schema_name: str | None = None) -> dict[str, str]:
    """Build the schema_translate_map for the control plane and, optionally, a tenant."""
    mapping = {SHARED_PLACEHOLDER: settings.SHARED_SCHEMA}
    if schema_name is not None:
        mapping[TENANT_PLACEHOLDER] = schema_name
    return mapping


@asynccontextmanager
async def control_plane_connection(
    engine: AsyncEngine,
    settings: Settings,
    write: bool = False,
) -> AsyncGenerator[AsyncConnection, None]:
    """Yield a control-plane connection (a transaction when write=True).

    Connectivity failures surface as UpstreamUnavailable; statement errors
    propagate unchanged for the caller to interpret.
    """
    try:
        ctx = engine.begin() if write else engine.connect()
        async with ctx as conn:
            conn = await conn.execution_options(schema_translate_map=translate_map(settings))
            yield conn
    except CONNECTIVITY_ERRORS as e:
        raise UpstreamUnavailable("database", str(e)) from e


# ── Declarative Bases ───────────────────────────────────────────────────────

shared_metadata = MetaData(schema=SHARED_PLACEHOLDER)
tenant_metadata = MetaData(schema=TENANT_PLACEHOLDER)


class SharedBase(DeclarativeBase):
    """Base class for control-plane models (companies, tenant_configurations)."""

    metadata = shared_metadata


class TenantBase(DeclarativeBase):
    """Base class for per-tenant schema models.

    Uses placeholder schema="tenant" which is remapped at runtime via
    schema_translate_map to the actual tenant schema (e.g., "tenant_3f2a...").
    The tables themselves are created by the Schema Deployer, not create_all.
    """

    metadata = tenant_metadata


# ── Database Initialization ─────────────────────────────────────────────────


async def init_db(engine: AsyncEngine, settings: Settings) -> None:
    """Create the control-plane schema and tables if they don't exist."""
    # Import models so they are registered on SharedBase.metadata
    from src.capacity.models import shared  # noqa: F401

    schema = settings.SHARED_SCHEMA
    async with engine.begin() as conn:
        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
        conn = await conn.execution_options(schema_translate_map=translate_map(settings))
        await conn.run_sync(SharedBase.metadata.create_all)
    logger.info("database.initialized", shared_schema=schema)


async def close_db(engine: AsyncEngine) -> None:
    """Dispose of the engine and close all connections."""
    await engine.dispose()
