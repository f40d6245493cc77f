"""Connection router: tenant id → schema-scoped database handle.

resolve() checks the process-local handle cache, falls back to the tenant
registry, activates a TenantConnection for the tenant's schema and caches it.
Handles are stateless (engine + schema + tenant id), so two coroutines racing
on a cold cache may each build one; the last write wins and both are valid.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession

from src.capacity.config import Settings
from src.capacity.core.cache import TTLCache
from src.capacity.core.database import CONNECTIVITY_ERRORS, translate_map
from src.capacity.core.exceptions import TenantNotProvisioned, TenantSuspended, UpstreamUnavailable
from src.capacity.core.identifiers import quote_identifier, quote_literal, validate_tenant_id
from src.capacity.core.tenant import TenantContext
from src.capacity.services.schema_deployer import TENANT_SETTING, SchemaDeployer
from src.capacity.services.tenant_registry import TenantConfig, TenantRegistry

logger = structlog.get_logger(__name__)


class TenantConnection:
    """Database handle bound to one tenant's schema."""

    def __init__(self, engine: AsyncEngine, settings: Settings, config: TenantConfig) -> None:
        self._engine = engine
        self._settings = settings
        self.config = config

    @property
    def tenant_id(self) -> str:
        return self.config.company_id

    @property
    def schema_name(self) -> str:
        return self.config.schema_name

    def context(self, user_id: str | None = None) -> TenantContext:
        return TenantContext(tenant_id=self.tenant_id, schema_name=self.schema_name, user_id=user_id)

    async def activate(self) -> None:
        """Verify the tenant's namespace exists on the server."""
        if not await SchemaDeployer(self._engine).schema_exists(self.schema_name):
            raise TenantNotProvisioned(self.tenant_id, details=f"schema {self.schema_name} does not exist")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """Yield a connection scoped to the tenant schema.

        1. Maps the placeholder "tenant" schema to the tenant's schema
        2. Sets app.current_tenant_id so the RLS policies admit the rows
        3. Pins search_path to the tenant schema
        """
        try:
            async with self._engine.connect() as conn:
                conn = await conn.execution_options(
                    schema_translate_map=translate_map(self._settings, self.schema_name)
                )
                await conn.execute(text(f"SET {TENANT_SETTING} = {quote_literal(self.tenant_id)}"))
                await conn.execute(text(f"SET search_path TO {quote_identifier(self.schema_name)}"))
                # Session-level SETs survive the commit; the caller then owns its own transaction
                await conn.commit()
                yield conn
        except CONNECTIVITY_ERRORS as e:
            raise UpstreamUnavailable("database", str(e)) from e

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an AsyncSession over connection()."""
        async with self.connection() as conn:
            async with AsyncSession(bind=conn, expire_on_commit=False) as session:
                yield session


HandleFactory = Callable[[AsyncEngine, Settings, TenantConfig], TenantConnection]


class ConnectionRouter:
    """Resolves tenant ids to activated TenantConnection handles."""

    def __init__(
        self,
        registry: TenantRegistry,
        handle_cache: TTLCache[TenantConnection],
        engine: AsyncEngine,
        settings: Settings,
        handle_factory: HandleFactory = TenantConnection,
    ) -> None:
        self._registry = registry
        self._handles = handle_cache
        self._engine = engine
        self._settings = settings
        self._handle_factory = handle_factory

    async def resolve(self, tenant_id: str) -> TenantConnection:
        """Return the tenant's handle.

        Raises:
            InvalidTenantIdentifier: tenant_id fails the allow-list.
            TenantNotProvisioned: no registry row, or the schema is missing.
            TenantSuspended: the registry row is not active.
        """
        tenant_id = validate_tenant_id(tenant_id)
        handle = self._handles.get(tenant_id)
        if handle is not None:
            return handle

        config = await self._registry.lookup(tenant_id)
        if config is None:
            raise TenantNotProvisioned(tenant_id)
        if not config.is_active:
            raise TenantSuspended(tenant_id, config.status)

        handle = self._handle_factory(self._engine, self._settings, config)
        await handle.activate()
        self._handles.set(tenant_id, handle)
        logger.debug("connection_router.resolved", tenant_id=tenant_id, schema_name=config.schema_name)
        return handle

    def evict(self, tenant_id: str) -> None:
        """Forget the cached handle and registry row for a tenant."""
        tenant_id = validate_tenant_id(tenant_id)
        self._handles.pop(tenant_id)
        self._registry.invalidate(tenant_id)
        logger.debug("connection_router.evicted", tenant_id=tenant_id)
