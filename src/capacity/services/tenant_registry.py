"""Tenant registry: the control-plane source of truth for tenant → schema.

TenantRegistry reads through a bounded TTL cache in front of a
TenantConfigStore. A lookup miss is an expected state ("tenant not
provisioned yet") and is reported as None, never as an exception.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncEngine

from src.capacity.config import Settings
from src.capacity.core.cache import TTLCache
from src.capacity.core.database import control_plane_connection
from src.capacity.core.identifiers import parse_uuid, validate_tenant_id
from src.capacity.core.monitoring import active_tenants
from src.capacity.models.shared import TenantConfiguration

logger = structlog.get_logger(__name__)

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"


@dataclass(frozen=True)
class TenantConfig:
    """One registry row."""

    company_id: str
    company_name: str
    schema_name: str
    db_name: str
    status: str = STATUS_ACTIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    connection_string: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


class TenantConfigStore(Protocol):
    """Persistence for registry rows."""

    async def fetch(self, company_id: str) -> TenantConfig | None: ...

    async def save(self, config: TenantConfig) -> None: ...

    async def delete(self, company_id: str) -> bool: ...

    async def list_all(self) -> list[TenantConfig]: ...


_table = TenantConfiguration.__table__


def _row_to_config(row: Any) -> TenantConfig:
    return TenantConfig(
        company_id=str(row.company_id),
        company_name=row.company_name,
        schema_name=row.schema_name,
        db_name=row.db_name,
        status=row.status,
        created_at=row.created_at,
        connection_string=row.connection_string,
    )


class SqlTenantConfigStore:
    """TenantConfigStore backed by shared.tenant_configurations."""

    def __init__(self, engine: AsyncEngine, settings: Settings) -> None:
        self._engine = engine
        self._settings = settings

    async def fetch(self, company_id: str) -> TenantConfig | None:
        key = parse_uuid(company_id)
        if key is None:
            return None
        stmt = select(_table).where(_table.c.company_id == key)
        async with control_plane_connection(self._engine, self._settings) as conn:
            row = (await conn.execute(stmt)).first()
        return _row_to_config(row) if row else None

    async def save(self, config: TenantConfig) -> None:
        values = {
            "company_id": uuid.UUID(config.company_id),
            "company_name": config.company_name,
            "schema_name": config.schema_name,
            "db_name": config.db_name,
            "status": config.status,
            "created_at": config.created_at,
            "connection_string": config.connection_string,
        }
        stmt = insert(_table).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_table.c.company_id],
            set_={k: stmt.excluded[k] for k in values if k != "company_id"},
        )
        async with control_plane_connection(self._engine, self._settings, write=True) as conn:
            await conn.execute(stmt)

    async def delete(self, company_id: str) -> bool:
        key = parse_uuid(company_id)
        if key is None:
            return False
        stmt = delete(_table).where(_table.c.company_id == key)
        async with control_plane_connection(self._engine, self._settings, write=True) as conn:
            result = await conn.execute(stmt)
        return result.rowcount > 0

    async def list_all(self) -> list[TenantConfig]:
        stmt = select(_table).order_by(_table.c.created_at)
        async with control_plane_connection(self._engine, self._settings) as conn:
            rows = (await conn.execute(stmt)).all()
        return [_row_to_config(row) for row in rows]


class TenantRegistry:
    """Cached read-through access to tenant registry rows."""

    def __init__(self, store: TenantConfigStore, cache: TTLCache[TenantConfig]) -> None:
        self._store = store
        self._cache = cache

    async def upsert(self, config: TenantConfig) -> None:
        """Insert or overwrite the row keyed by config.company_id."""
        company_id = validate_tenant_id(config.company_id)
        config = replace(config, company_id=company_id)
        await self._store.save(config)
        self._cache.set(company_id, config)
        logger.info(
            "tenant_registry.upserted",
            tenant_id=company_id,
            schema_name=config.schema_name,
            status=config.status,
        )

    async def lookup(self, tenant_id: str) -> TenantConfig | None:
        """Return the tenant's config, or None when it is not provisioned."""
        company_id = validate_tenant_id(tenant_id)
        cached = self._cache.get(company_id)
        if cached is not None:
            return cached

        config = await self._store.fetch(company_id)
        if config is None:
            logger.debug("tenant_registry.not_found", tenant_id=company_id)
            return None

        self._cache.set(company_id, config)
        return config

    async def set_status(self, tenant_id: str, status: str) -> TenantConfig | None:
        """Transition a tenant's status (e.g. suspend). Invalidates the cache."""
        config = await self.lookup(tenant_id)
        if config is None:
            return None
        updated = replace(config, status=status)
        await self.upsert(updated)
        return updated

    async def remove(self, tenant_id: str) -> bool:
        """Delete the registry row and invalidate the cache."""
        company_id = validate_tenant_id(tenant_id)
        self._cache.pop(company_id)
        removed = await self._store.delete(company_id)
        logger.info("tenant_registry.removed", tenant_id=company_id, existed=removed)
        return removed

    def invalidate(self, tenant_id: str) -> None:
        """Drop the cached row so the next lookup reads the store."""
        self._cache.pop(validate_tenant_id(tenant_id))

    async def list_all(self) -> list[TenantConfig]:
        configs = await self._store.list_all()
        active_tenants.set(sum(1 for c in configs if c.is_active))
        return configs
