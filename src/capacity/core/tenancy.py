"""Process-wide tenancy services, built once and passed to handlers.

build_tenancy_context() wires the engine, registry, router, identity client
and provisioning workflow together. main.py builds it in the lifespan and
stores it on app.state.tenancy; tests build their own with in-memory
collaborators.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine

from src.capacity.config import Settings
from src.capacity.core.cache import TTLCache
from src.capacity.core.database import create_engine
from src.capacity.services.companies import CompanyRepository, CompanyStore
from src.capacity.services.connection_router import ConnectionRouter, TenantConnection
from src.capacity.services.identity import (
    IdentityProvider,
    SupabaseIdentityProvider,
    UnconfiguredIdentityProvider,
)
from src.capacity.services.provisioning import ProvisioningWorkflow
from src.capacity.services.schema_deployer import SchemaDeployer
from src.capacity.services.tenant_data import TenantDataRepository, TenantDataStore
from src.capacity.services.tenant_registry import SqlTenantConfigStore, TenantConfig, TenantRegistry

logger = structlog.get_logger(__name__)


@dataclass
class TenancyContext:
    settings: Settings
    engine: AsyncEngine | None
    deployer: SchemaDeployer
    registry: TenantRegistry
    router: ConnectionRouter
    identity: IdentityProvider
    companies: CompanyStore
    tenant_data: TenantDataStore
    workflow: ProvisioningWorkflow


def build_identity_provider(settings: Settings) -> IdentityProvider:
    if not settings.identity_configured():
        logger.warning("tenancy.identity_not_configured")
        return UnconfiguredIdentityProvider()
    return SupabaseIdentityProvider(
        base_url=settings.SUPABASE_URL,
        service_role_key=settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.IDENTITY_TIMEOUT,
    )


def build_tenancy_context(settings: Settings, engine: AsyncEngine | None = None) -> TenancyContext:
    """Wire the production collaborators against one engine."""
    engine = engine or create_engine(settings)

    registry = TenantRegistry(
        SqlTenantConfigStore(engine, settings),
        TTLCache[TenantConfig](
            "registry",
            max_size=settings.TENANT_CACHE_MAX_SIZE,
            ttl_seconds=settings.TENANT_CACHE_TTL_SECONDS,
        ),
    )
    router = ConnectionRouter(
        registry,
        TTLCache[TenantConnection](
            "handles",
            max_size=settings.TENANT_CACHE_MAX_SIZE,
            ttl_seconds=settings.TENANT_CACHE_TTL_SECONDS,
        ),
        engine,
        settings,
    )
    deployer = SchemaDeployer(engine)
    identity = build_identity_provider(settings)
    companies = CompanyRepository(engine, settings)
    tenant_data = TenantDataRepository()

    workflow = ProvisioningWorkflow(
        companies=companies,
        deployer=deployer,
        registry=registry,
        router=router,
        identity=identity,
        tenant_data=tenant_data,
        settings=settings,
    )
    return TenancyContext(
        settings=settings,
        engine=engine,
        deployer=deployer,
        registry=registry,
        router=router,
        identity=identity,
        companies=companies,
        tenant_data=tenant_data,
        workflow=workflow,
    )
