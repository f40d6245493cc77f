"""Tenant schema deployer.

Creates the isolated PostgreSQL schema for one company: the six workspace
tables, their indexes, and row-level-security policies pinned to the
company's tenant id. Every object is created with IF NOT EXISTS semantics
(policies are dropped and recreated) so deploying twice is a no-op.

The tenant id passes the identifier allow-list before any DDL text is
built; it is the only caller-derived value that reaches the script.
"""

from __future__ import annotations

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from src.capacity.core.database import CONNECTIVITY_ERRORS
from src.capacity.core.exceptions import DeploymentFailure, UpstreamUnavailable
from src.capacity.core.identifiers import quote_identifier, quote_literal, schema_name_for

logger = structlog.get_logger(__name__)

TENANT_TABLES = (
    "formulas",
    "suppliers",
    "raw_materials",
    "apps",
    "app_data",
    "user_profiles",
)

# Session variable carrying the caller's tenant claim, set by TenantConnection
TENANT_SETTING = "app.current_tenant_id"


def _table_ddl(schema: str) -> list[str]:
    return [
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.formulas (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            formula_name VARCHAR(255) NOT NULL,
            chemical_composition TEXT,
            density DECIMAL(10,4),
            ph_level DECIMAL(3,2),
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            created_by UUID,
            assigned_to UUID
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.suppliers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            company_name VARCHAR(255) NOT NULL,
            contact_person VARCHAR(255),
            email VARCHAR(255),
            phone VARCHAR(50),
            address TEXT,
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            created_by UUID,
            assigned_to UUID
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.raw_materials (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            material_name VARCHAR(255) NOT NULL,
            supplier_id UUID REFERENCES {schema}.suppliers(id),
            quantity DECIMAL(10,2),
            unit VARCHAR(50),
            price_per_unit DECIMAL(10,2),
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            created_by UUID,
            assigned_to UUID
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.apps (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            app_name VARCHAR(255) NOT NULL,
            app_description TEXT,
            app_icon VARCHAR(50) DEFAULT 'Database',
            app_color VARCHAR(7) DEFAULT '#3B82F6',
            table_name VARCHAR(255) NOT NULL,
            schema_json JSONB DEFAULT '{{}}',
            ui_config JSONB DEFAULT '{{}}',
            permissions_config JSONB DEFAULT '{{}}',
            status VARCHAR(20) DEFAULT 'active',
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            created_by UUID
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.app_data (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            app_id UUID REFERENCES {schema}.apps(id) ON DELETE CASCADE,
            record_id VARCHAR(255) NOT NULL,
            data_json JSONB NOT NULL,
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            created_by UUID,
            updated_by UUID,
            UNIQUE (app_id, record_id)
        )
        """,
        f"""
        CREATE TABLE IF NOT EXISTS {schema}.user_profiles (
            id UUID PRIMARY KEY,
            email VARCHAR(255) UNIQUE NOT NULL,
            first_name VARCHAR(255),
            last_name VARCHAR(255),
            role VARCHAR(50) DEFAULT 'Employee',
            department VARCHAR(100),
            app_access JSONB DEFAULT '[]',
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now(),
            company_id UUID NOT NULL
        )
        """,
    ]


def _index_ddl(schema: str) -> list[str]:
    return [
        f"CREATE INDEX IF NOT EXISTS idx_formulas_created_at ON {schema}.formulas(created_at)",
        f"CREATE INDEX IF NOT EXISTS idx_suppliers_company_name ON {schema}.suppliers(company_name)",
        f"CREATE INDEX IF NOT EXISTS idx_raw_materials_supplier_id ON {schema}.raw_materials(supplier_id)",
        f"CREATE INDEX IF NOT EXISTS idx_apps_table_name ON {schema}.apps(table_name)",
        f"CREATE INDEX IF NOT EXISTS idx_app_data_app_id ON {schema}.app_data(app_id)",
        f"CREATE INDEX IF NOT EXISTS idx_app_data_data_json ON {schema}.app_data USING GIN (data_json)",
        f"CREATE INDEX IF NOT EXISTS idx_user_profiles_email ON {schema}.user_profiles(email)",
        f"CREATE INDEX IF NOT EXISTS idx_user_profiles_company_id ON {schema}.user_profiles(company_id)",
    ]


def _policy_ddl(schema: str, tenant_literal: str) -> list[str]:
    statements: list[str] = []
    claim = f"current_setting('{TENANT_SETTING}', true) = {tenant_literal}"
    for table in TENANT_TABLES:
        # Profiles additionally pin the row's company_id to the tenant
        predicate = claim
        if table == "user_profiles":
            predicate = f"{claim} AND company_id = {tenant_literal}"
        statements.extend([
            f"ALTER TABLE {schema}.{table} ENABLE ROW LEVEL SECURITY",
            f"ALTER TABLE {schema}.{table} FORCE ROW LEVEL SECURITY",
            f"DROP POLICY IF EXISTS tenant_isolation ON {schema}.{table}",
            f"""
            CREATE POLICY tenant_isolation ON {schema}.{table}
            FOR ALL
            USING ({predicate})
            WITH CHECK ({predicate})
            """,
        ])
    return statements


def build_tenant_ddl(tenant_id: str) -> list[str]:
    """Return the ordered DDL statements that deploy a tenant's schema."""
    schema_name = schema_name_for(tenant_id)
    schema = quote_identifier(schema_name)
    tenant_literal = quote_literal(tenant_id)

    return [
        f"CREATE SCHEMA IF NOT EXISTS {schema}",
        *_table_ddl(schema),
        *_index_ddl(schema),
        *_policy_ddl(schema, tenant_literal),
    ]


class SchemaDeployer:
    """Deploys and drops per-tenant schemas on the shared Postgres instance."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def deploy(self, tenant_id: str, tenant_name: str) -> str:
        """Deploy (or redeploy) the tenant schema. Returns the schema name.

        The script runs in a single transaction, so a failing statement
        leaves nothing behind.

        Raises:
            InvalidTenantIdentifier: tenant_id fails the allow-list.
            DeploymentFailure: Postgres rejected a statement.
            UpstreamUnavailable: the database could not be reached.
        """
        statements = build_tenant_ddl(tenant_id)
        schema_name = schema_name_for(tenant_id)
        logger.info(
            "schema_deployer.deploy_started",
            tenant_id=tenant_id,
            tenant_name=tenant_name,
            schema_name=schema_name,
            statements=len(statements),
        )

        try:
            async with self._engine.begin() as conn:
                for statement in statements:
                    await conn.execute(text(statement))
        except CONNECTIVITY_ERRORS as e:
            raise UpstreamUnavailable("database", str(e)) from e
        except SQLAlchemyError as e:
            logger.error("schema_deployer.deploy_failed", schema_name=schema_name, error=str(e))
            raise DeploymentFailure(schema_name, str(e)) from e

        logger.info("schema_deployer.deploy_completed", schema_name=schema_name)
        return schema_name

    async def drop(self, tenant_id: str) -> None:
        """Drop the tenant schema and everything in it. Destructive."""
        schema_name = schema_name_for(tenant_id)
        try:
            async with self._engine.begin() as conn:
                await conn.execute(text(f"DROP SCHEMA IF EXISTS {quote_identifier(schema_name)} CASCADE"))
        except CONNECTIVITY_ERRORS as e:
            raise UpstreamUnavailable("database", str(e)) from e
        except SQLAlchemyError as e:
            raise DeploymentFailure(schema_name, str(e)) from e
        logger.warning("schema_deployer.schema_dropped", schema_name=schema_name)

    async def schema_exists(self, schema_name: str) -> bool:
        """Check information_schema for a deployed schema."""
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(
                    text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :schema"),
                    {"schema": schema_name},
                )
                return result.first() is not None
        except CONNECTIVITY_ERRORS as e:
            raise UpstreamUnavailable("database", str(e)) from e
