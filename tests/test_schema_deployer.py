"""Schema Deployer tests.

DDL generation is checked directly; SchemaDeployer runs against a recording
engine double, so no database is needed.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import ProgrammingError

from src.capacity.core.exceptions import DeploymentFailure, InvalidTenantIdentifier, UpstreamUnavailable
from src.capacity.services.schema_deployer import TENANT_TABLES, SchemaDeployer, build_tenant_ddl

TENANT_ID = "3f2a9c1e-0b4d-4c2a-9e1f-7a8b9c0d1e2f"
SCHEMA = '"tenant_3f2a9c1e_0b4d_4c2a_9e1f_7a8b9c0d1e2f"'


# ── Recording Engine Double ──────────────────────────────────────────────────


class RecordingConnection:
    def __init__(self, engine: RecordingEngine) -> None:
        self._engine = engine

    async def execute(self, statement, params=None):
        sql = str(statement)
        if self._engine.unreachable:
            raise OSError("connection refused")
        if self._engine.fail_on and self._engine.fail_on in sql:
            raise ProgrammingError(sql, params, Exception("permission denied"))
        self._engine.statements.append(sql)


class RecordingEngine:
    """Stands in for AsyncEngine; records every executed statement."""

    def __init__(self, fail_on: str | None = None, unreachable: bool = False) -> None:
        self.statements: list[str] = []
        self.transactions = 0
        self.fail_on = fail_on
        self.unreachable = unreachable

    @asynccontextmanager
    async def begin(self):
        self.transactions += 1
        yield RecordingConnection(self)

    connect = begin


# ── DDL Generation ───────────────────────────────────────────────────────────


def test_ddl_creates_schema_first():
    statements = build_tenant_ddl(TENANT_ID)
    assert statements[0] == f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"


def test_ddl_creates_every_workspace_table():
    ddl = "\n".join(build_tenant_ddl(TENANT_ID))
    for table in TENANT_TABLES:
        assert f"CREATE TABLE IF NOT EXISTS {SCHEMA}.{table}" in ddl


def test_ddl_is_rerunnable():
    """Every CREATE is IF NOT EXISTS, and every policy is dropped before it is recreated."""
    statements = [s.strip() for s in build_tenant_ddl(TENANT_ID)]
    for statement in statements:
        if statement.startswith(("CREATE SCHEMA", "CREATE TABLE", "CREATE INDEX")):
            assert "IF NOT EXISTS" in statement
    policies = [i for i, s in enumerate(statements) if s.startswith("CREATE POLICY")]
    assert len(policies) == len(TENANT_TABLES)
    for index in policies:
        assert statements[index - 1].startswith("DROP POLICY IF EXISTS tenant_isolation")


def test_ddl_enables_forced_rls_pinned_to_tenant():
    ddl = "\n".join(build_tenant_ddl(TENANT_ID))
    for table in TENANT_TABLES:
        assert f"ALTER TABLE {SCHEMA}.{table} ENABLE ROW LEVEL SECURITY" in ddl
        assert f"ALTER TABLE {SCHEMA}.{table} FORCE ROW LEVEL SECURITY" in ddl
    assert f"current_setting('app.current_tenant_id', true) = '{TENANT_ID}'" in ddl
    assert f"company_id = '{TENANT_ID}'" in ddl


def test_ddl_for_distinct_tenants_never_overlaps():
    other = str(uuid.uuid4())
    first = "\n".join(build_tenant_ddl(TENANT_ID))
    second = "\n".join(build_tenant_ddl(other))
    assert TENANT_ID not in second
    assert other not in first


def test_ddl_rejects_unsafe_tenant_id():
    with pytest.raises(InvalidTenantIdentifier):
        build_tenant_ddl("acme'; DROP SCHEMA shared CASCADE; --")


# ── SchemaDeployer ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_deploy_runs_script_in_one_transaction():
    engine = RecordingEngine()
    schema_name = await SchemaDeployer(engine).deploy(TENANT_ID, "Acme Labs")

    assert schema_name == SCHEMA.strip('"')
    assert engine.transactions == 1
    assert engine.statements == build_tenant_ddl(TENANT_ID)


@pytest.mark.asyncio
async def test_deploy_twice_issues_identical_script():
    engine = RecordingEngine()
    deployer = SchemaDeployer(engine)
    first = await deployer.deploy(TENANT_ID, "Acme Labs")
    count = len(engine.statements)
    second = await deployer.deploy(TENANT_ID, "Acme Labs")

    assert first == second
    assert engine.statements[:count] == engine.statements[count:]


@pytest.mark.asyncio
async def test_invalid_id_never_reaches_the_database():
    engine = RecordingEngine()
    with pytest.raises(InvalidTenantIdentifier):
        await SchemaDeployer(engine).deploy("Robert'); DROP TABLE", "Bobby")
    assert engine.transactions == 0


@pytest.mark.asyncio
async def test_rejected_statement_raises_deployment_failure():
    engine = RecordingEngine(fail_on="CREATE POLICY")
    with pytest.raises(DeploymentFailure) as exc_info:
        await SchemaDeployer(engine).deploy(TENANT_ID, "Acme Labs")
    assert exc_info.value.schema_name == SCHEMA.strip('"')
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_unreachable_database_raises_upstream_unavailable():
    engine = RecordingEngine(unreachable=True)
    with pytest.raises(UpstreamUnavailable):
        await SchemaDeployer(engine).deploy(TENANT_ID, "Acme Labs")


@pytest.mark.asyncio
async def test_drop_cascades():
    engine = RecordingEngine()
    await SchemaDeployer(engine).drop(TENANT_ID)
    assert engine.statements == [f"DROP SCHEMA IF EXISTS {SCHEMA} CASCADE"]
