"""SQL layer tests: tenant connections, registry store, company and tenant repositories.

Statements run against a recording engine double that compiles each one with
the PostgreSQL dialect, so the emitted SQL and its bound parameters can be
asserted without a database.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError

from src.capacity.core.exceptions import DuplicateCompany, TenantNotProvisioned, UpstreamUnavailable
from src.capacity.core.identifiers import database_name_for, schema_name_for
from src.capacity.models.tenant import App, UserProfile
from src.capacity.services.companies import CompanyRepository
from src.capacity.services.connection_router import TenantConnection
from src.capacity.services.tenant_data import TenantDataRepository
from src.capacity.services.tenant_registry import SqlTenantConfigStore, TenantConfig

TENANT_ID = "3f2a9c1e-0b4d-4c2a-9e1f-7a8b9c0d1e2f"
SCHEMA_NAME = schema_name_for(TENANT_ID)
NOW = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


def _render(statement, params=None) -> tuple[str, dict]:
    compiled = statement.compile(dialect=postgresql.dialect())
    return str(compiled), dict(params if params is not None else compiled.params)


def _config(tenant_id: str = TENANT_ID) -> TenantConfig:
    return TenantConfig(
        company_id=tenant_id,
        company_name="Acme Labs",
        schema_name=schema_name_for(tenant_id),
        db_name=database_name_for(tenant_id),
        created_at=NOW,
    )


# ── Recording Doubles ────────────────────────────────────────────────────────


class Row(SimpleNamespace):
    @property
    def _mapping(self) -> dict:
        return vars(self)


class RecordingResult:
    def __init__(self, rows: list | None = None, rowcount: int = 0) -> None:
        self._rows = list(rows or [])
        self.rowcount = rowcount

    def first(self):
        return self._rows[0] if self._rows else None

    def one(self):
        (row,) = self._rows
        return row

    def all(self) -> list:
        return list(self._rows)

    def scalar_one(self):
        return self._rows[0]

    def scalars(self) -> RecordingResult:
        return self


class RecordingConnection:
    def __init__(self, engine: RecordingEngine) -> None:
        self._engine = engine

    async def execution_options(self, **options) -> RecordingConnection:
        self._engine.options.append(options)
        return self

    async def execute(self, statement, params=None) -> RecordingResult:
        if self._engine.unreachable:
            raise OSError("connection refused")
        sql, bound = _render(statement, params)
        self._engine.statements.append((sql, bound))
        if self._engine.fail_with is not None:
            raise self._engine.fail_with
        return self._engine.results.pop(0) if self._engine.results else RecordingResult()

    async def commit(self) -> None:
        self._engine.statements.append(("COMMIT", {}))


class RecordingEngine:
    """Stands in for AsyncEngine; records how it was opened and what ran."""

    def __init__(self, results: list[RecordingResult] | None = None, unreachable: bool = False) -> None:
        self.results = list(results or [])
        self.unreachable = unreachable
        self.fail_with: Exception | None = None
        self.opened: list[str] = []
        self.options: list[dict] = []
        self.statements: list[tuple[str, dict]] = []

    @property
    def sql(self) -> list[str]:
        return [sql for sql, _ in self.statements]

    @asynccontextmanager
    async def begin(self):
        self.opened.append("begin")
        yield RecordingConnection(self)

    @asynccontextmanager
    async def connect(self):
        self.opened.append("connect")
        yield RecordingConnection(self)


class RecordingSession:
    """Stands in for AsyncSession inside TenantDataRepository."""

    def __init__(self, results: list[RecordingResult] | None = None, rows: dict | None = None) -> None:
        self.results = list(results or [])
        self.rows = rows or {}
        self.added: list = []
        self.commits = 0
        self.statements: list[tuple[str, dict]] = []

    def add(self, model) -> None:
        self.added.append(model)

    def add_all(self, models) -> None:
        self.added.extend(models)

    async def commit(self) -> None:
        self.commits += 1

    async def refresh(self, model) -> None:
        if model.id is None:
            model.id = uuid.uuid4()
        if model.created_at is None:
            model.created_at = NOW

    async def execute(self, statement) -> RecordingResult:
        self.statements.append(_render(statement))
        return self.results.pop(0) if self.results else RecordingResult()

    async def get(self, model, key):
        return self.rows.get(key)


class SessionHandle(TenantConnection):
    """TenantConnection handing out one RecordingSession."""

    def __init__(self, settings, session: RecordingSession) -> None:
        super().__init__(None, settings, _config())
        self._session = session
        self.sessions_opened = 0

    @asynccontextmanager
    async def session(self):
        self.sessions_opened += 1
        yield self._session


# ── TenantConnection ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_connection_is_scoped_to_tenant_schema_and_claim(settings):
    engine = RecordingEngine()
    handle = TenantConnection(engine, settings, _config())

    async with handle.connection():
        pass

    assert engine.options == [{"schema_translate_map": {"shared": settings.SHARED_SCHEMA, "tenant": SCHEMA_NAME}}]
    assert engine.sql == [
        f"SET app.current_tenant_id = '{TENANT_ID}'",
        f'SET search_path TO "{SCHEMA_NAME}"',
        "COMMIT",
    ]


@pytest.mark.asyncio
async def test_connection_to_unreachable_database(settings):
    handle = TenantConnection(RecordingEngine(unreachable=True), settings, _config())

    with pytest.raises(UpstreamUnavailable):
        async with handle.connection():
            pass


@pytest.mark.asyncio
async def test_activate_checks_information_schema(settings):
    engine = RecordingEngine(results=[RecordingResult([Row(exists=1)])])
    handle = TenantConnection(engine, settings, _config())

    await handle.activate()

    ((sql, params),) = engine.statements
    assert "information_schema.schemata" in sql
    assert params == {"schema": SCHEMA_NAME}


@pytest.mark.asyncio
async def test_activate_without_schema_is_not_provisioned(settings):
    handle = TenantConnection(RecordingEngine(), settings, _config())

    with pytest.raises(TenantNotProvisioned) as exc_info:
        await handle.activate()
    assert SCHEMA_NAME in exc_info.value.details


@pytest.mark.asyncio
async def test_activate_against_unreachable_database(settings):
    handle = TenantConnection(RecordingEngine(unreachable=True), settings, _config())

    with pytest.raises(UpstreamUnavailable):
        await handle.activate()


# ── SqlTenantConfigStore ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_save_upserts_on_company_id(settings):
    engine = RecordingEngine()
    await SqlTenantConfigStore(engine, settings).save(_config())

    ((sql, params),) = engine.statements
    assert engine.opened == ["begin"]
    assert engine.options == [{"schema_translate_map": {"shared": settings.SHARED_SCHEMA}}]
    assert sql.startswith("INSERT INTO shared.tenant_configurations")
    assert "ON CONFLICT (company_id) DO UPDATE SET" in sql
    assert "status = excluded.status" in sql
    assert "company_id = excluded.company_id" not in sql
    assert params["company_id"] == uuid.UUID(TENANT_ID)
    assert params["schema_name"] == SCHEMA_NAME


@pytest.mark.asyncio
async def test_fetch_builds_config_from_row(settings):
    row = Row(
        company_id=uuid.UUID(TENANT_ID),
        company_name="Acme Labs",
        schema_name=SCHEMA_NAME,
        db_name=database_name_for(TENANT_ID),
        status="suspended",
        created_at=NOW,
        connection_string=None,
    )
    engine = RecordingEngine(results=[RecordingResult([row])])

    config = await SqlTenantConfigStore(engine, settings).fetch(TENANT_ID)

    assert config.company_id == TENANT_ID
    assert config.status == "suspended"
    assert engine.opened == ["connect"]
    assert engine.statements[0][1] == {"company_id_1": uuid.UUID(TENANT_ID)}


@pytest.mark.asyncio
async def test_fetch_of_non_uuid_never_queries(settings):
    engine = RecordingEngine()
    assert await SqlTenantConfigStore(engine, settings).fetch("acme-labs") is None
    assert engine.opened == []


@pytest.mark.asyncio
async def test_delete_reports_whether_a_row_existed(settings):
    engine = RecordingEngine(results=[RecordingResult(rowcount=1), RecordingResult(rowcount=0)])
    store = SqlTenantConfigStore(engine, settings)

    assert await store.delete(TENANT_ID) is True
    assert await store.delete(TENANT_ID) is False
    assert engine.sql[0].startswith("DELETE FROM shared.tenant_configurations")


# ── CompanyRepository ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_company_returns_row_with_string_id(settings):
    company_id = uuid.uuid4()
    engine = RecordingEngine(results=[RecordingResult([Row(id=company_id, company_name="Acme Labs")])])

    company = await CompanyRepository(engine, settings).create({"company_name": "Acme Labs"})

    assert company == {"id": str(company_id), "company_name": "Acme Labs"}
    assert engine.opened == ["begin"]
    assert engine.sql[0].startswith("INSERT INTO shared.companies")
    assert "RETURNING" in engine.sql[0]


@pytest.mark.asyncio
async def test_create_company_with_taken_name(settings):
    engine = RecordingEngine()
    engine.fail_with = IntegrityError(
        "INSERT INTO shared.companies",
        {},
        Exception('duplicate key value violates unique constraint "companies_company_name_key"'),
    )

    with pytest.raises(DuplicateCompany) as exc_info:
        await CompanyRepository(engine, settings).create({"company_name": "Acme Labs"})
    assert exc_info.value.status_code == 400
    assert "companies_company_name_key" in exc_info.value.details


@pytest.mark.asyncio
async def test_update_company_stamps_updated_at(settings):
    company_id = str(uuid.uuid4())
    engine = RecordingEngine(results=[RecordingResult([Row(id=uuid.UUID(company_id), industry="Chemicals")])])

    company = await CompanyRepository(engine, settings).update(company_id.upper(), {"industry": "Chemicals"})

    assert company["id"] == company_id
    sql, params = engine.statements[0]
    assert sql.startswith("UPDATE shared.companies SET")
    assert "updated_at=now()" in sql
    assert params["industry"] == "Chemicals"
    assert params["id_1"] == uuid.UUID(company_id)


@pytest.mark.asyncio
async def test_company_repository_unreachable_database(settings):
    with pytest.raises(UpstreamUnavailable):
        await CompanyRepository(RecordingEngine(unreachable=True), settings).list_all()


# ── TenantDataRepository ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_insert_profile_is_stamped_with_handle_tenant(settings):
    session = RecordingSession()
    handle = SessionHandle(settings, session)
    user_id = str(uuid.uuid4())

    profile = await TenantDataRepository().insert_profile(
        handle,
        {"id": user_id, "email": "b@acme.com", "company_id": str(uuid.uuid4())},
    )

    (model,) = session.added
    assert isinstance(model, UserProfile)
    assert model.company_id == uuid.UUID(TENANT_ID)
    assert profile["id"] == uuid.UUID(user_id)
    assert session.commits == 1


@pytest.mark.asyncio
async def test_list_profiles_reads_tenant_table_filtered_by_company(settings):
    profile = UserProfile(id=uuid.uuid4(), email="a@acme.com", company_id=uuid.UUID(TENANT_ID))
    session = RecordingSession(results=[RecordingResult([profile])])

    profiles = await TenantDataRepository().list_profiles(SessionHandle(settings, session))

    assert [p["email"] for p in profiles] == ["a@acme.com"]
    ((sql, params),) = session.statements
    assert "FROM tenant.user_profiles" in sql
    assert "tenant.user_profiles.company_id =" in sql
    assert params["company_id_1"] == uuid.UUID(TENANT_ID)


@pytest.mark.asyncio
async def test_insert_apps_returns_rows_with_ids(settings):
    session = RecordingSession()
    rows = [
        {"app_name": "Formulas", "table_name": "formulas", "status": "active"},
        {"app_name": "Suppliers", "table_name": "suppliers", "status": "active"},
    ]

    apps = await TenantDataRepository().insert_apps(SessionHandle(settings, session), rows)

    assert [a["table_name"] for a in apps] == ["formulas", "suppliers"]
    assert all(isinstance(a["id"], uuid.UUID) for a in apps)
    assert all(isinstance(m, App) for m in session.added)
    assert session.commits == 1


@pytest.mark.asyncio
async def test_delete_apps_skips_malformed_ids(settings):
    session = RecordingSession()
    keep = uuid.uuid4()

    await TenantDataRepository().delete_apps(SessionHandle(settings, session), [str(keep), "not-a-uuid"])

    ((sql, params),) = session.statements
    assert sql.startswith("DELETE FROM tenant.apps")
    assert params["id_1"] == [keep]
    assert session.commits == 1


@pytest.mark.asyncio
async def test_set_app_status_of_malformed_id_opens_no_session(settings):
    handle = SessionHandle(settings, RecordingSession())

    assert await TenantDataRepository().set_app_status(handle, "formulas", "inactive") is None
    assert handle.sessions_opened == 0


@pytest.mark.asyncio
async def test_set_app_status_flips_flag(settings):
    app_id = uuid.uuid4()
    app = App(id=app_id, app_name="Formulas", table_name="formulas", status="active", created_at=NOW)
    session = RecordingSession(rows={app_id: app})

    updated = await TenantDataRepository().set_app_status(SessionHandle(settings, session), str(app_id), "inactive")

    assert updated["status"] == "inactive"
    assert session.commits == 1
