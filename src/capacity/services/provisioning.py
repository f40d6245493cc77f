"""Company provisioning workflow.

Creating a company runs four stages in strict sequence:

    Record Created → Schema Deployed → Admin Identity Created → Apps Seeded → Done

Each side effect registers a compensating action as soon as it succeeds. On
the first failure the registered compensations run in reverse order and the
caller gets ProvisioningFailed naming the failed stage, the stages that had
completed, and any compensation that itself failed. Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any

import structlog
from sqlalchemy.engine import make_url

from src.capacity.config import Settings
from src.capacity.core.exceptions import CompanyNotFound, ProvisioningFailed
from src.capacity.core.identifiers import database_name_for
from src.capacity.core.monitoring import provisioning_compensations_total, provisioning_stages_total
from src.capacity.services.app_catalog import build_app_rows, validate_app_keys
from src.capacity.services.companies import CompanyStore, new_company_record
from src.capacity.services.connection_router import ConnectionRouter, TenantConnection
from src.capacity.services.identity import IdentityProvider, IdentityUser
from src.capacity.services.schema_deployer import SchemaDeployer
from src.capacity.services.tenant_data import TenantDataStore
from src.capacity.services.tenant_registry import (
    STATUS_ACTIVE,
    STATUS_SUSPENDED,
    TenantConfig,
    TenantRegistry,
)

logger = structlog.get_logger(__name__)

STAGE_RECORD_CREATED = "Record Created"
STAGE_SCHEMA_DEPLOYED = "Schema Deployed"
STAGE_ADMIN_CREATED = "Admin Identity Created"
STAGE_APPS_SEEDED = "Apps Seeded"
STAGE_DONE = "Done"

ADMIN_ROLE = "Capacity Admin"
DEFAULT_USER_ROLE = "Employee"

# Company status values that keep the tenant routable
_ACTIVE_COMPANY_STATUSES = {"Active", "active"}


@dataclass
class CompanySignup:
    """Validated create-company request."""

    company_name: str
    admin_email: str
    admin_name: str
    initial_apps: list[str] | None = None
    # Optional business fields, snake_case column names
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProvisioningResult:
    company: dict[str, Any]
    tenant: TenantConfig
    admin: IdentityUser
    admin_password: str
    app_keys: list[str]
    apps: list[dict[str, Any]]


@dataclass
class NewUser:
    email: str
    password: str
    first_name: str = ""
    last_name: str = ""
    role: str = DEFAULT_USER_ROLE
    department: str = ""
    app_access: list[str] = field(default_factory=list)


Compensation = Callable[[], Awaitable[None]]


class _Saga:
    """Tracks completed stages and their compensations for one run."""

    def __init__(self, tenant_id: str | None = None) -> None:
        self.tenant_id = tenant_id
        self.stage = STAGE_RECORD_CREATED
        self.completed: list[str] = []
        self._compensations: list[tuple[str, str, Compensation]] = []

    def begin(self, stage: str) -> None:
        self.stage = stage

    def on_failure(self, description: str, action: Compensation) -> None:
        self._compensations.append((self.stage, description, action))

    def complete(self) -> None:
        self.completed.append(self.stage)
        provisioning_stages_total.labels(stage=self.stage, outcome="completed").inc()
        logger.info("provisioning.stage_completed", stage=self.stage, tenant_id=self.tenant_id)

    async def compensate(self) -> list[str]:
        """Run compensations newest first; returns the ones that failed."""
        errors: list[str] = []
        for stage, description, action in reversed(self._compensations):
            try:
                await action()
            except Exception as e:
                provisioning_compensations_total.labels(stage=stage, outcome="failed").inc()
                logger.error(
                    "provisioning.compensation_failed",
                    stage=stage,
                    action=description,
                    tenant_id=self.tenant_id,
                    error=str(e),
                )
                errors.append(f"{description}: {e}")
            else:
                provisioning_compensations_total.labels(stage=stage, outcome="succeeded").inc()
                logger.info("provisioning.compensated", stage=stage, action=description, tenant_id=self.tenant_id)
        return errors


class ProvisioningWorkflow:
    """Creates, updates and deprovisions companies across all collaborators."""

    def __init__(
        self,
        companies: CompanyStore,
        deployer: SchemaDeployer,
        registry: TenantRegistry,
        router: ConnectionRouter,
        identity: IdentityProvider,
        tenant_data: TenantDataStore,
        settings: Settings,
    ) -> None:
        self._companies = companies
        self._deployer = deployer
        self._registry = registry
        self._router = router
        self._identity = identity
        self._tenant_data = tenant_data
        self._settings = settings

    # ── Create ───────────────────────────────────────────────────────────

    async def provision(self, signup: CompanySignup) -> ProvisioningResult:
        """Run the creation saga for one company.

        Raises:
            UnknownAppTemplate: an initial app key is not a known template
                (checked before anything is written).
            ProvisioningFailed: a stage failed; earlier stages were undone.
        """
        app_keys = validate_app_keys(signup.initial_apps)
        saga = _Saga()
        logger.info("provisioning.started", company_name=signup.company_name, apps=app_keys)

        try:
            saga.begin(STAGE_RECORD_CREATED)
            record = new_company_record({
                **signup.fields,
                "company_name": signup.company_name,
                "admin_user_name": signup.admin_name,
                "admin_user_email": signup.admin_email,
                "initial_apps": app_keys,
            })
            company = await self._companies.create(record)
            tenant_id = saga.tenant_id = company["id"]
            saga.on_failure("delete company record", lambda: self._delete_company(tenant_id))
            saga.complete()

            saga.begin(STAGE_SCHEMA_DEPLOYED)
            tenant = await self._deploy_schema(saga, tenant_id, signup.company_name)
            saga.complete()

            saga.begin(STAGE_ADMIN_CREATED)
            handle = await self._router.resolve(tenant_id)
            admin = await self._create_admin(saga, handle, signup, app_keys)
            saga.complete()

            saga.begin(STAGE_APPS_SEEDED)
            apps = await self._tenant_data.insert_apps(handle, build_app_rows(app_keys))
            seeded_ids = [str(app["id"]) for app in apps]
            saga.on_failure("delete seeded apps", lambda: self._tenant_data.delete_apps(handle, seeded_ids))
            saga.complete()
        except Exception as e:
            provisioning_stages_total.labels(stage=saga.stage, outcome="failed").inc()
            logger.error(
                "provisioning.stage_failed",
                stage=saga.stage,
                tenant_id=saga.tenant_id,
                completed=saga.completed,
                error=str(e),
            )
            compensation_errors = await saga.compensate()
            raise ProvisioningFailed(saga.stage, saga.completed, e, compensation_errors) from e

        logger.info("provisioning.completed", tenant_id=tenant_id, schema_name=tenant.schema_name, stage=STAGE_DONE)
        company["admin_user_email"] = admin.email
        return ProvisioningResult(
            company=company,
            tenant=tenant,
            admin=admin,
            admin_password=self._settings.DEFAULT_ADMIN_PASSWORD,
            app_keys=app_keys,
            apps=apps,
        )

    async def _deploy_schema(self, saga: _Saga, tenant_id: str, company_name: str) -> TenantConfig:
        schema_name = await self._deployer.deploy(tenant_id, company_name)
        saga.on_failure("drop tenant schema", lambda: self._deployer.drop(tenant_id))

        tenant = TenantConfig(
            company_id=tenant_id,
            company_name=company_name,
            schema_name=schema_name,
            db_name=database_name_for(tenant_id),
            status=STATUS_ACTIVE,
            connection_string=self._connection_descriptor(schema_name),
        )
        await self._registry.upsert(tenant)
        saga.on_failure("remove registry row", lambda: self._forget_tenant(tenant_id))
        return tenant

    async def _create_admin(
        self,
        saga: _Saga,
        handle: TenantConnection,
        signup: CompanySignup,
        app_keys: list[str],
    ) -> IdentityUser:
        admin = await self._identity.create_user(
            signup.admin_email,
            self._settings.DEFAULT_ADMIN_PASSWORD,
            {"first_name": signup.admin_name, "last_name": "", "company_name": signup.company_name},
            {"company_id": handle.tenant_id, "role": ADMIN_ROLE},
        )
        saga.on_failure("delete admin identity", lambda: self._identity.delete_user(admin.id))

        await self._tenant_data.insert_profile(handle, {
            "id": admin.id,
            "email": admin.email,
            "first_name": signup.admin_name,
            "last_name": "",
            "role": ADMIN_ROLE,
            "app_access": list(app_keys),
        })
        await self._companies.update(handle.tenant_id, {"admin_user_email": admin.email})
        return admin

    def _connection_descriptor(self, schema_name: str) -> str:
        url = make_url(self._settings.DATABASE_URL).set(drivername="postgresql")
        url = url.update_query_dict({"search_path": schema_name})
        return url.render_as_string(hide_password=True)

    async def _delete_company(self, tenant_id: str) -> None:
        await self._companies.delete(tenant_id)

    async def _forget_tenant(self, tenant_id: str) -> None:
        self._router.evict(tenant_id)
        await self._registry.remove(tenant_id)

    # ── Update ───────────────────────────────────────────────────────────

    async def update_company(self, company_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply business-field changes; a status change also flips the tenant.

        A rename is copied into the registry row as well.

        Raises:
            CompanyNotFound: no company with this id.
        """
        company = await self._companies.update(company_id, changes)
        if company is None:
            raise CompanyNotFound(company_id)
        tenant_id = str(company["id"])

        tenant = await self._registry.lookup(tenant_id)
        if tenant is not None:
            updated = tenant
            if "status" in changes:
                tenant_status = STATUS_ACTIVE if changes["status"] in _ACTIVE_COMPANY_STATUSES else STATUS_SUSPENDED
                updated = replace(updated, status=tenant_status)
            if "company_name" in changes:
                updated = replace(updated, company_name=changes["company_name"])
            if updated != tenant:
                await self._registry.upsert(updated)
                self._router.evict(tenant_id)
                logger.info(
                    "provisioning.tenant_updated",
                    tenant_id=tenant_id,
                    status=updated.status,
                    company_name=updated.company_name,
                )

        logger.info("provisioning.company_updated", company_id=tenant_id, fields=sorted(changes))
        return company

    # ── Users ────────────────────────────────────────────────────────────

    async def add_user(self, company_id: str, user: NewUser) -> dict[str, Any]:
        """Create an identity account and its tenant profile.

        The identity account is deleted again if the profile insert fails.
        """
        company = await self._companies.get(company_id)
        if company is None:
            raise CompanyNotFound(company_id)
        handle = await self._router.resolve(company_id)

        identity = await self._identity.create_user(
            user.email,
            user.password,
            {
                "first_name": user.first_name,
                "last_name": user.last_name,
                "department": user.department,
                "company_name": company["company_name"],
            },
            {"company_id": handle.tenant_id, "role": user.role},
        )
        try:
            return await self._tenant_data.insert_profile(handle, {
                "id": identity.id,
                "email": identity.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
                "department": user.department,
                "app_access": list(user.app_access),
            })
        except Exception:
            logger.error("provisioning.user_profile_failed", tenant_id=company_id, user_id=identity.id)
            await self._identity.delete_user(identity.id)
            raise

    # ── Deprovision ──────────────────────────────────────────────────────

    async def deprovision(self, company_id: str) -> None:
        """Drop the tenant schema, its registry row and the company record.

        Destructive and not reversible. Companies without a schema (legacy
        shared-database tenants) only lose their record.
        """
        company = await self._companies.get(company_id)
        if company is None:
            raise CompanyNotFound(company_id)
        tenant_id = str(company["id"])

        tenant = await self._registry.lookup(tenant_id)
        self._router.evict(tenant_id)
        if tenant is not None:
            await self._deployer.drop(tenant_id)
            await self._registry.remove(tenant_id)
            logger.warning("provisioning.tenant_dropped", tenant_id=tenant_id, schema_name=tenant.schema_name)

        await self._companies.delete(tenant_id)
        logger.warning("provisioning.company_deleted", company_id=tenant_id)
