"""Admin companies API.

One resource path, /api/admin/companies, with the company id in the ?id=
query parameter. These endpoints operate on the control plane and on every
tenant's schema, so they take no tenant from the caller.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import SQLAlchemyError

from src.capacity.api.deps import get_tenancy, require_param
from src.capacity.api.views import ok, render_company
from src.capacity.core.exceptions import CompanyNotFound, InvalidRequest, TenancyError
from src.capacity.core.tenancy import TenancyContext
from src.capacity.schemas.company import CompanyCreate, CompanyUpdate
from src.capacity.services.companies import map_update_fields
from src.capacity.services.provisioning import CompanySignup

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/companies", tags=["admin"])


async def _company_view(ctx: TenancyContext, company: dict[str, Any]) -> dict[str, Any]:
    """Join a company with its registry row and live schema contents.

    A tenant whose schema cannot be read is reported unhealthy rather than
    failing the whole request.
    """
    tenant = await ctx.registry.lookup(company["id"])
    if tenant is None:
        # Legacy company in the shared database: nothing isolated to inspect
        return render_company(company, None, apps=[], users=0, healthy=True)

    try:
        handle = await ctx.router.resolve(company["id"])
        apps = await ctx.tenant_data.list_apps(handle)
        users = await ctx.tenant_data.count_profiles(handle)
    except (TenancyError, SQLAlchemyError) as e:
        logger.warning("companies.tenant_unreadable", company_id=company["id"], error=str(e))
        return render_company(company, tenant, apps=[], users=0, healthy=False, tenant_error=str(e))
    return render_company(company, tenant, apps=apps, users=users, healthy=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_company(body: CompanyCreate, ctx: TenancyContext = Depends(get_tenancy)):
    """Create a company with an isolated tenant schema, admin account and apps."""
    result = await ctx.workflow.provision(
        CompanySignup(
            company_name=body.company_name,
            admin_email=str(body.admin_user_email),
            admin_name=body.admin_user_name,
            initial_apps=body.initial_apps,
            fields=body.business_fields(),
        )
    )
    return ok(
        {
            "company": {
                "id": result.company["id"],
                "name": result.company["company_name"],
                "adminEmail": result.admin.email,
                "adminPassword": result.admin_password,
                "tenantSchema": result.tenant.schema_name,
                "apps": result.app_keys,
            },
            "adminAccount": {
                "id": result.admin.id,
                "email": result.admin.email,
                "defaultPassword": result.admin_password,
                "instructions": (
                    "Use these credentials to log in to the company dashboard. "
                    "Change the password immediately after first login."
                ),
            },
            "tenantInfo": {
                "schemaName": result.tenant.schema_name,
                "status": result.tenant.status,
                "appsDeployed": len(result.apps),
            },
        },
        message=f'Multi-tenant company "{body.company_name}" created successfully',
    )


@router.get("")
async def get_companies(
    company_id: str | None = Query(default=None, alias="id"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """List every company, or return one when ?id= is given."""
    if company_id is not None:
        company_id = require_param(company_id, "id")
        company = await ctx.companies.get(company_id)
        if company is None:
            raise CompanyNotFound(company_id)
        return ok(await _company_view(ctx, company))

    companies = await ctx.companies.list_all()
    views = [await _company_view(ctx, company) for company in companies]
    return ok(views)


@router.put("")
async def update_company(
    body: CompanyUpdate,
    company_id: str | None = Query(default=None, alias="id"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Update business fields of a company (control plane only)."""
    company_id = require_param(company_id, "id")
    changes = map_update_fields(body.model_dump(exclude_unset=True))
    if not changes:
        raise InvalidRequest("No updatable fields provided", details=", ".join(CompanyUpdate.model_fields))

    company = await ctx.workflow.update_company(company_id, changes)
    return ok(await _company_view(ctx, company), message=f'Company "{company["company_name"]}" updated successfully')


@router.delete("")
async def delete_company(
    company_id: str | None = Query(default=None, alias="id"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Deprovision a company: drop its schema, registry row and record."""
    company_id = require_param(company_id, "id")
    await ctx.workflow.deprovision(company_id)
    return ok({"id": company_id}, message="Company and its isolated database deleted successfully")
