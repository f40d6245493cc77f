"""Admin apps API: a tenant's app catalog.

/api/admin/apps?companyId=<id> lists, adds and deactivates catalog entries
inside the company's tenant schema.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, status

from src.capacity.api.deps import get_tenancy, require_param
from src.capacity.api.views import ok, render_app
from src.capacity.core.exceptions import AppNotFound, CompanyNotFound
from src.capacity.core.tenancy import TenancyContext
from src.capacity.schemas.app import AppCreate
from src.capacity.services.app_catalog import DEFAULT_PERMISSIONS_CONFIG, DEFAULT_UI_CONFIG
from src.capacity.services.connection_router import TenantConnection
from src.capacity.services.tenant_data import APP_STATUS_INACTIVE

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/apps", tags=["admin"])


async def _company_tenant(ctx: TenancyContext, company_id: str | None) -> TenantConnection:
    company_id = require_param(company_id, "companyId")
    if await ctx.companies.get(company_id) is None:
        raise CompanyNotFound(company_id)
    return await ctx.router.resolve(company_id)


@router.get("")
async def list_apps(
    company_id: str | None = Query(default=None, alias="companyId"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Active catalog entries of the company."""
    handle = await _company_tenant(ctx, company_id)
    apps = await ctx.tenant_data.list_apps(handle)
    return ok([render_app(app) for app in apps])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_app(
    body: AppCreate,
    company_id: str | None = Query(default=None, alias="companyId"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Add a custom app to the company's catalog."""
    handle = await _company_tenant(ctx, company_id)
    (app,) = await ctx.tenant_data.insert_apps(handle, [body.to_row(DEFAULT_UI_CONFIG, DEFAULT_PERMISSIONS_CONFIG)])
    logger.info("apps.created", tenant_id=handle.tenant_id, app_id=str(app["id"]), table_name=app["table_name"])
    return ok(render_app(app), message=f'App "{app["app_name"]}" created successfully')


@router.delete("")
async def deactivate_app(
    company_id: str | None = Query(default=None, alias="companyId"),
    app_id: str | None = Query(default=None, alias="id"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Deactivate an app. Its rows stay; it disappears from the catalog."""
    app_id = require_param(app_id, "id")
    handle = await _company_tenant(ctx, company_id)
    app = await ctx.tenant_data.set_app_status(handle, app_id, APP_STATUS_INACTIVE)
    if app is None:
        raise AppNotFound(app_id)
    logger.info("apps.deactivated", tenant_id=handle.tenant_id, app_id=app_id)
    return ok(render_app(app), message=f'App "{app["app_name"]}" deactivated')
