"""Tenant-scoped workspace API.

Every route resolves the caller's tenant from the Supabase access token
through the Connection Router before touching any data, then reads and
writes only inside that tenant's schema.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.capacity.api.deps import get_tenancy, get_workspace_tenant
from src.capacity.api.views import ok, render_app
from src.capacity.core.identifiers import parse_uuid
from src.capacity.core.tenancy import TenancyContext
from src.capacity.core.tenant import get_current_tenant
from src.capacity.schemas.workspace import FormulaCreate, RawMaterialCreate, SupplierCreate
from src.capacity.services.connection_router import TenantConnection

router = APIRouter(prefix="/api/v1/workspace", tags=["workspace"])


async def _create(ctx: TenancyContext, handle: TenantConnection, table: str, body: BaseModel) -> dict:
    values = body.model_dump(exclude_none=True)
    values["created_by"] = parse_uuid(get_current_tenant().user_id)
    return ok(await ctx.tenant_data.insert_record(handle, table, values))


@router.get("")
async def get_workspace(handle: TenantConnection = Depends(get_workspace_tenant)):
    """The caller's resolved tenant."""
    return ok({
        "tenantId": handle.tenant_id,
        "companyName": handle.config.company_name,
        "schemaName": handle.schema_name,
        "status": handle.config.status,
    })


@router.get("/apps")
async def list_workspace_apps(
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    apps = await ctx.tenant_data.list_apps(handle)
    return ok([render_app(app) for app in apps])


@router.get("/formulas")
async def list_formulas(
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return ok(await ctx.tenant_data.list_records(handle, "formulas"))


@router.post("/formulas", status_code=status.HTTP_201_CREATED)
async def create_formula(
    body: FormulaCreate,
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return await _create(ctx, handle, "formulas", body)


@router.get("/suppliers")
async def list_suppliers(
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return ok(await ctx.tenant_data.list_records(handle, "suppliers"))


@router.post("/suppliers", status_code=status.HTTP_201_CREATED)
async def create_supplier(
    body: SupplierCreate,
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return await _create(ctx, handle, "suppliers", body)


@router.get("/raw-materials")
async def list_raw_materials(
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return ok(await ctx.tenant_data.list_records(handle, "raw_materials"))


@router.post("/raw-materials", status_code=status.HTTP_201_CREATED)
async def create_raw_material(
    body: RawMaterialCreate,
    handle: TenantConnection = Depends(get_workspace_tenant),
    ctx: TenancyContext = Depends(get_tenancy),
):
    return await _create(ctx, handle, "raw_materials", body)
