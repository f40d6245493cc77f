"""Admin users API: identity accounts and tenant profiles of a company."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, status

from src.capacity.api.deps import get_tenancy, require_param
from src.capacity.api.views import ok, render_profile
from src.capacity.core.exceptions import CompanyNotFound
from src.capacity.core.tenancy import TenancyContext
from src.capacity.schemas.user import UserCreate
from src.capacity.services.provisioning import NewUser

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


@router.get("")
async def list_users(
    company_id: str | None = Query(default=None, alias="companyId"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """User profiles stored in the company's tenant schema."""
    company_id = require_param(company_id, "companyId")
    if await ctx.companies.get(company_id) is None:
        raise CompanyNotFound(company_id)
    handle = await ctx.router.resolve(company_id)
    profiles = await ctx.tenant_data.list_profiles(handle)
    return ok([render_profile(p) for p in profiles])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    company_id: str | None = Query(default=None, alias="companyId"),
    ctx: TenancyContext = Depends(get_tenancy),
):
    """Create an identity account and its tenant profile."""
    company_id = require_param(company_id, "companyId")
    profile = await ctx.workflow.add_user(
        company_id,
        NewUser(
            email=str(body.email),
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
            role=body.role,
            department=body.department,
            app_access=body.app_access,
        ),
    )
    logger.info("users.created", tenant_id=company_id, user_id=str(profile["id"]))
    return ok(render_profile(profile), message="User created successfully")
