"""FastAPI dependency injection for tenancy services and workspace tenants.

These dependencies are used in endpoint function signatures to inject the
process TenancyContext and, for workspace routes, the caller's resolved
tenant handle.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from src.capacity.core.exceptions import AuthenticationFailed, InvalidRequest
from src.capacity.core.security import company_id_from_claims, verify_access_token
from src.capacity.core.tenancy import TenancyContext
from src.capacity.core.tenant import reset_tenant_context, set_tenant_context
from src.capacity.services.connection_router import TenantConnection


def get_tenancy(request: Request) -> TenancyContext:
    """Get the TenancyContext built in the application lifespan."""
    return request.app.state.tenancy


def require_param(value: str | None, name: str) -> str:
    """Reject a missing query parameter with a 400."""
    if not value or not value.strip():
        raise InvalidRequest(f"Missing required parameter: {name}")
    return value.strip()


async def get_workspace_tenant(
    request: Request,
    ctx: TenancyContext = Depends(get_tenancy),
) -> AsyncGenerator[TenantConnection, None]:
    """Resolve the caller's tenant handle from the Bearer token.

    Sets the tenant context for the rest of the request and records the
    tenant on request.state for the logging and metrics middleware.

    Raises:
        AuthenticationFailed(401): no or invalid token.
        TenantNotProvisioned(404): the company has no isolated schema.
        TenantSuspended(403): the tenant is not active.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthenticationFailed("Missing bearer token")

    payload = verify_access_token(auth_header[7:], ctx.settings)
    company_id = company_id_from_claims(payload)
    handle = await ctx.router.resolve(company_id)

    request.state.tenant_id = handle.tenant_id
    request.state.user_id = payload["sub"]
    token = set_tenant_context(handle.context(user_id=payload["sub"]))
    try:
        yield handle
    finally:
        reset_tenant_context(token)
