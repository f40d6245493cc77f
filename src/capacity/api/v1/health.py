"""Health check endpoints.

Provides liveness (/health) and readiness (/health/ready) checks. Readiness
covers the control-plane database and the identity provider configuration.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.capacity.api.deps import get_tenancy
from src.capacity.core.tenancy import TenancyContext

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(ctx: TenancyContext = Depends(get_tenancy)):
    """Basic liveness check. No external dependencies are checked."""
    return {"status": "ok", "environment": ctx.settings.ENVIRONMENT.value}


async def _check_dependencies(ctx: TenancyContext) -> dict:
    """Check database connectivity and identity configuration."""
    checks: dict = {"database": "ok", "identity": "ok"}

    try:
        if ctx.engine is None:
            raise RuntimeError("no database engine configured")
        async with ctx.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        tenants = await ctx.registry.list_all()
        checks["tenants"] = len(tenants)
    except Exception as e:
        checks["database"] = "error"
        checks["database_error"] = str(e)

    if not ctx.settings.identity_configured():
        checks["identity"] = "not_configured"

    return checks


@router.get("/health/ready")
async def readiness_check(ctx: TenancyContext = Depends(get_tenancy)):
    """Readiness check: 200 when the database answers and identity is configured, 503 otherwise."""
    checks = await _check_dependencies(ctx)
    all_healthy = checks["database"] == "ok" and checks["identity"] == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "degraded",
            "checks": checks,
        },
    )
