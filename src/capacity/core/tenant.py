"""Tenant context propagation via Python contextvars.

The TenantContext is set once the Connection Router has resolved the caller's
tenant and is readable anywhere further down the call stack via
get_current_tenant(). Logging and Sentry use it to tag events with the
tenant the request is operating on.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass


@dataclass(frozen=True)
class TenantContext:
    """Immutable tenant context for the current request."""

    tenant_id: str
    schema_name: str  # e.g., "tenant_3f2a9c1e_..."
    user_id: str | None = None


_tenant_context: contextvars.ContextVar[TenantContext] = contextvars.ContextVar("tenant_context")


def get_current_tenant() -> TenantContext:
    """Get the tenant context for the current request.

    Raises RuntimeError if no tenant context has been set (i.e., the call
    is not within a tenant-scoped request).
    """
    try:
        return _tenant_context.get()
    except LookupError:
        raise RuntimeError("No tenant context set -- request is not tenant-scoped")


def set_tenant_context(ctx: TenantContext) -> contextvars.Token[TenantContext]:
    """Set the tenant context for the current request. Returns a token for reset."""
    return _tenant_context.set(ctx)


def reset_tenant_context(token: contextvars.Token[TenantContext]) -> None:
    """Restore the context that was active before set_tenant_context()."""
    _tenant_context.reset(token)
