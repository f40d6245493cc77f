"""Response shapes for the admin and workspace APIs.

Rows come out of the repositories as snake_case dicts; these helpers turn
them into the camelCase objects the dashboard consumes. FastAPI's encoder
takes care of UUID, Decimal and datetime values.
"""

from __future__ import annotations

from typing import Any

from src.capacity.services.tenant_registry import TenantConfig

DATABASE_TYPE_ISOLATED = "Isolated Schema"
DATABASE_TYPE_SHARED = "Shared (Legacy)"


def ok(data: Any, message: str | None = None) -> dict[str, Any]:
    """Success envelope."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def render_app(app: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(app["id"]),
        "appName": app["app_name"],
        "appDescription": app.get("app_description"),
        "appIcon": app.get("app_icon"),
        "appColor": app.get("app_color"),
        "tableName": app["table_name"],
        "schema": app.get("schema_json") or {},
        "uiConfig": app.get("ui_config") or {},
        "permissionsConfig": app.get("permissions_config") or {},
        "status": app.get("status"),
        "createdAt": app.get("created_at"),
        "updatedAt": app.get("updated_at"),
    }


def render_profile(profile: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(profile["id"]),
        "email": profile["email"],
        "firstName": profile.get("first_name"),
        "lastName": profile.get("last_name"),
        "role": profile.get("role"),
        "department": profile.get("department"),
        "appAccess": profile.get("app_access") or [],
        "createdAt": profile.get("created_at"),
    }


def render_company(
    company: dict[str, Any],
    tenant: TenantConfig | None,
    apps: list[dict[str, Any]],
    users: int,
    healthy: bool,
    tenant_error: str | None = None,
) -> dict[str, Any]:
    """Company record joined with its tenant registry row and schema contents."""
    view = {
        "id": company["id"],
        "name": company["company_name"],
        "adminEmail": company.get("admin_user_email"),
        "adminName": company.get("admin_user_name"),
        "status": company.get("status"),
        "industry": company.get("industry"),
        "companySize": company.get("company_size"),
        "website": company.get("website"),
        "country": company.get("country"),
        "timezone": company.get("timezone"),
        "contactName": company.get("contact_name"),
        "contactEmail": company.get("contact_email"),
        "contactPhone": company.get("contact_phone"),
        "contactTitle": company.get("contact_title"),
        "subscriptionTier": company.get("subscription_tier"),
        "createdAt": company.get("created_at"),
        "updatedAt": company.get("updated_at"),
        # Tenant information
        "tenantSchema": tenant.schema_name if tenant else None,
        "tenantStatus": tenant.status if tenant else None,
        "tenantCreatedAt": tenant.created_at if tenant else None,
        "hasIsolatedDatabase": tenant is not None,
        "databaseType": DATABASE_TYPE_ISOLATED if tenant else DATABASE_TYPE_SHARED,
        "tenantHealthy": healthy,
        # Schema contents
        "users": users,
        "apps": [render_app(app) for app in apps],
    }
    if tenant_error:
        view["tenantError"] = tenant_error
    return view
