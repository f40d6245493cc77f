"""Tenant data repository -- async CRUD inside one tenant's schema.

Every method takes the tenant's TenantConnection as first argument and opens
a session through it, so statements run with the tenant's schema_translate_map
and RLS claim. Rows are returned as plain dicts keyed by column name; the API
layer renders them.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from sqlalchemy import delete, func, inspect, select

from src.capacity.core.identifiers import parse_uuid
from src.capacity.models.tenant import App, Formula, RawMaterial, Supplier, TenantBase, UserProfile
from src.capacity.services.connection_router import TenantConnection

logger = structlog.get_logger(__name__)

APP_STATUS_ACTIVE = "active"
APP_STATUS_INACTIVE = "inactive"

# Workspace tables that accept direct row CRUD
RECORD_MODELS: dict[str, type[TenantBase]] = {
    "formulas": Formula,
    "suppliers": Supplier,
    "raw_materials": RawMaterial,
}


# ── Serialization Helpers ───────────────────────────────────────────────────


def _to_dict(model: TenantBase) -> dict[str, Any]:
    return {attr.key: getattr(model, attr.key) for attr in inspect(model).mapper.column_attrs}


class TenantDataStore(Protocol):
    async def list_apps(self, handle: TenantConnection, include_inactive: bool = False) -> list[dict]: ...

    async def insert_apps(self, handle: TenantConnection, rows: list[dict]) -> list[dict]: ...

    async def delete_apps(self, handle: TenantConnection, app_ids: list[str]) -> None: ...

    async def set_app_status(self, handle: TenantConnection, app_id: str, status: str) -> dict | None: ...

    async def list_profiles(self, handle: TenantConnection) -> list[dict]: ...

    async def count_profiles(self, handle: TenantConnection) -> int: ...

    async def insert_profile(self, handle: TenantConnection, profile: dict) -> dict: ...

    async def list_records(self, handle: TenantConnection, table: str) -> list[dict]: ...

    async def insert_record(self, handle: TenantConnection, table: str, values: dict) -> dict: ...


# ── Repository ──────────────────────────────────────────────────────────────


class TenantDataRepository:
    """SQLAlchemy implementation of TenantDataStore."""

    # ── Apps ─────────────────────────────────────────────────────────────

    async def list_apps(self, handle: TenantConnection, include_inactive: bool = False) -> list[dict]:
        stmt = select(App).order_by(App.created_at)
        if not include_inactive:
            stmt = stmt.where(App.status == APP_STATUS_ACTIVE)
        async with handle.session() as session:
            result = await session.execute(stmt)
            return [_to_dict(app) for app in result.scalars().all()]

    async def insert_apps(self, handle: TenantConnection, rows: list[dict]) -> list[dict]:
        """Insert catalog entries in one transaction; returns them with ids."""
        async with handle.session() as session:
            apps = [App(**row) for row in rows]
            session.add_all(apps)
            await session.commit()
            for app in apps:
                await session.refresh(app)
            logger.info("tenant_data.apps_inserted", tenant_id=handle.tenant_id, count=len(apps))
            return [_to_dict(app) for app in apps]

    async def delete_apps(self, handle: TenantConnection, app_ids: list[str]) -> None:
        ids = [parse_uuid(app_id) for app_id in app_ids]
        async with handle.session() as session:
            await session.execute(delete(App).where(App.id.in_([i for i in ids if i is not None])))
            await session.commit()

    async def set_app_status(self, handle: TenantConnection, app_id: str, status: str) -> dict | None:
        """Flip an app's status flag. Returns the updated row, or None if unknown."""
        key = parse_uuid(app_id)
        if key is None:
            return None
        async with handle.session() as session:
            app = await session.get(App, key)
            if app is None:
                return None
            app.status = status
            app.updated_at = func.now()
            await session.commit()
            await session.refresh(app)
            return _to_dict(app)

    # ── User Profiles ────────────────────────────────────────────────────

    async def list_profiles(self, handle: TenantConnection) -> list[dict]:
        stmt = (
            select(UserProfile)
            .where(UserProfile.company_id == parse_uuid(handle.tenant_id))
            .order_by(UserProfile.created_at)
        )
        async with handle.session() as session:
            result = await session.execute(stmt)
            return [_to_dict(p) for p in result.scalars().all()]

    async def count_profiles(self, handle: TenantConnection) -> int:
        stmt = select(func.count()).select_from(UserProfile).where(
            UserProfile.company_id == parse_uuid(handle.tenant_id)
        )
        async with handle.session() as session:
            return (await session.execute(stmt)).scalar_one()

    async def insert_profile(self, handle: TenantConnection, profile: dict) -> dict:
        values = {**profile, "id": parse_uuid(profile["id"]), "company_id": parse_uuid(handle.tenant_id)}
        async with handle.session() as session:
            model = UserProfile(**values)
            session.add(model)
            await session.commit()
            await session.refresh(model)
            return _to_dict(model)

    # ── Workspace Records ────────────────────────────────────────────────

    async def list_records(self, handle: TenantConnection, table: str) -> list[dict]:
        model = RECORD_MODELS[table]
        async with handle.session() as session:
            result = await session.execute(select(model).order_by(model.created_at.desc()))
            return [_to_dict(row) for row in result.scalars().all()]

    async def insert_record(self, handle: TenantConnection, table: str, values: dict) -> dict:
        model = RECORD_MODELS[table]
        async with handle.session() as session:
            row = model(**values)
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return _to_dict(row)
