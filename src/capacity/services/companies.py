"""Company records in the control plane.

A company row is the business record of a customer (contact, billing,
compliance settings). It is created first during provisioning and its id
becomes the tenant id. Rows are exchanged as plain dicts keyed by column
name, with the id rendered as a string.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from src.capacity.config import Settings
from src.capacity.core.database import control_plane_connection
from src.capacity.core.exceptions import DuplicateCompany
from src.capacity.core.identifiers import parse_uuid
from src.capacity.models.shared import Company
from src.capacity.services.app_catalog import DEFAULT_INITIAL_APPS

logger = structlog.get_logger(__name__)

# Request keys accepted by the update operation, mapped to columns
UPDATE_FIELD_MAP: dict[str, str] = {
    "companyName": "company_name",
    "industry": "industry",
    "companySize": "company_size",
    "website": "website",
    "country": "country",
    "timezone": "timezone",
    "contactName": "contact_name",
    "contactEmail": "contact_email",
    "contactPhone": "contact_phone",
    "contactTitle": "contact_title",
    "subscriptionTier": "subscription_tier",
    "status": "status",
}


def new_company_record(fields: dict[str, Any]) -> dict[str, Any]:
    """Fill defaults for a new company from snake_case request fields.

    company_name, admin_user_name and admin_user_email are required; contact
    and billing fields fall back to the admin's name and email.
    """
    admin_name = fields["admin_user_name"]
    admin_email = fields["admin_user_email"]

    def pick(key: str, default: Any) -> Any:
        value = fields.get(key)
        return default if value in (None, "") else value

    return {
        "company_name": fields["company_name"],
        "industry": pick("industry", "Technology"),
        "company_size": pick("company_size", "1-50"),
        "website": pick("website", None),
        "country": pick("country", "United States"),
        "timezone": pick("timezone", "America/New_York"),
        "contact_name": pick("contact_name", admin_name),
        "contact_email": pick("contact_email", admin_email),
        "contact_phone": pick("contact_phone", None),
        "contact_title": pick("contact_title", "Admin"),
        "database_isolation": "schema",
        "data_retention": pick("data_retention", "7-years"),
        "backup_frequency": pick("backup_frequency", "daily"),
        "api_rate_limit": pick("api_rate_limit", 1000),
        "data_residency": pick("data_residency", "us-east"),
        "compliance_standards": pick("compliance_standards", ["ISO9001"]),
        "sso_enabled": bool(fields.get("sso_enabled")),
        "two_factor_required": bool(fields.get("two_factor_required")),
        "subscription_tier": pick("subscription_tier", "professional"),
        "billing_contact": pick("billing_contact", admin_name),
        "billing_email": pick("billing_email", admin_email),
        "payment_method": pick("payment_method", "invoice"),
        "admin_user_name": admin_name,
        "admin_user_email": admin_email,
        "default_departments": pick("default_departments", ["Production", "Operations"]),
        "initial_apps": pick("initial_apps", list(DEFAULT_INITIAL_APPS)),
        "status": "Active",
        "setup_complete": True,
    }


def map_update_fields(body: dict[str, Any]) -> dict[str, Any]:
    """Translate an update body to column changes, ignoring unknown keys."""
    return {UPDATE_FIELD_MAP[k]: v for k, v in body.items() if k in UPDATE_FIELD_MAP}


class CompanyStore(Protocol):
    async def create(self, record: dict[str, Any]) -> dict[str, Any]: ...

    async def get(self, company_id: str) -> dict[str, Any] | None: ...

    async def list_all(self) -> list[dict[str, Any]]: ...

    async def update(self, company_id: str, changes: dict[str, Any]) -> dict[str, Any] | None: ...

    async def delete(self, company_id: str) -> bool: ...


_table = Company.__table__


def _row_to_dict(row: Any) -> dict[str, Any]:
    data = dict(row._mapping)
    data["id"] = str(data["id"])
    return data


class CompanyRepository:
    """CompanyStore backed by shared.companies."""

    def __init__(self, engine: AsyncEngine, settings: Settings) -> None:
        self._engine = engine
        self._settings = settings

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a company and return it with its generated id.

        Raises:
            DuplicateCompany: the company name is taken.
        """
        stmt = insert(_table).values(**record).returning(*_table.c)
        try:
            async with control_plane_connection(self._engine, self._settings, write=True) as conn:
                row = (await conn.execute(stmt)).one()
        except IntegrityError as e:
            raise DuplicateCompany(record["company_name"], str(e.orig)) from e
        company = _row_to_dict(row)
        logger.info("companies.created", company_id=company["id"], company_name=company["company_name"])
        return company

    async def get(self, company_id: str) -> dict[str, Any] | None:
        key = parse_uuid(company_id)
        if key is None:
            return None
        async with control_plane_connection(self._engine, self._settings) as conn:
            row = (await conn.execute(select(_table).where(_table.c.id == key))).first()
        return _row_to_dict(row) if row else None

    async def list_all(self) -> list[dict[str, Any]]:
        stmt = select(_table).order_by(_table.c.created_at.desc())
        async with control_plane_connection(self._engine, self._settings) as conn:
            rows = (await conn.execute(stmt)).all()
        return [_row_to_dict(row) for row in rows]

    async def update(self, company_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
        """Apply column changes; returns the updated row, or None if unknown."""
        key = parse_uuid(company_id)
        if key is None:
            return None
        if not changes:
            return await self.get(company_id)
        stmt = (
            update(_table)
            .where(_table.c.id == key)
            .values(**changes, updated_at=func.now())
            .returning(*_table.c)
        )
        try:
            async with control_plane_connection(self._engine, self._settings, write=True) as conn:
                row = (await conn.execute(stmt)).first()
        except IntegrityError as e:
            raise DuplicateCompany(changes.get("company_name", company_id), str(e.orig)) from e
        return _row_to_dict(row) if row else None

    async def delete(self, company_id: str) -> bool:
        key = parse_uuid(company_id)
        if key is None:
            return False
        async with control_plane_connection(self._engine, self._settings, write=True) as conn:
            result = await conn.execute(delete(_table).where(_table.c.id == key))
        return result.rowcount > 0
