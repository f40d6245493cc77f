"""Control-plane models -- tables that exist once in the shared schema.

Company holds the business record of a customer; TenantConfiguration is the
tenant registry row mapping a company to its isolated schema. Neither is
duplicated per tenant.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.capacity.core.database import SharedBase


class Company(SharedBase):
    """Customer company registered on the platform."""

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    company_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company_size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timezone: Mapped[str | None] = mapped_column(String(100), nullable=True)

    contact_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_title: Mapped[str | None] = mapped_column(String(100), nullable=True)

    database_isolation: Mapped[str] = mapped_column(String(20), server_default=text("'schema'"))
    data_retention: Mapped[str | None] = mapped_column(String(50), nullable=True)
    backup_frequency: Mapped[str | None] = mapped_column(String(50), nullable=True)
    api_rate_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    data_residency: Mapped[str | None] = mapped_column(String(50), nullable=True)
    compliance_standards: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    sso_enabled: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    two_factor_required: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))

    subscription_tier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    billing_contact: Mapped[str | None] = mapped_column(String(255), nullable=True)
    billing_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    admin_user_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    admin_user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_departments: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    initial_apps: Mapped[list | None] = mapped_column(JSONB, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default="Active", server_default=text("'Active'"))
    setup_complete: Mapped[bool] = mapped_column(Boolean, default=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )


class TenantConfiguration(SharedBase):
    """Tenant registry row: which schema a company's data lives in."""

    __tablename__ = "tenant_configurations"

    company_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    schema_name: Mapped[str] = mapped_column(String(63), unique=True, nullable=False)
    db_name: Mapped[str] = mapped_column(String(63), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="active", server_default=text("'active'"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    connection_string: Mapped[str | None] = mapped_column(Text, nullable=True)
