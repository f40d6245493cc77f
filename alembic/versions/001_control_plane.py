"""Control-plane schema: companies and tenant_configurations.

Revision ID: 001_control_plane
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "001_control_plane"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Declared with the "shared" placeholder; env.py maps it to SHARED_SCHEMA
SCHEMA = "shared"


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("company_name", sa.String(255), unique=True, nullable=False),
        sa.Column("industry", sa.String(100), nullable=True),
        sa.Column("company_size", sa.String(50), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("timezone", sa.String(100), nullable=True),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("contact_title", sa.String(100), nullable=True),
        sa.Column("database_isolation", sa.String(20), server_default=sa.text("'schema'")),
        sa.Column("data_retention", sa.String(50), nullable=True),
        sa.Column("backup_frequency", sa.String(50), nullable=True),
        sa.Column("api_rate_limit", sa.Integer(), nullable=True),
        sa.Column("data_residency", sa.String(50), nullable=True),
        sa.Column("compliance_standards", JSONB(), nullable=True),
        sa.Column("sso_enabled", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("two_factor_required", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("subscription_tier", sa.String(50), nullable=True),
        sa.Column("billing_contact", sa.String(255), nullable=True),
        sa.Column("billing_email", sa.String(255), nullable=True),
        sa.Column("payment_method", sa.String(50), nullable=True),
        sa.Column("admin_user_name", sa.String(255), nullable=True),
        sa.Column("admin_user_email", sa.String(255), nullable=True),
        sa.Column("default_departments", JSONB(), nullable=True),
        sa.Column("initial_apps", JSONB(), nullable=True),
        sa.Column("status", sa.String(20), server_default=sa.text("'Active'")),
        sa.Column("setup_complete", sa.Boolean(), server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        schema=SCHEMA,
    )

    op.create_table(
        "tenant_configurations",
        sa.Column("company_id", UUID(as_uuid=True), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("schema_name", sa.String(63), unique=True, nullable=False),
        sa.Column("db_name", sa.String(63), nullable=False),
        sa.Column("status", sa.String(20), server_default=sa.text("'active'")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("connection_string", sa.Text(), nullable=True),
        schema=SCHEMA,
    )


def downgrade() -> None:
    op.drop_table("tenant_configurations", schema=SCHEMA)
    op.drop_table("companies", schema=SCHEMA)
