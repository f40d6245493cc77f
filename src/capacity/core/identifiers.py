"""Tenant identifier rules.

Tenant ids are generated server-side (UUIDs from the companies table), but
they still pass through an allow-list before being used to derive schema
names or embedded in DDL text. Schema names are a pure function of the id:
lowercase, '-' mapped to '_'. Since the allow-list admits no '_', the mapping
cannot collide.
"""

from __future__ import annotations

import re
import uuid

from src.capacity.core.exceptions import InvalidTenantIdentifier

# Lowercase alphanumeric + hyphens, must start/end alphanumeric, 3-50 chars.
# Canonical UUIDs (36 chars) fit.
TENANT_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{1,48}[a-z0-9]$")

# PostgreSQL truncates identifiers beyond 63 bytes
_MAX_IDENTIFIER_LENGTH = 63

SCHEMA_PREFIX = "tenant_"
DATABASE_PREFIX = "company_"


def validate_tenant_id(tenant_id: str) -> str:
    """Return the normalized tenant id or raise InvalidTenantIdentifier."""
    if not isinstance(tenant_id, str):
        raise InvalidTenantIdentifier(repr(tenant_id))
    normalized = tenant_id.strip().lower()
    if not TENANT_ID_PATTERN.match(normalized):
        raise InvalidTenantIdentifier(tenant_id)
    return normalized


def schema_name_for(tenant_id: str) -> str:
    """Derive the tenant schema name, e.g. "tenant_3f2a..._9c"."""
    normalized = validate_tenant_id(tenant_id)
    return f"{SCHEMA_PREFIX}{normalized.replace('-', '_')}"


def database_name_for(tenant_id: str) -> str:
    """Derive the logical database name recorded in the registry."""
    normalized = validate_tenant_id(tenant_id)
    return f"{DATABASE_PREFIX}{normalized.replace('-', '_')}"


def quote_identifier(name: str) -> str:
    """Double-quote an identifier we produced ourselves.

    Only names matching [a-z0-9_] are accepted, so no escaping is needed.
    """
    if not re.fullmatch(r"[a-z_][a-z0-9_]*", name) or len(name) > _MAX_IDENTIFIER_LENGTH:
        raise InvalidTenantIdentifier(name)
    return f'"{name}"'


def quote_literal(tenant_id: str) -> str:
    """Render a validated tenant id as a SQL string literal for policy text."""
    return "'" + validate_tenant_id(tenant_id) + "'"


def parse_uuid(value: str | None) -> uuid.UUID | None:
    """Parse a row id from a query string or path; None when it is not a UUID."""
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None
