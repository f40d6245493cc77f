#!/usr/bin/env python3
"""CLI script to provision a company with an isolated tenant schema.

Usage:
    python scripts/provision_tenant.py --name "Acme Labs" --admin-email a@acme.com --admin-name "A. Dmin"
    python scripts/provision_tenant.py --name "Acme Labs" --admin-email a@acme.com --admin-name "A. Dmin" --apps formulas suppliers

Connects directly to the database using DATABASE_URL from environment or .env file
and runs the same provisioning workflow as POST /api/admin/companies: company
record, schema with RLS, registry row, admin identity, seeded apps. A failed
stage is rolled back before the script exits non-zero.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

# Ensure project root is on sys.path so we can import src.capacity
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def provision(name: str, admin_email: str, admin_name: str, apps: list[str] | None) -> int:
    """Provision a company by calling the workflow directly."""
    from src.capacity.api.middleware.logging import configure_structlog
    from src.capacity.config import get_settings
    from src.capacity.core.database import close_db, init_db
    from src.capacity.core.exceptions import TenancyError
    from src.capacity.core.tenancy import build_tenancy_context
    from src.capacity.services.provisioning import CompanySignup

    settings = get_settings()
    configure_structlog(settings)
    ctx = build_tenancy_context(settings)

    try:
        # Initialize shared schema if needed
        await init_db(ctx.engine, settings)

        print(f"Provisioning company: name={name}, admin={admin_email}")
        try:
            result = await ctx.workflow.provision(
                CompanySignup(company_name=name, admin_email=admin_email, admin_name=admin_name, initial_apps=apps)
            )
        except TenancyError as e:
            print(f"Provisioning failed: {e.message}", file=sys.stderr)
            if e.details:
                print(f"  Details: {e.details}", file=sys.stderr)
            for error in getattr(e, "compensation_errors", []):
                print(f"  Needs manual cleanup: {error}", file=sys.stderr)
            return 1

        print("Company provisioned successfully:")
        print(f"  ID:       {result.company['id']}")
        print(f"  Name:     {result.company['company_name']}")
        print(f"  Schema:   {result.tenant.schema_name}")
        print(f"  Apps:     {', '.join(result.app_keys)}")
        print(f"  Admin:    {result.admin.email}")
        print(f"  Password: {result.admin_password} (change after first login)")
        return 0
    finally:
        # Clean up
        await close_db(ctx.engine)


def main() -> None:
    parser = argparse.ArgumentParser(description="Provision a company with an isolated tenant schema")
    parser.add_argument("--name", required=True, help="Company name (e.g., 'Acme Labs')")
    parser.add_argument("--admin-email", required=True, help="Company admin email")
    parser.add_argument("--admin-name", required=True, help="Company admin display name")
    parser.add_argument(
        "--apps",
        nargs="*",
        default=None,
        help="App templates to seed (default: formulas suppliers raw-materials)",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(provision(args.name, args.admin_email, args.admin_name, args.apps)))


if __name__ == "__main__":
    main()
