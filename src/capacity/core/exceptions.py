"""Tenancy exceptions.

Every error raised by the provisioning and routing services derives from
TenancyError and carries the HTTP status the API layer should answer with.
The handlers in api/errors.py render them into the JSON envelope
{"success": false, "error": ..., "details": ...}.
"""

from __future__ import annotations


class TenancyError(Exception):
    """Base exception for tenant provisioning and routing."""

    status_code = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidRequest(TenancyError):
    """Raised for missing or malformed request parameters."""

    status_code = 400


class AuthenticationFailed(TenancyError):
    """Raised when a workspace request carries no valid access token."""

    status_code = 401


class InvalidTenantIdentifier(TenancyError):
    """Raised when a tenant id fails the identifier allow-list."""

    status_code = 400

    def __init__(self, tenant_id: str):
        super().__init__(
            "Invalid tenant identifier",
            details=f"{tenant_id!r} is not a valid tenant id",
        )
        self.tenant_id = tenant_id


class TenantNotProvisioned(TenancyError):
    """Raised when a tenant has no registry row or no deployed schema."""

    status_code = 404

    def __init__(self, tenant_id: str, details: str | None = None):
        super().__init__(f"Tenant not provisioned: {tenant_id}", details=details)
        self.tenant_id = tenant_id


class TenantSuspended(TenancyError):
    """Raised when a tenant exists but its status is not active."""

    status_code = 403

    def __init__(self, tenant_id: str, status: str):
        super().__init__(f"Tenant is {status}: {tenant_id}")
        self.tenant_id = tenant_id
        self.status = status


class CompanyNotFound(TenancyError):
    """Raised when the control plane has no company record for an id."""

    status_code = 404

    def __init__(self, company_id: str):
        super().__init__("Company not found", details=company_id)
        self.company_id = company_id


class AppNotFound(TenancyError):
    """Raised when a tenant's catalog has no app with the given id."""

    status_code = 404

    def __init__(self, app_id: str):
        super().__init__("App not found", details=app_id)
        self.app_id = app_id


class UnknownAppTemplate(TenancyError):
    """Raised when a company requests an app key outside the template set."""

    status_code = 400

    def __init__(self, keys: list[str]):
        super().__init__("Unknown initial apps", details=", ".join(keys))
        self.keys = keys


class DuplicateCompany(TenancyError):
    """Raised when a company name is already registered."""

    status_code = 400

    def __init__(self, company_name: str, details: str | None = None):
        super().__init__(f"Company already exists: {company_name}", details=details)
        self.company_name = company_name


class DeploymentFailure(TenancyError):
    """Raised when the tenant DDL script fails."""

    def __init__(self, schema_name: str, details: str | None = None):
        super().__init__(f"Schema deployment failed for {schema_name}", details=details)
        self.schema_name = schema_name


class IdentityProviderError(TenancyError):
    """Raised when the identity provider rejects a request."""

    def __init__(self, message: str, status_code: int = 500, details: str | None = None):
        super().__init__(message, details=details)
        self.status_code = status_code


class UpstreamUnavailable(TenancyError):
    """Raised when the database or identity service cannot be reached."""

    def __init__(self, service: str, details: str | None = None):
        super().__init__(f"{service} unavailable", details=details)
        self.service = service


class ProvisioningFailed(TenancyError):
    """Raised when a company-creation step fails.

    Completed steps have already been compensated in reverse order when this
    is raised. compensation_errors lists the compensations that themselves
    failed and need manual remediation.
    """

    def __init__(
        self,
        stage: str,
        completed: list[str],
        cause: BaseException,
        compensation_errors: list[str] | None = None,
    ):
        detail = str(cause)
        if isinstance(cause, TenancyError) and cause.details:
            detail = f"{cause.message}: {cause.details}"
        super().__init__(f"Provisioning failed at stage '{stage}'", details=detail)
        # A rejected request (duplicate name, bad email) stays a client error
        if isinstance(cause, TenancyError) and cause.status_code < 500:
            self.status_code = cause.status_code
        self.stage = stage
        self.completed = completed
        self.cause = cause
        self.compensation_errors = compensation_errors or []
