"""Pydantic schemas for the admin companies API.

Request bodies use the camelCase keys of the admin dashboard. The create
schema also accepts the short forms name / adminEmail / adminName.
"""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator


class CompanyCreate(BaseModel):
    """Request schema for creating a company and its isolated tenant."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    company_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("companyName", "name", "company_name"),
        examples=["Acme Labs"],
    )
    admin_user_email: EmailStr = Field(
        ...,
        validation_alias=AliasChoices("adminUserEmail", "adminEmail", "admin_user_email"),
        examples=["a@acme.com"],
    )
    admin_user_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("adminUserName", "adminName", "admin_user_name"),
        examples=["A. Dmin"],
    )
    initial_apps: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("initialApps", "initial_apps"),
        description="App template keys to seed; defaults to formulas, suppliers, raw-materials",
    )

    industry: str | None = None
    company_size: str | None = Field(default=None, validation_alias=AliasChoices("companySize", "company_size"))
    website: str | None = None
    country: str | None = None
    timezone: str | None = None
    contact_name: str | None = Field(default=None, validation_alias=AliasChoices("contactName", "contact_name"))
    contact_email: str | None = Field(default=None, validation_alias=AliasChoices("contactEmail", "contact_email"))
    contact_phone: str | None = Field(default=None, validation_alias=AliasChoices("contactPhone", "contact_phone"))
    contact_title: str | None = Field(default=None, validation_alias=AliasChoices("contactTitle", "contact_title"))
    data_retention: str | None = Field(default=None, validation_alias=AliasChoices("dataRetention", "data_retention"))
    backup_frequency: str | None = Field(
        default=None, validation_alias=AliasChoices("backupFrequency", "backup_frequency")
    )
    api_rate_limit: int | None = Field(default=None, ge=1, validation_alias=AliasChoices("apiRateLimit", "api_rate_limit"))
    data_residency: str | None = Field(default=None, validation_alias=AliasChoices("dataResidency", "data_residency"))
    compliance_standards: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("complianceStandards", "compliance_standards")
    )
    sso_enabled: bool = Field(default=False, validation_alias=AliasChoices("ssoEnabled", "sso_enabled"))
    two_factor_required: bool = Field(
        default=False, validation_alias=AliasChoices("twoFactorRequired", "two_factor_required")
    )
    subscription_tier: str | None = Field(
        default=None, validation_alias=AliasChoices("subscriptionTier", "subscription_tier")
    )
    billing_contact: str | None = Field(default=None, validation_alias=AliasChoices("billingContact", "billing_contact"))
    billing_email: str | None = Field(default=None, validation_alias=AliasChoices("billingEmail", "billing_email"))
    payment_method: str | None = Field(default=None, validation_alias=AliasChoices("paymentMethod", "payment_method"))
    default_departments: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("defaultDepartments", "default_departments")
    )

    def business_fields(self) -> dict:
        """Optional company columns, without the identity and app fields."""
        return self.model_dump(
            exclude={"company_name", "admin_user_email", "admin_user_name", "initial_apps"},
            exclude_none=True,
        )


class CompanyUpdate(BaseModel):
    """Request schema for updating a company's business fields.

    Only the keys below are applied; anything else in the body is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    companyName: str | None = Field(default=None, min_length=1, max_length=255)
    industry: str | None = None
    companySize: str | None = None
    website: str | None = None
    country: str | None = None
    timezone: str | None = None
    contactName: str | None = None
    contactEmail: str | None = None
    contactPhone: str | None = None
    contactTitle: str | None = None
    subscriptionTier: str | None = None
    status: str | None = None

    @field_validator("companyName", "status")
    @classmethod
    def not_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("may be omitted but not null")
        return v
