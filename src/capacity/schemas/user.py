"""Pydantic schemas for the admin users API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field


class UserCreate(BaseModel):
    """Request schema for adding a user to a company."""

    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(..., min_length=6, description="Initial password, at least 6 characters")
    first_name: str = Field(default="", validation_alias=AliasChoices("firstName", "first_name"))
    last_name: str = Field(default="", validation_alias=AliasChoices("lastName", "last_name"))
    role: str = "Employee"
    department: str = ""
    app_access: list[str] = Field(default_factory=list, validation_alias=AliasChoices("appAccess", "app_access"))
