"""Pydantic schemas for the admin apps API."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AppField(BaseModel):
    """One field of a custom app's schema declaration."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, validation_alias=AliasChoices("fieldName", "name"))
    type: str = "text"
    label: str | None = None
    required: bool = False


class AppCreate(BaseModel):
    """Request schema for adding a custom app to a tenant's catalog."""

    model_config = ConfigDict(extra="ignore")

    app_name: str = Field(..., min_length=1, max_length=255, validation_alias=AliasChoices("appName", "app_name"))
    app_description: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("appDescription", "app_description")
    )
    table_name: str = Field(
        ...,
        min_length=1,
        max_length=63,
        pattern=r"^[a-z_][a-z0-9_]*$",
        validation_alias=AliasChoices("tableName", "table_name"),
    )
    app_icon: str = Field(default="Database", max_length=50, validation_alias=AliasChoices("appIcon", "app_icon"))
    app_color: str = Field(
        default="#3B82F6",
        pattern=r"^#[0-9A-Fa-f]{6}$",
        validation_alias=AliasChoices("appColor", "app_color"),
    )
    fields: list[AppField] = Field(default_factory=list)
    field_schema: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("schema", "schema_json"))
    ui_config: dict[str, Any] | None = Field(default=None, validation_alias=AliasChoices("uiConfig", "ui_config"))
    permissions_config: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("permissions", "permissions_config")
    )

    def to_row(self, default_ui: dict, default_permissions: dict) -> dict[str, Any]:
        """Catalog row for this app; the field list becomes schema_json when no schema is given."""
        schema_json = self.field_schema or {"fields": [f.model_dump() for f in self.fields]}
        return {
            "app_name": self.app_name,
            "app_description": self.app_description,
            "app_icon": self.app_icon,
            "app_color": self.app_color,
            "table_name": self.table_name,
            "schema_json": schema_json,
            "ui_config": self.ui_config or dict(default_ui),
            "permissions_config": self.permissions_config or dict(default_permissions),
            "status": "active",
        }
