"""App catalog templates.

A freshly provisioned company gets one catalog entry per requested app key.
Only the three built-in modules can be seeded; custom apps are added later
through the admin apps API.
"""

from __future__ import annotations

from copy import deepcopy

from src.capacity.core.exceptions import UnknownAppTemplate

APP_TEMPLATES: dict[str, dict] = {
    "formulas": {
        "app_name": "Formulas",
        "app_description": "Chemical formula management system",
        "app_icon": "Database",
        "app_color": "#10B981",
        "table_name": "formulas",
        "schema_json": {
            "fields": [
                {"name": "formula_name", "type": "text", "required": True},
                {"name": "chemical_composition", "type": "text", "required": True},
                {"name": "density", "type": "decimal", "required": False},
                {"name": "ph_level", "type": "decimal", "required": False},
            ]
        },
    },
    "suppliers": {
        "app_name": "Suppliers",
        "app_description": "Supplier relationship management",
        "app_icon": "Building2",
        "app_color": "#3B82F6",
        "table_name": "suppliers",
        "schema_json": {
            "fields": [
                {"name": "company_name", "type": "text", "required": True},
                {"name": "contact_person", "type": "text", "required": True},
                {"name": "email", "type": "email", "required": True},
                {"name": "phone", "type": "text", "required": False},
                {"name": "address", "type": "textarea", "required": False},
            ]
        },
    },
    "raw-materials": {
        "app_name": "Raw Materials",
        "app_description": "Raw material inventory management",
        "app_icon": "Zap",
        "app_color": "#F59E0B",
        "table_name": "raw_materials",
        "schema_json": {
            "fields": [
                {"name": "material_name", "type": "text", "required": True},
                {"name": "supplier_id", "type": "reference", "required": True},
                {"name": "quantity", "type": "decimal", "required": True},
                {"name": "unit", "type": "text", "required": True},
                {"name": "price_per_unit", "type": "decimal", "required": False},
            ]
        },
    },
}

DEFAULT_INITIAL_APPS: list[str] = ["formulas", "suppliers", "raw-materials"]


def validate_app_keys(keys: list[str] | None) -> list[str]:
    """Return the requested keys (defaults when None), de-duplicated in order."""
    if keys is None:
        return list(DEFAULT_INITIAL_APPS)
    unknown = [k for k in keys if k not in APP_TEMPLATES]
    if unknown:
        raise UnknownAppTemplate(unknown)
    return list(dict.fromkeys(keys))


DEFAULT_UI_CONFIG = {
    "showInDashboard": True,
    "enableSearch": True,
    "enableFilters": True,
    "enableExport": True,
}

DEFAULT_PERMISSIONS_CONFIG = {
    "adminAccess": ["create", "read", "update", "delete"],
    "managerAccess": ["create", "read", "update"],
    "userAccess": ["read"],
}


def build_app_rows(keys: list[str]) -> list[dict]:
    """Catalog rows to insert for the given (validated) template keys."""
    rows = []
    for key in keys:
        row = deepcopy(APP_TEMPLATES[key])
        row["status"] = "active"
        row["ui_config"] = deepcopy(DEFAULT_UI_CONFIG)
        row["permissions_config"] = deepcopy(DEFAULT_PERMISSIONS_CONFIG)
        rows.append(row)
    return rows
