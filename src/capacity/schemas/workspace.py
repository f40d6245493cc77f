"""Pydantic schemas for tenant workspace records."""

from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class FormulaCreate(BaseModel):
    formula_name: str = Field(..., min_length=1, max_length=255)
    chemical_composition: str | None = None
    density: Decimal | None = Field(default=None, max_digits=10, decimal_places=4)
    ph_level: Decimal | None = Field(default=None, ge=0, le=9.99, max_digits=3, decimal_places=2)


class SupplierCreate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None


class RawMaterialCreate(BaseModel):
    material_name: str = Field(..., min_length=1, max_length=255)
    supplier_id: uuid.UUID | None = None
    quantity: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    unit: str | None = Field(default=None, max_length=50)
    price_per_unit: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
