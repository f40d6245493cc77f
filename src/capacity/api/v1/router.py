"""API router -- aggregates the admin, workspace and health routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.capacity.api.v1 import apps, companies, health, users, workspace

router = APIRouter()

router.include_router(health.router)
router.include_router(companies.router)
router.include_router(apps.router)
router.include_router(users.router)
router.include_router(workspace.router)
