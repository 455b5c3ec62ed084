"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.prospector.api.v1 import health, leads, permits, sync

router = APIRouter()

router.include_router(health.router)
router.include_router(leads.router)
router.include_router(permits.router)
router.include_router(sync.router)
