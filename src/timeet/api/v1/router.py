"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.timeet.api.v1 import agendas, health, meetings

router = APIRouter()

router.include_router(health.router)
router.include_router(meetings.router)
router.include_router(agendas.router)
