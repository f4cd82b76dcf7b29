"""Master API router — mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from breakitdown.api import deconstruct, health, identify, image_search, sessions, workspaces

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(identify.router)
api_router.include_router(deconstruct.router)
api_router.include_router(workspaces.router)
api_router.include_router(sessions.router)
api_router.include_router(image_search.router)
