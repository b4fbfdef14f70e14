"""Top-level API router."""

from __future__ import annotations

from fastapi import APIRouter

from .endpoints.artifacts import router as artifacts_router
from .endpoints.documents import router as documents_router
from .endpoints.lifecycle import router as lifecycle_router
from .endpoints.live_reload import router as live_reload_router

api_router = APIRouter(prefix="/api")
api_router.include_router(documents_router)
api_router.include_router(live_reload_router)
api_router.include_router(artifacts_router)
api_router.include_router(lifecycle_router)
