"""API route registration."""

from fastapi import APIRouter

from media_uploads.api.routes import health, sessions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
