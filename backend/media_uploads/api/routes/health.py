"""Health check."""

from fastapi import APIRouter

from media_uploads import __version__
from media_uploads.config import settings
from media_uploads.schemas.system import HealthResponse
from media_uploads.services import get_session_registry

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight connectivity check."""
    return HealthResponse(
        version=__version__,
        mode=settings.mode,
        open_sessions=len(get_session_registry()),
    )


@router.get("/ping")
async def ping():
    """Ultra-lightweight ping."""
    return {"status": "ok"}
