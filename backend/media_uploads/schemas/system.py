"""Health check schemas."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    version: str
    service: str = "media-uploads"
    mode: str = "dev"
    open_sessions: int = 0
