"""In-memory registry of open upload sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from media_uploads.config import settings
from media_uploads.exceptions import SessionNotFoundError
from media_uploads.services.media_session import MediaUploadSession

if TYPE_CHECKING:
    from media_uploads.services.transfer import TransferOperation

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Creates and tracks upload sessions sharing one transfer operation."""

    def __init__(self, transfer: TransferOperation):
        self._transfer = transfer
        self._sessions: dict[str, MediaUploadSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self) -> MediaUploadSession:
        session = MediaUploadSession(self._transfer)
        self._sessions[session.id] = session
        logger.info("Upload session %s opened (%d open)", session.id, len(self._sessions))
        return session

    def get(self, session_id: str) -> MediaUploadSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch()
        return session

    async def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        await session.close()

    async def expire_idle(self, max_idle: float | None = None, now: float | None = None) -> list[str]:
        """Close sessions nobody has touched for max_idle seconds. Busy sessions are kept."""
        if max_idle is None:
            max_idle = settings.session_idle_timeout_seconds
        stale = [
            s for s in self._sessions.values()
            if not s.is_busy and s.idle_seconds(now) >= max_idle
        ]
        for session in stale:
            self._sessions.pop(session.id, None)
            try:
                await session.close()
            except Exception as e:
                logger.error("Closing idle session %s failed: %s", session.id, e)
        if stale:
            logger.info("Expired %d idle upload session(s) (%d open)", len(stale), len(self._sessions))
        return [s.id for s in stale]

    async def close_all(self) -> int:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            try:
                await session.close()
            except Exception as e:
                logger.error("Closing session %s failed: %s", session.id, e)
        return len(sessions)
