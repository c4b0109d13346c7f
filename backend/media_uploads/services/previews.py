"""Revocable local preview handles for attachments that are not uploaded yet."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from media_uploads.models import MediaFile

logger = logging.getLogger(__name__)

PREVIEW_SCHEME = "preview://"


@dataclass(frozen=True)
class Preview:
    content_type: str
    data: bytes


class PreviewStore:
    """Holds file bytes behind opaque handles until they are released."""

    def __init__(self) -> None:
        self._previews: dict[str, Preview] = {}  # handle -> payload

    def create(self, file: MediaFile) -> str:
        handle = f"{PREVIEW_SCHEME}{uuid.uuid4().hex}"
        self._previews[handle] = Preview(content_type=file.content_type, data=file.data)
        return handle

    def get(self, handle: str) -> Preview | None:
        return self._previews.get(handle)

    def release(self, handle: str | None) -> bool:
        """Drop a handle. Returns False when it was already released."""
        if handle is None:
            return False
        released = self._previews.pop(handle, None) is not None
        if released:
            logger.debug("Released preview %s", handle)
        return released

    def is_live(self, handle: str) -> bool:
        return handle in self._previews

    def clear(self) -> int:
        count = len(self._previews)
        self._previews.clear()
        return count

    def __len__(self) -> int:
        return len(self._previews)
