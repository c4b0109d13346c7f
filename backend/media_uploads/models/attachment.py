"""Attachment records, upload states and upload payloads."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({UploadStatus.DONE, UploadStatus.ERROR, UploadStatus.CANCELLED})


@dataclass(frozen=True)
class UploadState:
    """Upload status of one attachment; progress is only meaningful while uploading."""

    status: UploadStatus = UploadStatus.PENDING
    progress: int = 0
    error: str | None = None

    @classmethod
    def pending(cls) -> UploadState:
        return cls()

    @classmethod
    def uploading(cls, progress: int = 0) -> UploadState:
        return cls(UploadStatus.UPLOADING, max(0, min(100, int(progress))))

    @classmethod
    def done(cls) -> UploadState:
        return cls(UploadStatus.DONE, 100)

    @classmethod
    def failed(cls, message: str) -> UploadState:
        return cls(UploadStatus.ERROR, error=message)

    @classmethod
    def cancelled(cls) -> UploadState:
        return cls(UploadStatus.CANCELLED)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class MediaFile:
    """A candidate file selected or dropped by the user."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class FileInfo:
    """Name, type and declared size of a file whose bytes have not been read yet."""

    filename: str
    content_type: str
    size: int = 0


def new_attachment_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Attachment:
    """One entry of the user-visible attachment list."""

    id: str
    filename: str
    content_type: str
    size_bytes: int
    preview_location: str | None = None
    remote_location: str | None = None
    alt_text: str = ""
    is_main: bool = False
    upload: UploadState = field(default_factory=UploadState.pending)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def location(self) -> str | None:
        """URL to render: the remote one once uploaded, else the local preview."""
        return self.remote_location or self.preview_location

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, status='{self.upload.status.value}')>"
