"""In-memory domain models for upload sessions."""

from media_uploads.models.attachment import (
    Attachment,
    FileInfo,
    MediaFile,
    UploadState,
    UploadStatus,
    new_attachment_id,
)

__all__ = [
    "Attachment",
    "FileInfo",
    "MediaFile",
    "UploadState",
    "UploadStatus",
    "new_attachment_id",
]
