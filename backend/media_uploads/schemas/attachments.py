"""Upload session schemas: what the resource form renders and submits."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from media_uploads.models import Attachment, UploadStatus
from media_uploads.services.admission import Rejection, RejectionReason
from media_uploads.services.attachment_list import Submission


class AttachmentOut(BaseModel):
    """One attachment card."""
    id: str
    filename: str
    content_type: str
    size_bytes: int
    preview_url: str | None = None  # Only while the local preview is held
    remote_url: str | None = None
    alt_text: str = ""
    is_main: bool = False
    status: UploadStatus
    progress: int = 0
    error: str | None = None

    @classmethod
    def from_attachment(cls, attachment: Attachment, preview_base: str) -> "AttachmentOut":
        return cls(
            id=attachment.id,
            filename=attachment.filename,
            content_type=attachment.content_type,
            size_bytes=attachment.size_bytes,
            preview_url=f"{preview_base}/{attachment.id}/preview" if attachment.preview_location else None,
            remote_url=attachment.remote_location,
            alt_text=attachment.alt_text,
            is_main=attachment.is_main,
            status=attachment.upload.status,
            progress=attachment.upload.progress,
            error=attachment.upload.error,
        )


class RejectionOut(BaseModel):
    filename: str
    reason: RejectionReason
    message: str

    @classmethod
    def from_rejection(cls, rejection: Rejection) -> "RejectionOut":
        return cls(filename=rejection.filename, reason=rejection.reason, message=rejection.message)


class SessionOut(BaseModel):
    """Session snapshot with live scheduler counters."""
    id: str
    created_at: datetime
    attachments: list[AttachmentOut] = []
    active_count: int = 0
    queued_count: int = 0
    pending_held_count: int = 0
    max_attachments: int
    is_settled: bool = True


class AddFilesOut(BaseModel):
    attachments: list[AttachmentOut] = []
    rejections: list[RejectionOut] = []
    notices: list[str] = []
    started: bool = True
    pending_held_count: int = 0


class StartHeldOut(BaseModel):
    started: int


class AttachmentUpdate(BaseModel):
    alt_text: str = Field(max_length=500)


class SubmissionOut(BaseModel):
    """Payload handed to resource creation."""
    image_urls: list[str] = []
    main_image_url: str | None = None
    alt_texts: dict[str, str] = {}
    is_settled: bool = True

    @classmethod
    def from_submission(cls, submission: Submission, is_settled: bool) -> "SubmissionOut":
        return cls(
            image_urls=submission.image_urls,
            main_image_url=submission.main_image_url,
            alt_texts=submission.alt_texts,
            is_settled=is_settled,
        )
