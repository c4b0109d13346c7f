"""Upload session: the entry points the resource form calls."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from media_uploads.models import Attachment, FileInfo, MediaFile
from media_uploads.services.admission import AdmissionController, AdmissionResult, Rejection
from media_uploads.services.attachment_list import AttachmentList, Submission
from media_uploads.services.previews import PreviewStore
from media_uploads.services.task_queue import UploadTask
from media_uploads.services.worker_pool import UploadWorkerPool

if TYPE_CHECKING:
    from media_uploads.services.transfer import TransferOperation

logger = logging.getLogger(__name__)


@dataclass
class AddFilesResult:
    attachments: list[Attachment] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    notices: list[str] = field(default_factory=list)
    started: bool = True


class MediaUploadSession:
    """One form's attachment list, admission policy and upload pool."""

    def __init__(
        self,
        transfer: TransferOperation,
        session_id: str | None = None,
        concurrency_limit: int | None = None,
        max_attachments: int | None = None,
        max_file_size: int | None = None,
        allowed_content_types: list[str] | None = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.created_at = datetime.now(timezone.utc)
        self.previews = PreviewStore()
        self.attachments = AttachmentList(self.previews)
        self.admission = AdmissionController(
            max_attachments=max_attachments,
            max_file_size=max_file_size,
            allowed_content_types=allowed_content_types,
        )
        self.pool = UploadWorkerPool(self.attachments, transfer, limit=concurrency_limit)
        self._closed = False
        self.last_activity = time.monotonic()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_busy(self) -> bool:
        """True while uploads are running or queued. Held uploads do not count."""
        return not self.pool.is_idle

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def idle_seconds(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.last_activity

    @property
    def pending_held_count(self) -> int:
        """Number of files waiting for start_held_uploads()."""
        return self.pool.pending_held_count

    @property
    def active_count(self) -> int:
        return self.pool.active_count

    def screen(self, files: list[FileInfo]) -> AdmissionResult:
        """Check declared sizes and the remaining capacity before any bytes are read."""
        return self.admission.admit(files, len(self.attachments))

    def add_files(self, files: Iterable[MediaFile], auto_start: bool = True) -> AddFilesResult:
        """Admit a batch, append placeholders and queue (or hold) their uploads."""
        if self._closed:
            raise RuntimeError(f"Upload session {self.id} is closed")

        admission = self.admission.admit(list(files), len(self.attachments))

        added: list[Attachment] = []
        tasks: list[UploadTask] = []
        for file in admission.admitted:
            attachment = self.attachments.append(file)
            added.append(attachment)
            tasks.append(UploadTask(attachment_id=attachment.id, file=file))

        self.pool.enqueue(tasks, auto_start=auto_start)

        if added:
            logger.info(
                "Session %s: added %d file(s), %d rejected, %s",
                self.id, len(added), len(admission.rejections),
                "started" if auto_start else "held",
            )
        return AddFilesResult(
            attachments=added,
            rejections=admission.rejections,
            notices=admission.notices,
            started=auto_start,
        )

    def start_held_uploads(self) -> int:
        return self.pool.start_held()

    def remove_attachment(self, attachment_id: str) -> bool:
        """Cancel the upload, release the preview, then drop the record."""
        if attachment_id not in self.attachments:
            return False
        self.pool.cancel(attachment_id)
        self.attachments.remove_by_id(attachment_id)
        logger.info("Session %s: removed attachment %s", self.id, attachment_id)
        return True

    def set_main_attachment(self, attachment_id: str) -> bool:
        return self.attachments.set_main(attachment_id)

    def set_alt_text(self, attachment_id: str, text: str) -> bool:
        return self.attachments.set_alt_text(attachment_id, text)

    def snapshot(self) -> list[Attachment]:
        return self.attachments.snapshot()

    def submission(self) -> Submission:
        return self.attachments.submission()

    async def wait_idle(self) -> None:
        await self.pool.wait_idle()

    async def close(self) -> None:
        """Cancel all uploads and release every preview."""
        if self._closed:
            return
        self._closed = True
        await self.pool.shutdown()
        self.attachments.clear()
        logger.info("Session %s closed", self.id)
