"""Admission policy: attachment count, per-file size and content type."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from media_uploads.config import settings
from media_uploads.models import FileInfo, MediaFile

logger = logging.getLogger(__name__)

Candidate = Union[MediaFile, FileInfo]


class RejectionReason(str, Enum):
    CAPACITY_EXCEEDED = "capacity_exceeded"
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_TYPE = "unsupported_type"


@dataclass(frozen=True)
class Rejection:
    filename: str
    reason: RejectionReason
    message: str


@dataclass
class AdmissionResult:
    admitted: list[Candidate] = field(default_factory=list)
    rejections: list[Rejection] = field(default_factory=list)
    capacity_message: str | None = None

    @property
    def dropped_count(self) -> int:
        """Files turned away because the list had no room for them."""
        return sum(1 for r in self.rejections if r.reason == RejectionReason.CAPACITY_EXCEEDED)

    @property
    def notices(self) -> list[str]:
        """User-facing messages: the capacity notice once, then one line per rejected file."""
        messages = [self.capacity_message] if self.capacity_message else []
        messages.extend(
            r.message for r in self.rejections if r.reason != RejectionReason.CAPACITY_EXCEEDED
        )
        return messages


def _format_size(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):g}MB"


class AdmissionController:
    """Filters a batch of candidate files against the collection limits. Has no side effects."""

    def __init__(
        self,
        max_attachments: int | None = None,
        max_file_size: int | None = None,
        allowed_content_types: list[str] | None = None,
    ):
        self.max_attachments = settings.max_attachments if max_attachments is None else max_attachments
        self.max_file_size = settings.max_file_size if max_file_size is None else max_file_size
        self.allowed_content_types = (
            settings.allowed_content_types
            if allowed_content_types is None
            else allowed_content_types
        )

    def admit(self, files: list[Candidate], current_count: int) -> AdmissionResult:
        result = AdmissionResult()
        if not files:
            return result
        available = self.max_attachments - current_count

        if available <= 0:
            result.capacity_message = (
                f"Maximum of {self.max_attachments} images allowed. "
                "Please remove some images before uploading more."
            )
            result.rejections = [
                Rejection(f.filename, RejectionReason.CAPACITY_EXCEEDED, result.capacity_message)
                for f in files
            ]
            logger.info("Rejected batch of %d file(s): list is full", len(files))
            return result

        candidates = list(files)
        if len(candidates) > available:
            result.capacity_message = (
                f"You can only upload {available} more image(s). "
                f"Maximum of {self.max_attachments} images allowed."
            )
            result.rejections.extend(
                Rejection(f.filename, RejectionReason.CAPACITY_EXCEEDED, result.capacity_message)
                for f in candidates[available:]
            )
            candidates = candidates[:available]
            logger.info("Dropped %d file(s) over capacity", len(files) - available)

        for file in candidates:
            rejection = self._check_file(file)
            if rejection:
                result.rejections.append(rejection)
                logger.info("Rejected %s: %s", file.filename, rejection.reason.value)
            else:
                result.admitted.append(file)

        return result

    def _check_file(self, file: Candidate) -> Rejection | None:
        if file.size > self.max_file_size:
            return Rejection(
                file.filename,
                RejectionReason.FILE_TOO_LARGE,
                f"File {file.filename} exceeds maximum file size of "
                f"{_format_size(self.max_file_size)}",
            )
        if self.allowed_content_types and file.content_type not in self.allowed_content_types:
            return Rejection(
                file.filename,
                RejectionReason.UNSUPPORTED_TYPE,
                f"File {file.filename} has unsupported type {file.content_type}",
            )
        return None
