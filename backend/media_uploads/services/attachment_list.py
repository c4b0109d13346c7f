"""Ordered attachment list with id-addressed mutations and a single main image."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterator

from media_uploads.models import Attachment, MediaFile, UploadStatus, new_attachment_id
from media_uploads.services.previews import PreviewStore

logger = logging.getLogger(__name__)

# Fields owned by the worker pool; alt_text and is_main belong to the host form.
UPLOAD_FIELDS = frozenset({"upload", "remote_location"})


@dataclass(frozen=True)
class Submission:
    """What the host form hands to resource creation."""

    image_urls: list[str] = field(default_factory=list)
    main_image_url: str | None = None
    alt_texts: dict[str, str] = field(default_factory=dict)  # remote url -> alt text


class AttachmentList:
    """Insertion-ordered attachments. Lookups and writes go through the id, never the position."""

    def __init__(self, previews: PreviewStore | None = None):
        self._previews = previews if previews is not None else PreviewStore()
        self._items: dict[str, Attachment] = {}  # dicts keep insertion order

    @property
    def previews(self) -> PreviewStore:
        return self._previews

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, attachment_id: object) -> bool:
        return attachment_id in self._items

    def __iter__(self) -> Iterator[Attachment]:
        return iter(list(self._items.values()))

    def get(self, attachment_id: str) -> Attachment | None:
        return self._items.get(attachment_id)

    def ids(self) -> list[str]:
        return list(self._items)

    @property
    def main(self) -> Attachment | None:
        return next((a for a in self._items.values() if a.is_main), None)

    def append(self, file: MediaFile) -> Attachment:
        """Add a pending record at the end; the first record of an empty list becomes main."""
        attachment = Attachment(
            id=new_attachment_id(),
            filename=file.filename,
            content_type=file.content_type,
            size_bytes=file.size,
            preview_location=self._previews.create(file),
            is_main=not self._items,
        )
        self._items[attachment.id] = attachment
        logger.debug("Appended attachment %s (%s)", attachment.id, file.filename)
        return attachment

    def update_by_id(self, attachment_id: str, **changes) -> bool:
        """Apply upload-state changes. Returns False (no-op) if the id is gone."""
        unknown = set(changes) - UPLOAD_FIELDS
        if unknown:
            raise ValueError(f"Not an upload field: {', '.join(sorted(unknown))}")

        attachment = self._items.get(attachment_id)
        if attachment is None:
            logger.debug("Ignoring update for removed attachment %s", attachment_id)
            return False

        if changes.get("remote_location"):
            self._previews.release(attachment.preview_location)
            changes["preview_location"] = None

        self._items[attachment_id] = replace(attachment, **changes)
        return True

    def remove_by_id(self, attachment_id: str) -> Attachment | None:
        """Remove a record and release its preview.

        When the removed record was main, the first remaining record is promoted.
        """
        attachment = self._items.get(attachment_id)
        if attachment is None:
            return None

        self._previews.release(attachment.preview_location)
        del self._items[attachment_id]

        if attachment.is_main and self._items:
            first_id = next(iter(self._items))
            self._items[first_id] = replace(self._items[first_id], is_main=True)
            logger.debug("Promoted %s to main after removing %s", first_id, attachment_id)
        return attachment

    def set_main(self, attachment_id: str) -> bool:
        if attachment_id not in self._items:
            return False
        self._items = {
            aid: replace(a, is_main=aid == attachment_id) for aid, a in self._items.items()
        }
        return True

    def set_alt_text(self, attachment_id: str, text: str) -> bool:
        attachment = self._items.get(attachment_id)
        if attachment is None:
            return False
        self._items[attachment_id] = replace(attachment, alt_text=text)
        return True

    def snapshot(self) -> list[Attachment]:
        """Read-only view for rendering; records are replaced on write, never mutated."""
        return list(self._items.values())

    @property
    def is_settled(self) -> bool:
        """True when nothing is waiting for or in the middle of an upload."""
        return all(
            a.upload.status not in (UploadStatus.PENDING, UploadStatus.UPLOADING)
            for a in self._items.values()
        )

    def submission(self) -> Submission:
        """Remote URLs in list order plus the main image URL."""
        uploaded = [a for a in self._items.values() if a.remote_location]
        main = next((a for a in uploaded if a.is_main), None)
        if main is None and uploaded:
            main = uploaded[0]
        return Submission(
            image_urls=[a.remote_location for a in uploaded],
            main_image_url=main.remote_location if main else None,
            alt_texts={a.remote_location: a.alt_text for a in uploaded if a.alt_text},
        )

    def clear(self) -> None:
        for attachment in self._items.values():
            self._previews.release(attachment.preview_location)
        self._items.clear()
