"""Upload session routes: the resource form's photo step."""

from __future__ import annotations

import logging

from fastapi import APIRouter, File, HTTPException, Response, UploadFile

from media_uploads.config import settings
from media_uploads.exceptions import SessionNotFoundError
from media_uploads.models import FileInfo, MediaFile
from media_uploads.schemas.attachments import (
    AddFilesOut,
    AttachmentOut,
    AttachmentUpdate,
    RejectionOut,
    SessionOut,
    StartHeldOut,
    SubmissionOut,
)
from media_uploads.services import get_session_registry
from media_uploads.services.media_session import MediaUploadSession

logger = logging.getLogger(__name__)
router = APIRouter()


def _get_session(session_id: str) -> MediaUploadSession:
    try:
        return get_session_registry().get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _preview_base(session: MediaUploadSession) -> str:
    return f"{settings.api_prefix}/sessions/{session.id}/attachments"


def _session_out(session: MediaUploadSession) -> SessionOut:
    base = _preview_base(session)
    return SessionOut(
        id=session.id,
        created_at=session.created_at,
        attachments=[AttachmentOut.from_attachment(a, base) for a in session.snapshot()],
        active_count=session.active_count,
        queued_count=session.pool.queued_count,
        pending_held_count=session.pending_held_count,
        max_attachments=session.admission.max_attachments,
        is_settled=session.attachments.is_settled,
    )


@router.post("", response_model=SessionOut, status_code=201)
async def create_session():
    """Open a new upload session for one form."""
    session = get_session_registry().create()
    return _session_out(session)


@router.get("/{session_id}", response_model=SessionOut)
async def get_session(session_id: str):
    """Attachment list with per-item upload status."""
    return _session_out(_get_session(session_id))


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str):
    """Cancel all uploads and forget the session."""
    try:
        await get_session_registry().close(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.post("/{session_id}/files", response_model=AddFilesOut)
async def add_files(
    session_id: str,
    files: list[UploadFile] = File(...),
    auto_start: bool = True,
):
    """Add selected or dropped files; uploads start now or wait for /start."""
    session = _get_session(session_id)

    infos = [
        FileInfo(
            filename=upload.filename or "upload",
            content_type=upload.content_type or "application/octet-stream",
            size=upload.size or 0,
        )
        for upload in files
    ]
    # Files turned away on their declared size or on capacity are never read
    screened = session.screen(infos)
    admitted = {id(info) for info in screened.admitted}

    candidates = []
    for info, upload in zip(infos, files):
        if id(info) not in admitted:
            continue
        candidates.append(MediaFile(
            filename=info.filename,
            content_type=info.content_type,
            data=await upload.read(),
        ))

    result = session.add_files(candidates, auto_start=auto_start)
    base = _preview_base(session)
    return AddFilesOut(
        attachments=[AttachmentOut.from_attachment(a, base) for a in result.attachments],
        rejections=[
            RejectionOut.from_rejection(r) for r in screened.rejections + result.rejections
        ],
        notices=screened.notices + result.notices,
        started=result.started,
        pending_held_count=session.pending_held_count,
    )


@router.post("/{session_id}/start", response_model=StartHeldOut)
async def start_held_uploads(session_id: str):
    """Start every held upload ("Start Upload (N)")."""
    session = _get_session(session_id)
    return StartHeldOut(started=session.start_held_uploads())


@router.delete("/{session_id}/attachments/{attachment_id}", status_code=204)
async def remove_attachment(session_id: str, attachment_id: str):
    """Remove an attachment, cancelling its upload if still in flight."""
    session = _get_session(session_id)
    if not session.remove_attachment(attachment_id):
        raise HTTPException(status_code=404, detail="Attachment not found")
    return Response(status_code=204)


@router.put("/{session_id}/attachments/{attachment_id}/main", response_model=SessionOut)
async def set_main_attachment(session_id: str, attachment_id: str):
    """Mark an attachment as the main image."""
    session = _get_session(session_id)
    if not session.set_main_attachment(attachment_id):
        raise HTTPException(status_code=404, detail="Attachment not found")
    return _session_out(session)


@router.patch("/{session_id}/attachments/{attachment_id}", response_model=AttachmentOut)
async def update_attachment(session_id: str, attachment_id: str, body: AttachmentUpdate):
    """Edit alt text."""
    session = _get_session(session_id)
    if not session.set_alt_text(attachment_id, body.alt_text):
        raise HTTPException(status_code=404, detail="Attachment not found")
    return AttachmentOut.from_attachment(
        session.attachments.get(attachment_id), _preview_base(session)
    )


@router.get("/{session_id}/attachments/{attachment_id}/preview")
async def get_preview(session_id: str, attachment_id: str):
    """Local preview bytes, available until the upload completes or the item is removed."""
    session = _get_session(session_id)
    attachment = session.attachments.get(attachment_id)
    if attachment is None or attachment.preview_location is None:
        raise HTTPException(status_code=404, detail="Preview not available")
    preview = session.previews.get(attachment.preview_location)
    if preview is None:
        raise HTTPException(status_code=404, detail="Preview not available")
    return Response(content=preview.data, media_type=preview.content_type)


@router.get("/{session_id}/submission", response_model=SubmissionOut)
async def get_submission(session_id: str):
    """Uploaded URLs in list order plus the main image URL."""
    session = _get_session(session_id)
    return SubmissionOut.from_submission(session.submission(), session.attachments.is_settled)
