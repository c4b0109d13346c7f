"""Upload services: singleton registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from media_uploads.config import settings

if TYPE_CHECKING:
    from media_uploads.services.session_registry import SessionRegistry
    from media_uploads.services.session_sweeper import SessionSweeper
    from media_uploads.services.transfer import TransferOperation

logger = logging.getLogger(__name__)

_transfer: TransferOperation | None = None
_session_registry: SessionRegistry | None = None
_session_sweeper: SessionSweeper | None = None


def init_services(transfer: TransferOperation | None = None) -> None:
    """Create the transfer operation and the session registry, start the sweeper."""
    global _transfer, _session_registry, _session_sweeper

    from media_uploads.services.session_registry import SessionRegistry
    from media_uploads.services.session_sweeper import SessionSweeper
    from media_uploads.services.transfer import DevTransfer, HttpTransfer

    if transfer is not None:
        _transfer = transfer
    elif settings.is_dev_mode:
        _transfer = DevTransfer()
        logger.warning("Dev mode: uploads are simulated, nothing leaves this process")
    else:
        _transfer = HttpTransfer()
        logger.info("Uploading to %s", settings.upload_url)

    _session_registry = SessionRegistry(_transfer)
    _session_sweeper = SessionSweeper(_session_registry)
    _session_sweeper.start()
    logger.info(
        "Upload services initialized (limit %d, max %d attachments)",
        settings.concurrency_limit, settings.max_attachments,
    )


async def shutdown_services() -> None:
    """Stop the sweeper and close every open session, cancelling its uploads."""
    global _transfer, _session_registry, _session_sweeper
    if _session_sweeper:
        await _session_sweeper.stop()
        _session_sweeper = None
    if _session_registry:
        closed = await _session_registry.close_all()
        if closed:
            logger.info("Closed %d open upload session(s)", closed)
        _session_registry = None
    _transfer = None


def get_transfer() -> TransferOperation:
    if _transfer is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _transfer


def get_session_registry() -> SessionRegistry:
    if _session_registry is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _session_registry


def get_session_sweeper() -> SessionSweeper:
    if _session_sweeper is None:
        raise RuntimeError("Services not initialized — call init_services() first")
    return _session_sweeper
