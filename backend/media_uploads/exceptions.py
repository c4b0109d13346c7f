"""Custom exceptions for the media upload service."""


class MediaUploadError(Exception):
    """Base exception for the media upload service."""
    pass


class TransferError(MediaUploadError):
    """Raised by a transfer operation when the remote store rejects or fails an upload."""
    pass


class TransferCancelled(MediaUploadError):
    """Raised by a transfer operation that observed its cancellation token."""
    pass


class SessionNotFoundError(MediaUploadError):
    """Raised when an upload session id is unknown or already closed."""

    def __init__(self, session_id: str):
        super().__init__(f"Upload session {session_id} not found")
        self.session_id = session_id
