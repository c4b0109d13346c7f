"""Transfer operations: submit one file to the remote store and return its URL."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import AsyncIterator, Callable, Protocol
from urllib.parse import quote

import httpx

from media_uploads.config import settings
from media_uploads.exceptions import TransferCancelled, TransferError
from media_uploads.models import MediaFile
from media_uploads.services.cancellation import CancellationToken

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


class TransferOperation(Protocol):
    """Contract the worker pool depends on.

    Implementations report non-decreasing percentages through on_progress,
    stop reporting once the token is cancelled, raise TransferCancelled when
    they observe cancellation and TransferError on any other failure.
    """

    async def upload(
        self,
        file: MediaFile,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> str: ...


class HttpTransfer:
    """Multipart POST to the resource upload endpoint with per-chunk progress."""

    def __init__(
        self,
        upload_url: str | None = None,
        auth_token: str | None = None,
        timeout: float | None = None,
        chunk_size: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = upload_url or settings.upload_url
        self._auth_token = settings.upload_auth_token if auth_token is None else auth_token
        self._timeout = timeout or settings.upload_timeout_seconds
        self._chunk_size = chunk_size or settings.upload_chunk_size
        self._transport = transport

    async def upload(
        self,
        file: MediaFile,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> str:
        if token.is_cancelled():
            raise TransferCancelled(file.filename)

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            # Let httpx encode the multipart body, then stream it ourselves for progress
            encoded = client.build_request(
                "POST",
                self._url,
                files={"file": (file.filename, file.data, file.content_type)},
            )
            body = encoded.read()
            headers = {
                "Content-Type": encoded.headers["Content-Type"],
                "Content-Length": str(len(body)),
            }
            if self._auth_token:
                headers["Authorization"] = f"Bearer {self._auth_token}"

            try:
                resp = await client.post(
                    self._url,
                    content=self._stream(body, on_progress, token),
                    headers=headers,
                )
            except httpx.TimeoutException as e:
                raise TransferError("Upload timed out") from e
            except httpx.HTTPError as e:
                if token.is_cancelled():
                    raise TransferCancelled(file.filename) from e
                logger.warning("Upload of %s failed: %s", file.filename, e)
                raise TransferError("Upload failed") from e

        if token.is_cancelled():
            raise TransferCancelled(file.filename)

        if resp.status_code >= 400:
            logger.warning("Upload of %s rejected: HTTP %d", file.filename, resp.status_code)
            raise TransferError(_error_message(resp))

        url = _extract_url(resp)
        if not url:
            logger.error("No URL in upload response for %s: %s", file.filename, resp.text[:200])
            raise TransferError("No URL returned from server")
        return url

    async def _stream(
        self,
        body: bytes,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> AsyncIterator[bytes]:
        total = len(body)
        sent = 0
        on_progress(0)
        for start in range(0, total, self._chunk_size):
            if token.is_cancelled():
                raise TransferCancelled()
            chunk = body[start:start + self._chunk_size]
            yield chunk
            sent += len(chunk)
            if not token.is_cancelled():
                on_progress(round(sent * 100 / total))


def _extract_url(resp: httpx.Response) -> str | None:
    """The endpoint answers with either the bare URL or an object holding it."""
    try:
        data = resp.json()
    except ValueError:
        data = resp.text.strip()

    if isinstance(data, str):
        return data or None
    if isinstance(data, dict):
        url = data.get("url")
        if isinstance(url, str) and url:
            return url
    return None


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return "Upload failed"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return "Upload failed"


class DevTransfer:
    """Simulated remote store for dev mode, no network, fake URLs."""

    STEPS = (0, 25, 50, 75, 100)

    def __init__(self, base_url: str | None = None, delay: float | None = None):
        self._base_url = (base_url or settings.dev_storage_url).rstrip("/")
        self._delay = settings.dev_transfer_delay_seconds if delay is None else delay

    async def upload(
        self,
        file: MediaFile,
        on_progress: ProgressCallback,
        token: CancellationToken,
    ) -> str:
        for pct in self.STEPS:
            if token.is_cancelled():
                raise TransferCancelled(file.filename)
            on_progress(pct)
            if pct < 100:
                await asyncio.sleep(self._delay)

        url = f"{self._base_url}/{uuid.uuid4().hex}/{quote(file.filename)}"
        logger.info("[DEV] Upload %s -> %s (not executed)", file.filename, url)
        return url
