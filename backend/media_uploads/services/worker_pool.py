"""Bounded-concurrency upload executor.

Tasks start in FIFO order through ``_drain()`` and every finished task, whatever
its outcome, gives its slot back in ``_run()``'s ``finally`` block, which calls
``_drain()`` again. That is the only place a slot is released.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Iterable

from media_uploads.config import settings
from media_uploads.exceptions import TransferCancelled, TransferError
from media_uploads.models import UploadState
from media_uploads.services.task_queue import TaskQueue, UploadTask

if TYPE_CHECKING:
    from media_uploads.services.attachment_list import AttachmentList
    from media_uploads.services.transfer import TransferOperation

logger = logging.getLogger(__name__)


def _discard_result(future: asyncio.Future) -> None:
    """Consume the outcome of a transfer the pool stopped waiting for."""
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None and not isinstance(exc, TransferCancelled):
        logger.debug("Abandoned transfer ended with %s", exc)


class UploadWorkerPool:
    """Runs upload tasks with at most ``limit`` transfers in flight."""

    def __init__(
        self,
        attachments: AttachmentList,
        transfer: TransferOperation,
        limit: int | None = None,
    ):
        self._attachments = attachments
        self._transfer = transfer
        self._limit = settings.concurrency_limit if limit is None else limit
        if self._limit < 1:
            raise ValueError("Concurrency limit must be at least 1")
        self._queue = TaskQueue()
        self._running: dict[str, UploadTask] = {}  # attachment_id -> task
        self._workers: set[asyncio.Task] = set()
        self._peak_active = 0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def active_count(self) -> int:
        return len(self._running)

    @property
    def queued_count(self) -> int:
        return self._queue.queued_count

    @property
    def pending_held_count(self) -> int:
        return self._queue.held_count

    @property
    def peak_active_count(self) -> int:
        """Highest number of simultaneously running transfers seen so far."""
        return self._peak_active

    @property
    def is_idle(self) -> bool:
        return not self._running and not self._queue.queued_count

    def is_running(self, attachment_id: str) -> bool:
        return attachment_id in self._running

    def has_task(self, attachment_id: str) -> bool:
        return attachment_id in self._running or attachment_id in self._queue

    def enqueue(self, tasks: Iterable[UploadTask], auto_start: bool = True) -> None:
        """Queue tasks and start them now, or hold them until start_held()."""
        tasks = list(tasks)
        if not tasks:
            return
        if auto_start:
            self._queue.push(tasks)
            self._drain()
        else:
            self._queue.hold(tasks)
            logger.info("Holding %d upload(s) until started", len(tasks))

    def start_held(self) -> int:
        count = self._queue.release_held()
        if count:
            logger.info("Starting %d held upload(s)", count)
            self._drain()
        return count

    def cancel(self, attachment_id: str) -> bool:
        """Cancel the task for an attachment. Returns False if it has no live task."""
        task = self._running.get(attachment_id)
        if task is not None:
            logger.info("Cancelling running upload %s", attachment_id)
            task.token.cancel()
            return True

        task = self._queue.remove(attachment_id)
        if task is not None:
            logger.info("Cancelling queued upload %s", attachment_id)
            task.token.cancel()
            self._attachments.update_by_id(attachment_id, upload=UploadState.cancelled())
            return True

        return False

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or running. Held tasks are ignored."""
        while self._workers:
            await asyncio.gather(*list(self._workers), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel everything, including held tasks, and wait for workers to exit."""
        for task in self._queue.clear():
            task.token.cancel()
            self._attachments.update_by_id(task.attachment_id, upload=UploadState.cancelled())
        for task in list(self._running.values()):
            task.token.cancel()
        await self.wait_idle()

    def _drain(self) -> None:
        while self._queue.queued_count and len(self._running) < self._limit:
            task = self._queue.pop()
            self._running[task.attachment_id] = task
            self._peak_active = max(self._peak_active, len(self._running))
            worker = asyncio.create_task(self._run(task))
            self._workers.add(worker)
            worker.add_done_callback(self._workers.discard)
            logger.debug(
                "Started upload %s (%d/%d slots)",
                task.attachment_id, len(self._running), self._limit,
            )

    async def _run(self, task: UploadTask) -> None:
        try:
            await self._execute(task)
        except Exception as e:
            logger.error("Upload worker for %s crashed: %s", task.attachment_id, e)
        finally:
            self._running.pop(task.attachment_id, None)
            self._drain()

    async def _execute(self, task: UploadTask) -> None:
        attachment_id = task.attachment_id
        token = task.token

        def on_progress(pct: int) -> None:
            if not token.is_cancelled():
                self._attachments.update_by_id(attachment_id, upload=UploadState.uploading(pct))

        self._attachments.update_by_id(attachment_id, upload=UploadState.uploading(0))

        transfer = asyncio.ensure_future(self._transfer.upload(task.file, on_progress, token))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({transfer, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            transfer.cancel()
            raise
        finally:
            cancelled.cancel()

        if token.is_cancelled():
            # Stop crediting the transfer; it winds down on its own once it sees the token
            transfer.add_done_callback(_discard_result)
            self._attachments.update_by_id(attachment_id, upload=UploadState.cancelled())
            logger.info("Upload %s cancelled", attachment_id)
            return

        try:
            url = transfer.result()
        except TransferCancelled:
            self._attachments.update_by_id(attachment_id, upload=UploadState.cancelled())
            logger.info("Upload %s cancelled by transfer", attachment_id)
        except TransferError as e:
            self._attachments.update_by_id(attachment_id, upload=UploadState.failed(str(e) or "Upload failed"))
            logger.warning("Upload %s failed: %s", attachment_id, e)
        except Exception as e:
            self._attachments.update_by_id(attachment_id, upload=UploadState.failed("Upload failed"))
            logger.error("Upload %s failed unexpectedly: %s", attachment_id, e)
        else:
            self._attachments.update_by_id(
                attachment_id, upload=UploadState.done(), remote_location=url,
            )
            logger.info("Upload %s done -> %s", attachment_id, url)
