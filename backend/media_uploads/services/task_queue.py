"""FIFO queues of upload tasks waiting for a worker slot."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from media_uploads.models import MediaFile
from media_uploads.services.cancellation import CancellationToken


@dataclass(eq=False)
class UploadTask:
    """One pending upload, created 1:1 with an admitted attachment."""

    attachment_id: str
    file: MediaFile
    token: CancellationToken = field(default_factory=CancellationToken)


class TaskQueue:
    """Active queue drained by the worker pool, plus a held queue for deferred batches.

    held -> active (via release_held) is the only move between the two.
    """

    def __init__(self) -> None:
        self._active: deque[UploadTask] = deque()
        self._held: deque[UploadTask] = deque()

    @property
    def queued_count(self) -> int:
        return len(self._active)

    @property
    def held_count(self) -> int:
        return len(self._held)

    def __len__(self) -> int:
        return len(self._active) + len(self._held)

    def __contains__(self, attachment_id: object) -> bool:
        return any(t.attachment_id == attachment_id for t in (*self._active, *self._held))

    def push(self, tasks: Iterable[UploadTask]) -> None:
        self._active.extend(tasks)

    def hold(self, tasks: Iterable[UploadTask]) -> None:
        self._held.extend(tasks)

    def release_held(self) -> int:
        """Move every held task to the tail of the active queue, keeping their order."""
        count = len(self._held)
        self._active.extend(self._held)
        self._held.clear()
        return count

    def pop(self) -> UploadTask | None:
        return self._active.popleft() if self._active else None

    def remove(self, attachment_id: str) -> UploadTask | None:
        """Take a not-yet-started task out of whichever queue holds it."""
        for queue in (self._active, self._held):
            for task in queue:
                if task.attachment_id == attachment_id:
                    queue.remove(task)
                    return task
        return None

    def clear(self) -> list[UploadTask]:
        tasks = [*self._active, *self._held]
        self._active.clear()
        self._held.clear()
        return tasks
