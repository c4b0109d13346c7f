"""Cooperative cancellation handle shared by the worker pool and transfers."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        logger.error("Cancellation callback failed: %s", e)


class CancellationToken:
    """One-shot cancellation flag that transfers poll and the pool can await."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], None]] = []

    def cancel(self) -> None:
        """Trip the token. Repeated calls are no-ops."""
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            _run_callback(callback)

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run callback on cancel (immediately if already cancelled)."""
        if self._event.is_set():
            _run_callback(callback)
        else:
            self._callbacks.append(callback)

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()
