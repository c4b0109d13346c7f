"""Session sweeper: closes upload sessions abandoned by their form."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from media_uploads.config import settings

if TYPE_CHECKING:
    from media_uploads.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically expires idle sessions so their previews and held uploads are freed."""

    def __init__(
        self,
        registry: SessionRegistry,
        interval: float | None = None,
        max_idle: float | None = None,
    ):
        self._registry = registry
        self._interval = settings.session_sweep_interval_seconds if interval is None else interval
        self._max_idle = settings.session_idle_timeout_seconds if max_idle is None else max_idle
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Start the sweep loop."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "Session sweeper started (every %gs, idle limit %gs)", self._interval, self._max_idle,
        )

    async def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Session sweeper stopped")

    async def sweep(self) -> list[str]:
        return await self._registry.expire_idle(self._max_idle)

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            try:
                await self.sweep()
            except Exception as e:
                logger.error("Session sweep error: %s", e)
