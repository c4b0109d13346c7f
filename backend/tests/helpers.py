"""Shared test doubles and helpers."""

import asyncio

from media_uploads.exceptions import TransferCancelled
from media_uploads.models import MediaFile


class FakeTransfer:
    """Transfer whose uploads only finish when the test completes or fails them."""

    def __init__(self):
        self.started: list[str] = []  # filenames in start order
        self.progress: dict[str, object] = {}  # filename -> on_progress
        self.tokens: dict[str, object] = {}  # filename -> token
        self._gates: dict[str, asyncio.Future] = {}

    def _gate(self, filename: str) -> asyncio.Future:
        if filename not in self._gates:
            self._gates[filename] = asyncio.get_running_loop().create_future()
        return self._gates[filename]

    async def upload(self, file, on_progress, token):
        self.started.append(file.filename)
        self.progress[file.filename] = on_progress
        self.tokens[file.filename] = token
        gate = self._gate(file.filename)

        def _abort():
            if not gate.done():
                gate.set_exception(TransferCancelled(file.filename))

        token.add_callback(_abort)
        on_progress(0)
        return await gate

    def complete(self, filename: str, url: str | None = None) -> None:
        self._gate(filename).set_result(url or f"https://cdn.test/{filename}")

    def fail(self, filename: str, exc: Exception) -> None:
        self._gate(filename).set_exception(exc)


async def settle(predicate=None, rounds: int = 200) -> None:
    """Yield to the event loop until predicate() holds (or for a fixed number of rounds)."""
    for _ in range(rounds):
        if predicate is not None and predicate():
            return
        await asyncio.sleep(0)
    if predicate is not None:
        assert predicate(), "condition not reached while settling the event loop"


def make_file(name: str = "photo.jpg", size: int = 1024, content_type: str = "image/jpeg") -> MediaFile:
    return MediaFile(filename=name, content_type=content_type, data=b"x" * size)
