"""Cooperative concurrency helpers for the single event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """Flag handed to a long-running operation so a newer caller can abort it."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class WriteQueue:
    """FIFO of asynchronous write operations.

    Every enqueued operation starts only after the previous one settled.
    Failures are reported to ``on_error`` (or logged) and never propagate
    to the caller, so one broken write does not stall the queue.
    """

    def __init__(self, name: str = "writes") -> None:
        self.name = name
        self._tail: Optional[asyncio.Task] = None

    def enqueue(
        self,
        operation: Callable[[], Awaitable[None]],
        description: str = "write",
        on_error: Callable[[Exception], None] | None = None,
    ) -> asyncio.Task:
        previous = self._tail

        async def _run() -> None:
            if previous is not None and not previous.done():
                await asyncio.wait([previous])
            try:
                await operation()
            except Exception as exc:
                if on_error is not None:
                    on_error(exc)
                else:
                    logger.warning(f"[{self.name}] {description} failed: {exc}")

        task = asyncio.get_running_loop().create_task(_run())
        self._tail = task
        return task

    async def drain(self) -> None:
        """Wait until every operation queued so far has settled."""
        tail = self._tail
        if tail is not None and not tail.done():
            await asyncio.wait([tail])
