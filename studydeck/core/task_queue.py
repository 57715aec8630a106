from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from studydeck.core.logging import get_logger


logger = get_logger(__name__)

JobCallable = Callable[[], Awaitable[None]]


class BackgroundTasks:
    """Fire-and-forget task set that keeps references and logs failures."""

    def __init__(self, *, name: str = "background") -> None:
        self.name = name
        self._tasks: set[asyncio.Task[None]] = set()

    def spawn(self, fn: JobCallable) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(self._run(fn))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, fn: JobCallable) -> None:
        try:
            await fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001
            # Best-effort logging; callers never await these jobs
            logger.warning(f"[{self.name}] job failed: {e}")

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_all(self) -> None:
        for t in list(self._tasks):
            t.cancel()


class Debouncer:
    """Owned, cancellable timer: only the most recent schedule() fires."""

    def __init__(self, delay: float) -> None:
        self.delay = max(0.0, float(delay))
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None and not self._handle.cancelled()

    def schedule(self, callback: Callable[[], None]) -> bool:
        """Replace any pending call. Returns False when no event loop is running."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._handle = loop.call_later(self.delay, self._fire, callback)
        return True

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True
