"""Timer-reset debounce for coalescing bursts of text-change events."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]
DebouncedCallback = Callable[[], Awaitable[None]]

DEFAULT_DEBOUNCE_SECONDS = 0.1


class Debouncer:
    """Run callback once, ``delay_seconds`` after the most recent trigger.

    Each trigger cancels a timer that is still sleeping and starts a new one.
    A callback that has already started runs to completion.
    """

    _delay_seconds: float
    _callback: DebouncedCallback
    _sleep: Sleeper
    _timer: asyncio.Task[None] | None
    _tasks: set[asyncio.Task[None]]

    def __init__(
        self,
        callback: DebouncedCallback,
        *,
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Create an idle debouncer."""
        self._delay_seconds = delay_seconds
        self._callback = callback
        self._sleep = sleep
        self._timer = None
        self._tasks = set()

    @property
    def pending(self) -> bool:
        """Return True while a timer is waiting to fire."""
        return self._timer is not None and not self._timer.done()

    def trigger(self) -> None:
        """Restart the timer; the callback fires only after a quiet period."""
        if self._timer is not None:
            _ = self._timer.cancel()
        timer = asyncio.create_task(self._fire())
        self._timer = timer
        self._tasks.add(timer)
        timer.add_done_callback(self._tasks.discard)

    async def flush(self) -> bool:
        """Fire a waiting timer immediately; return False when none was waiting."""
        if not self.pending:
            return False
        timer = self._timer
        self._timer = None
        if timer is not None:
            _ = timer.cancel()
        await self._run_callback()
        return True

    async def wait(self) -> None:
        """Wait for the waiting timer and any running callback to finish."""
        while outstanding := [task for task in self._tasks if not task.done()]:
            _ = await asyncio.wait(outstanding)

    async def cancel(self) -> None:
        """Cancel the waiting timer and any running callback."""
        self._timer = None
        outstanding = [task for task in self._tasks if not task.done()]
        for task in outstanding:
            _ = task.cancel()
        if outstanding:
            _ = await asyncio.gather(*outstanding, return_exceptions=True)

    async def _fire(self) -> None:
        await self._sleep(self._delay_seconds)
        if self._timer is asyncio.current_task():
            self._timer = None
        await self._run_callback()

    async def _run_callback(self) -> None:
        try:
            await self._callback()
        except Exception as exc:
            if isinstance(exc, asyncio.CancelledError):
                raise
            logger.exception("Debounced callback failed")
