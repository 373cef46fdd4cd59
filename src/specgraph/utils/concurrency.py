"""Per-key debouncing on the running asyncio loop."""

from __future__ import annotations

import asyncio
import inspect
from contextlib import suppress
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Hashable

    DebouncedCallback = Callable[[], Awaitable[None] | None]


class DebounceManager:
    """
    Delay a callback per key; a newer schedule for the same key replaces the pending one.

    Callbacks that already started are never cancelled. Coroutine callbacks run as tasks
    that ``drain`` can await.
    """

    def __init__(self, delay_seconds: float) -> None:
        if delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")
        self._delay = delay_seconds
        self._pending: dict[Hashable, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[None]] = set()

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending_keys(self) -> tuple[Hashable, ...]:
        return tuple(self._pending)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def schedule(self, key: Hashable, callback: DebouncedCallback) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(key)
        self._pending[key] = loop.call_later(self._delay, self._fire, key, callback)

    def cancel(self, key: Hashable) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for key in list(self._pending):
            self.cancel(key)

    async def drain(self) -> None:
        """Wait for callbacks that already fired; pending timers are left alone."""
        while self._running:
            await asyncio.gather(*tuple(self._running), return_exceptions=True)

    def _fire(self, key: Hashable, callback: DebouncedCallback) -> None:
        self._pending.pop(key, None)
        result = callback()
        if inspect.isawaitable(result):
            task: asyncio.Task[None] = asyncio.ensure_future(result)
            self._running.add(task)
            task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._running.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # Surfaced through the loop's exception handler like any other task failure.
            loop = task.get_loop()
            loop.call_exception_handler(
                {"message": "debounced callback failed", "exception": exc, "task": task}
            )


async def close_debouncer(debouncer: DebounceManager) -> None:
    debouncer.cancel_all()
    with suppress(asyncio.CancelledError):
        await debouncer.drain()


__all__ = ["DebounceManager", "close_debouncer"]
