"""Scheduler backed by the running asyncio event loop."""

import asyncio
from typing import Callable

from core.interfaces import Scheduler, ScheduledTask


class AsyncioTask(ScheduledTask):
    def __init__(self, handle: asyncio.TimerHandle):
        self.handle = handle

    def cancel(self) -> None:
        self.handle.cancel()


class AsyncioScheduler(Scheduler):
    """Runs callbacks on the event loop thread via loop.call_later."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> AsyncioTask:
        loop = self.loop or asyncio.get_running_loop()
        return AsyncioTask(loop.call_later(delay_ms / 1000.0, callback))
