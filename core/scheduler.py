"""Virtual-clock scheduler for deterministic hosts and tests."""

from typing import Callable

from .interfaces import Scheduler, ScheduledTask


class ManualTask(ScheduledTask):
    def __init__(self, due_ms: int, callback: Callable[[], None]):
        self.due_ms = due_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Scheduler whose clock only moves when advance() is called."""

    def __init__(self):
        self.now_ms = 0
        self.tasks: list[ManualTask] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ManualTask:
        task = ManualTask(self.now_ms + max(0, int(delay_ms)), callback)
        self.tasks.append(task)
        return task

    @property
    def pending(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled and not t.fired]

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing due tasks in order. Returns count fired."""
        target = self.now_ms + ms
        fired = 0
        while True:
            due = [t for t in self.pending if t.due_ms <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due_ms)
            self.now_ms = max(self.now_ms, task.due_ms)
            task.fired = True
            task.callback()
            fired += 1
        self.now_ms = target
        self.tasks = self.pending
        return fired
