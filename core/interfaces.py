"""Abstract base classes for dependency injection."""

from abc import ABC, abstractmethod
from typing import Callable


class KeyValueStore(ABC):
    """Abstract base class for persisted statistics."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value for key, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass


class MemoryStore(KeyValueStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, data: dict | None = None):
        self.data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def keys(self, prefix: str = '') -> list[str]:
        return [k for k in self.data if k.startswith(prefix)]


class ScheduledTask(ABC):
    """Handle for a pending delayed call."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the call from running. Safe to call more than once."""
        pass


class Scheduler(ABC):
    """Abstract base class for single-shot delayed calls."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback once after delay_ms milliseconds."""
        pass
