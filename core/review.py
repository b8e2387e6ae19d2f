"""Session-scoped retry queue and review pool."""

from .models import RetryEntry


class RetryQueue:
    """Missed terms waiting to come back within the current round.

    Entries are keyed by source text and kept in insertion order.
    """

    def __init__(self):
        self.entries: list[RetryEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def _find(self, source_text: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.source_text == source_text:
                return i
        return -1

    def on_wrong(self, topic: str, source_text: str, current_round: int,
                 retry_after: int, max_retries: int) -> RetryEntry | None:
        """Schedule (or reschedule) a missed term. Returns the live entry, or None if dropped.

        An existing entry is rescheduled while it has used fewer than
        max_retries attempts; once the cap is reached the next miss drops it.
        """
        idx = self._find(source_text)
        if idx < 0:
            entry = RetryEntry(source_text, topic, current_round + retry_after, 1)
            self.entries.append(entry)
            return entry
        entry = self.entries[idx]
        if entry.attempts_used < max_retries:
            entry.attempts_used += 1
            entry.due_at_round = current_round + retry_after
            return entry
        del self.entries[idx]
        return None

    def on_correct(self, source_text: str) -> None:
        idx = self._find(source_text)
        if idx >= 0:
            del self.entries[idx]

    def next_due(self, current_round: int) -> RetryEntry | None:
        """First entry due at or before current_round. Does not remove it."""
        for entry in self.entries:
            if entry.due_at_round <= current_round:
                return entry
        return None

    def clear(self) -> None:
        self.entries = []

    def copy(self) -> 'RetryQueue':
        clone = RetryQueue()
        clone.entries = [
            RetryEntry(e.source_text, e.topic, e.due_at_round, e.attempts_used)
            for e in self.entries
        ]
        return clone

    def to_list(self) -> list[dict]:
        return [e.to_dict() for e in self.entries]


class ReviewPool:
    """Fixed, ordered list of terms replayed front to back."""

    def __init__(self):
        self.pool: list[str] = []
        self.cursor = 0
        self.active = False

    def enter(self, source_texts) -> None:
        self.pool = list(source_texts)
        self.cursor = 0
        self.active = True

    def peek(self) -> str | None:
        if self.cursor >= len(self.pool):
            return None
        return self.pool[self.cursor]

    def next(self) -> str | None:
        """Return the term at the cursor and advance, or None once exhausted."""
        item = self.peek()
        if item is not None:
            self.cursor += 1
        return item

    @property
    def is_active(self) -> bool:
        return self.active

    @property
    def remaining(self) -> int:
        return max(0, len(self.pool) - self.cursor)

    def exit(self) -> None:
        self.pool = []
        self.cursor = 0
        self.active = False

    def to_dict(self) -> dict:
        return {'active': self.active, 'pool': list(self.pool), 'cursor': self.cursor}
