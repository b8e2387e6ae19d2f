"""Per-term difficulty derived from persisted answer history."""

import logging
from typing import Callable, Iterable

from .catalog import is_all_topics
from .config import (
    WORD_STATS_PREFIX, DIFFICULTY_MIN, DIFFICULTY_MAX, RECENT_MISS_PENALTY
)
from .interfaces import KeyValueStore
from .models import Term, TermStats, HardTerm
from .utils import clamp, read_record, write_record, utc_now_iso

logger = logging.getLogger(__name__)


def word_key(topic: str, source_text: str) -> str:
    return f"{WORD_STATS_PREFIX}{topic}:{(source_text or '').lower()}"


def score_stats(stats: TermStats) -> float:
    """Difficulty for a stats record: 1 + wrong - 0.5*correct, +0.5 if last answer was wrong.

    Clamped to [0.5, 4.0]. A term never seen scores exactly 1.0.
    """
    base = 1 + stats.times_wrong - 0.5 * stats.times_correct
    recent_penalty = RECENT_MISS_PENALTY if (stats.current_streak == 0 and stats.times_seen > 0) else 0.0
    return clamp(base + recent_penalty, DIFFICULTY_MIN, DIFFICULTY_MAX)


class DifficultyModel:
    """Reads and updates TermStats in a key-value store.

    Store failures never escape: reads fall back to the zero record, failed
    writes still return the updated in-memory record.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self.clock = clock

    def stats_for(self, topic: str, source_text: str) -> TermStats:
        data = read_record(self.store, word_key(topic, source_text), logger)
        if data is None:
            return TermStats()
        try:
            return TermStats.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt stats for {topic}/{source_text}: {e}")
            return TermStats()

    def record_outcome(self, topic: str, source_text: str, was_correct: bool) -> TermStats:
        prev = self.stats_for(topic, source_text)
        updated = TermStats(
            times_seen=prev.times_seen + 1,
            times_correct=prev.times_correct + (1 if was_correct else 0),
            times_wrong=prev.times_wrong + (0 if was_correct else 1),
            current_streak=prev.current_streak + 1 if was_correct else 0,
            last_seen=self.clock()
        )
        write_record(self.store, word_key(topic, source_text), updated.to_dict(), logger)
        return updated

    def difficulty_of(self, topic: str, source_text: str) -> float:
        return score_stats(self.stats_for(topic, source_text))

    def hardest_terms(self, pool: Iterable[Term], topic: str | None, count: int) -> list[HardTerm]:
        """Top `count` terms of the topic by difficulty, ties kept in catalog order."""
        if count <= 0:
            return []
        candidates = [t for t in pool if is_all_topics(topic) or t.topic == topic]
        scored = [
            HardTerm(t.source_text, t.target_text, t.topic, self.difficulty_of(t.topic, t.source_text))
            for t in candidates
        ]
        scored.sort(key=lambda h: h.difficulty, reverse=True)
        return scored[:count]
