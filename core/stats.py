"""Folds finished rounds into cumulative per-topic records."""

import logging
from typing import Callable

from .config import TOPIC_STATS_PREFIX, ALL_TOPICS_KEY
from .interfaces import KeyValueStore
from .models import TopicRecord, accuracy_pct
from .utils import read_record, write_record, utc_now_iso

logger = logging.getLogger(__name__)


def topic_key(topic: str | None) -> str:
    return f"{TOPIC_STATS_PREFIX}{topic or ALL_TOPICS_KEY}"


class StatsAggregator:

    def __init__(self, store: KeyValueStore, clock: Callable[[], str] = utc_now_iso):
        self.store = store
        self.clock = clock

    def record_for(self, topic: str | None) -> TopicRecord:
        data = read_record(self.store, topic_key(topic), logger)
        if data is None:
            return TopicRecord()
        try:
            return TopicRecord.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Corrupt topic record for {topic}: {e}")
            return TopicRecord()

    def fold(self, topic: str | None, score: int, correct_count: int,
             round_size: int, best_streak: int) -> TopicRecord:
        """Merge one round into the topic's record and persist it (best effort)."""
        old = self.record_for(topic)
        record = TopicRecord(
            plays=old.plays + 1,
            total_questions=old.total_questions + round_size,
            total_correct=old.total_correct + correct_count,
            best_score=max(old.best_score, score),
            best_streak=max(old.best_streak, best_streak),
            best_accuracy_pct=max(old.best_accuracy_pct, accuracy_pct(correct_count, round_size)),
            last_played=self.clock()
        )
        write_record(self.store, topic_key(topic), record.to_dict(), logger)
        return record
