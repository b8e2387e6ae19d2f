"""Domain models for flashround."""

from dataclasses import dataclass
from typing import NamedTuple

# Session phases
IDLE = 'idle'
AWAIT_ANSWER = 'await_answer'
SHOW_FEEDBACK = 'show_feedback'
FINISHED = 'finished'


@dataclass(frozen=True)
class Term:
    """One catalog entry. Identity is (topic, source_text)."""
    source_text: str
    target_text: str
    topic: str
    hint: str = ''

    def to_dict(self) -> dict:
        return {
            'source_text': self.source_text,
            'target_text': self.target_text,
            'topic': self.topic,
            'hint': self.hint
        }


@dataclass(frozen=True)
class Question:
    """A multiple-choice question built for one round step.

    option_labels holds source texts; the prompt's own source text appears
    exactly once, at correct_index.
    """
    prompt: Term
    option_labels: tuple
    correct_index: int

    @property
    def topic(self) -> str:
        return self.prompt.topic

    def to_dict(self) -> dict:
        return {
            'topic': self.prompt.topic,
            'prompt': {
                'target_text': self.prompt.target_text,
                'hint': self.prompt.hint,
            },
            'options': list(self.option_labels),
        }


class HardTerm(NamedTuple):
    source_text: str
    target_text: str
    topic: str
    difficulty: float


class Outcome(NamedTuple):
    """Result of one submitted answer, emitted to the presentation layer."""
    ok: bool
    correct_term: Term
    selected_index: int
    points: int
    streak: int

    def to_dict(self) -> dict:
        return {
            'ok': self.ok,
            'correct_term': self.correct_term.to_dict(),
            'selected_index': self.selected_index,
            'points': self.points,
            'streak': self.streak
        }


class TermStats:
    """Per-term answer history, persisted after every answer."""

    def __init__(self, times_seen: int = 0, times_correct: int = 0, times_wrong: int = 0,
                 current_streak: int = 0, last_seen: str | None = None):
        self.times_seen = times_seen
        self.times_correct = times_correct
        self.times_wrong = times_wrong
        self.current_streak = current_streak
        self.last_seen = last_seen

    def to_dict(self) -> dict:
        return {
            'times_seen': self.times_seen,
            'times_correct': self.times_correct,
            'times_wrong': self.times_wrong,
            'current_streak': self.current_streak,
            'last_seen': self.last_seen
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TermStats':
        return cls(
            times_seen=int(data.get('times_seen', 0)),
            times_correct=int(data.get('times_correct', 0)),
            times_wrong=int(data.get('times_wrong', 0)),
            current_streak=int(data.get('current_streak', 0)),
            last_seen=data.get('last_seen')
        )

    def __eq__(self, other) -> bool:
        return isinstance(other, TermStats) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"TermStats({self.to_dict()!r})"


class RetryEntry:
    """A missed term scheduled to come back later in the same round."""

    def __init__(self, source_text: str, topic: str, due_at_round: int, attempts_used: int = 1):
        self.source_text = source_text
        self.topic = topic
        self.due_at_round = due_at_round
        self.attempts_used = attempts_used

    def to_dict(self) -> dict:
        return {
            'source_text': self.source_text,
            'topic': self.topic,
            'due_at_round': self.due_at_round,
            'attempts_used': self.attempts_used
        }

    def __repr__(self) -> str:
        return f"RetryEntry({self.to_dict()!r})"


class TopicRecord:
    """Cumulative per-topic results, max-merged at the end of each round."""

    def __init__(self, plays: int = 0, total_questions: int = 0, total_correct: int = 0,
                 best_score: int = 0, best_streak: int = 0, best_accuracy_pct: int = 0,
                 last_played: str | None = None):
        self.plays = plays
        self.total_questions = total_questions
        self.total_correct = total_correct
        self.best_score = best_score
        self.best_streak = best_streak
        self.best_accuracy_pct = best_accuracy_pct
        self.last_played = last_played

    def to_dict(self) -> dict:
        return {
            'plays': self.plays,
            'total_questions': self.total_questions,
            'total_correct': self.total_correct,
            'best_score': self.best_score,
            'best_streak': self.best_streak,
            'best_accuracy_pct': self.best_accuracy_pct,
            'last_played': self.last_played
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TopicRecord':
        return cls(
            plays=int(data.get('plays', 0)),
            total_questions=int(data.get('total_questions', 0)),
            total_correct=int(data.get('total_correct', 0)),
            best_score=int(data.get('best_score', 0)),
            best_streak=int(data.get('best_streak', 0)),
            best_accuracy_pct=int(data.get('best_accuracy_pct', 0)),
            last_played=data.get('last_played')
        )

    def __eq__(self, other) -> bool:
        return isinstance(other, TopicRecord) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"TopicRecord({self.to_dict()!r})"


class SessionState:
    """Counters for the active round. Only the session driver mutates it."""

    def __init__(self, round_size: int, selected_topic: str | None = None,
                 adaptive_enabled: bool = True):
        self.phase = IDLE
        self.score = 0
        self.streak = 0
        self.best_streak = 0
        self.round_index = 0
        self.questions_asked = 0
        self.correct_count = 0
        self.round_size = round_size
        self.selected_topic = selected_topic
        self.adaptive_enabled = adaptive_enabled

    def reset_round(self) -> None:
        self.score = 0
        self.streak = 0
        self.best_streak = 0
        self.round_index = 0
        self.questions_asked = 0
        self.correct_count = 0

    def copy(self) -> 'SessionState':
        clone = SessionState.__new__(SessionState)
        clone.__dict__.update(self.__dict__)
        return clone

    def to_dict(self) -> dict:
        return {
            'phase': self.phase,
            'score': self.score,
            'streak': self.streak,
            'best_streak': self.best_streak,
            'round_index': self.round_index,
            'questions_asked': self.questions_asked,
            'correct_count': self.correct_count,
            'round_size': self.round_size,
            'selected_topic': self.selected_topic,
            'adaptive_enabled': self.adaptive_enabled
        }

    def __eq__(self, other) -> bool:
        return isinstance(other, SessionState) and self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"SessionState({self.to_dict()!r})"


class RoundSummary:
    """End-of-round report."""

    def __init__(self, topic: str, score: int, correct_count: int, round_size: int,
                 accuracy_pct: int, best_streak: int, record: TopicRecord,
                 hardest: list[HardTerm]):
        self.topic = topic
        self.score = score
        self.correct_count = correct_count
        self.round_size = round_size
        self.accuracy_pct = accuracy_pct
        self.best_streak = best_streak
        self.record = record
        self.hardest = hardest

    def to_dict(self) -> dict:
        return {
            'topic': self.topic,
            'score': self.score,
            'correct_count': self.correct_count,
            'round_size': self.round_size,
            'accuracy_pct': self.accuracy_pct,
            'best_streak': self.best_streak,
            'record': self.record.to_dict(),
            'hardest': [h._asdict() for h in self.hardest]
        }


def accuracy_pct(correct: int, total: int) -> int:
    """Whole-number percentage of correct answers, 0 for an empty round."""
    if total <= 0:
        return 0
    return int(round_half_up(100 * correct / total))


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (Python's round() is banker's)."""
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)
