"""Session driver: the round state machine.

Phases run idle -> await_answer -> show_feedback -> (await_answer | finished),
and finished/any -> idle on restart. A new round may only start from idle or
finished. Commands issued in a phase with no transition for them are logged
and ignored; they never raise and never change state.

Every transition works on copies of the session state and retry queue and
commits them only once the next question (if any) has been built, so a
failed command leaves the driver exactly as it was.
"""

import functools
import logging
import random
import threading
from collections import deque
from typing import Callable

from .catalog import Catalog, is_all_topics
from .config import SessionConfig
from .difficulty import DifficultyModel
from .errors import EmptyPool, NoQuestionAvailable, InvalidCommand, QuizError
from .interfaces import KeyValueStore, Scheduler, ScheduledTask
from .models import (
    IDLE, AWAIT_ANSWER, SHOW_FEEDBACK, FINISHED,
    SessionState, Question, Outcome, RoundSummary, HardTerm,
    accuracy_pct, round_half_up
)
from .review import RetryQueue, ReviewPool
from .sampler import build_question
from .stats import StatsAggregator
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

EVENT_QUESTION = 'question'
EVENT_OUTCOME = 'outcome'
EVENT_SUMMARY = 'summary'


def serialized(method):
    """Run a command under the driver lock, one at a time.

    A command issued from inside another one (an event listener, a timer
    firing synchronously) is queued and run after the current command ends.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._owner == threading.get_ident():
            logger.debug(f"Deferring re-entrant {method.__name__}")
            self._deferred.append((method, args, kwargs))
            return None
        with self._lock:
            self._owner = threading.get_ident()
            try:
                return method(self, *args, **kwargs)
            finally:
                while self._deferred:
                    deferred, d_args, d_kwargs = self._deferred.popleft()
                    try:
                        deferred(self, *d_args, **d_kwargs)
                    except QuizError as e:
                        logger.warning(f"Deferred {deferred.__name__} failed: {e}")
                        self.last_error = e
                self._owner = None
    return wrapper


class SessionDriver:
    """Runs rounds of multiple-choice questions over a catalog."""

    def __init__(self, catalog: Catalog, store: KeyValueStore,
                 config: SessionConfig | None = None,
                 scheduler: Scheduler | None = None,
                 rng: random.Random | None = None,
                 clock: Callable[[], str] = utc_now_iso):
        self.catalog = catalog
        self.config = config or SessionConfig()
        self.scheduler = scheduler
        self.rng = rng or random.Random()
        self.difficulty = DifficultyModel(store, clock)
        self.stats = StatsAggregator(store, clock)

        first_topic = catalog.topics[0] if catalog.topics else None
        self.state = SessionState(
            round_size=self.config.clamp_round_size(self.config.default_round_size),
            selected_topic=first_topic,
            adaptive_enabled=self.config.adaptive_enabled
        )
        self.retry_queue = RetryQueue()
        self.review = ReviewPool()
        self.question: Question | None = None
        self.last_outcome: Outcome | None = None
        self.summary: RoundSummary | None = None
        self.last_hardest: list[HardTerm] = []
        self.last_error: QuizError | None = None

        self._answered = False
        self._question_seq = 0
        self._timer: ScheduledTask | None = None
        self._listeners: list[Callable[[str, object], None]] = []
        self._lock = threading.Lock()
        self._owner = None
        self._deferred = deque()

        if self.config.auto_advance_ms > 0 and scheduler is None:
            logger.debug("No scheduler given; auto-advance disabled")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[str, object], None]) -> None:
        """Register listener(event_name, payload) for question/outcome/summary events."""
        self._listeners.append(listener)

    def _emit(self, event: str, payload) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception(f"Listener failed on {event} event")

    def _ignore(self, command: str) -> None:
        logger.debug("%s", InvalidCommand(command, self.state.phase))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def phase(self) -> str:
        return self.state.phase

    def snapshot(self) -> dict:
        data = self.state.to_dict()
        data['review'] = self.review.to_dict()
        data['retry_queue'] = self.retry_queue.to_list()
        data['progress'] = self.progress()
        return data

    def progress(self) -> float:
        total = max(1, self.state.round_size)
        return min(1.0, max(0.0, self.state.questions_asked / total))

    def hardest_terms(self, count: int | None = None) -> list[HardTerm]:
        """Hardest terms of the selected topic, computed from current stats."""
        if count is None:
            count = self.config.hardest_count
        return self.difficulty.hardest_terms(self.catalog.entries, self.state.selected_topic, count)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @serialized
    def start_or_advance(self) -> Question | None:
        """Start a round from idle/finished, or move on from feedback.

        Raises NoQuestionAvailable if the next question cannot be built.
        """
        phase = self.state.phase
        if phase in (IDLE, FINISHED):
            self.review.exit()
            self._start_round()
        elif phase == SHOW_FEEDBACK:
            self._advance()
        else:
            self._ignore('start_or_advance')
        return self.question

    @serialized
    def advance(self) -> Question | None:
        """Leave the feedback phase. Ignored in every other phase."""
        if self.state.phase != SHOW_FEEDBACK:
            self._ignore('advance')
            return None
        self._advance()
        return self.question

    @serialized
    def submit_answer(self, option_index: int) -> Outcome | None:
        """Evaluate the selected option. Only the first answer per question counts."""
        question = self.question
        if self.state.phase != AWAIT_ANSWER or self._answered or question is None:
            self._ignore('submit_answer')
            return None
        if not isinstance(option_index, int) or not 0 <= option_index < len(question.option_labels):
            self._ignore(f'submit_answer({option_index!r})')
            return None

        state = self.state.copy()
        retry = self.retry_queue.copy()
        term = question.prompt
        ok = option_index == question.correct_index
        gained = 0
        if ok:
            gained = round_half_up(self.config.base_points * (1 + state.streak * self.config.streak_bonus))
            state.score += gained
            state.streak += 1
            state.best_streak = max(state.best_streak, state.streak)
            state.correct_count += 1
            retry.on_correct(term.source_text)
        else:
            state.streak = 0
            if not self.review.is_active:
                retry.on_wrong(term.topic, term.source_text, state.round_index,
                               self.config.retry_after, self.config.max_retries)
        state.phase = SHOW_FEEDBACK

        self.difficulty.record_outcome(term.topic, term.source_text, ok)

        outcome = Outcome(ok, term, option_index, gained, state.streak)
        self.state = state
        self.retry_queue = retry
        self._answered = True
        self.last_outcome = outcome
        logger.info(f"Q{state.round_index} {term.source_text!r}: {'correct' if ok else 'wrong'} "
                    f"(+{gained}, score {state.score}, streak {state.streak})")
        self._emit(EVENT_OUTCOME, outcome)
        self._schedule_auto_advance()
        return outcome

    @serialized
    def set_topic(self, topic: str | None) -> bool:
        if self.state.phase not in (IDLE, FINISHED):
            self._ignore('set_topic')
            return False
        if not is_all_topics(topic) and topic not in self.catalog.topics:
            logger.debug(f"Unknown topic {topic!r} ignored")
            return False
        self.state.selected_topic = None if is_all_topics(topic) else topic
        return True

    def next_topic(self) -> str | None:
        return self._cycle_topic(1)

    def previous_topic(self) -> str | None:
        return self._cycle_topic(-1)

    @serialized
    def _cycle_topic(self, step: int) -> str | None:
        if self.state.phase not in (IDLE, FINISHED):
            self._ignore('cycle_topic')
            return self.state.selected_topic
        topics = self.catalog.topics
        if not topics:
            self.state.selected_topic = None
            return None
        try:
            idx = topics.index(self.state.selected_topic)
        except ValueError:
            idx = 0
        self.state.selected_topic = topics[(idx + step) % len(topics)]
        return self.state.selected_topic

    @serialized
    def set_round_size(self, n: int) -> int:
        if self.state.phase not in (IDLE, FINISHED):
            self._ignore('set_round_size')
            return self.state.round_size
        self.state.round_size = self.config.clamp_round_size(n)
        return self.state.round_size

    @serialized
    def toggle_adaptive(self) -> bool:
        """Flip adaptive selection; takes effect from the next question."""
        self.state.adaptive_enabled = not self.state.adaptive_enabled
        return self.state.adaptive_enabled

    @serialized
    def enter_review_mode(self, source_texts=None) -> Question | None:
        """Start a round replaying the given terms (default: last round's hardest) in order."""
        if self.state.phase not in (IDLE, FINISHED):
            self._ignore('enter_review_mode')
            return None
        if source_texts is None:
            source_texts = [h.source_text for h in self.last_hardest]
        pool = list(source_texts)[:self.config.review_max]
        if not pool:
            logger.debug("Empty review pool ignored")
            return None

        saved_review = (list(self.review.pool), self.review.cursor, self.review.active)
        saved_round_size = self.state.round_size
        self.review.enter(pool)
        self.state.round_size = len(pool)
        try:
            self._start_round()
        except NoQuestionAvailable:
            self.review.pool, self.review.cursor, self.review.active = saved_review
            self.state.round_size = saved_round_size
            raise
        return self.question

    @serialized
    def restart(self) -> None:
        """Abandon the current round and return to idle."""
        if self.state.phase == IDLE:
            self._ignore('restart')
            return
        self._cancel_timer()
        self.review.exit()
        self.retry_queue.clear()
        self.state.reset_round()
        self.state.phase = IDLE
        self.question = None
        self._answered = False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _start_round(self) -> None:
        state = self.state.copy()
        state.reset_round()
        logger.info(f"Starting round: topic={state.selected_topic or 'All'} size={state.round_size} "
                    f"adaptive={state.adaptive_enabled} review={self.review.is_active}")
        self._step(state, RetryQueue())

    def _advance(self) -> None:
        self._cancel_timer()
        self._step(self.state.copy(), self.retry_queue.copy())

    def _step(self, state: SessionState, retry: RetryQueue) -> None:
        """Ask the next question, or finish the round. Commits only on success."""
        if state.questions_asked >= state.round_size:
            self._commit(state, retry)
            self._finish()
            return

        state.questions_asked += 1
        state.round_index = state.questions_asked

        forced = None
        from_review = False
        if self.review.is_active:
            forced = self.review.peek()
            if forced is None:
                self._commit(state, retry)
                self._finish()
                return
            from_review = True
        elif state.adaptive_enabled:
            due = retry.next_due(state.round_index)
            if due is not None:
                forced = due.source_text

        try:
            question = build_question(
                self.catalog,
                topic=state.selected_topic,
                max_options=self.config.max_options,
                forced_subset=[forced] if forced is not None else None,
                adaptive=state.adaptive_enabled and forced is None,
                weight_factor=self.config.weight_factor,
                difficulty=self.difficulty,
                rng=self.rng
            )
        except EmptyPool as e:
            logger.warning(f"Cannot build question: {e}")
            error = NoQuestionAvailable(str(e))
            self.last_error = error
            raise error from e

        if from_review:
            self.review.next()
        state.phase = AWAIT_ANSWER
        self._commit(state, retry)
        self.question = question
        self._answered = False
        self._question_seq += 1
        self.last_error = None
        logger.debug(f"Q{state.round_index} topic={question.topic} prompt={question.prompt.source_text!r}"
                     f"{' (forced)' if forced else ''}")
        self._emit(EVENT_QUESTION, question)

    def _commit(self, state: SessionState, retry: RetryQueue) -> None:
        self.state = state
        self.retry_queue = retry

    def _finish(self) -> None:
        self._cancel_timer()
        state = self.state
        state.phase = FINISHED
        topic = state.selected_topic
        record = self.stats.fold(topic, state.score, state.correct_count,
                                 state.round_size, state.best_streak)
        hardest = self.difficulty.hardest_terms(self.catalog.entries, topic, self.config.hardest_count)
        self.last_hardest = hardest
        self.summary = RoundSummary(
            topic=topic or 'All',
            score=state.score,
            correct_count=state.correct_count,
            round_size=state.round_size,
            accuracy_pct=accuracy_pct(state.correct_count, state.round_size),
            best_streak=state.best_streak,
            record=record,
            hardest=hardest
        )
        self.question = None
        self.review.exit()
        logger.info(f"Round finished: score={state.score} accuracy={self.summary.accuracy_pct}% "
                    f"best_streak={state.best_streak} hardest={[h.source_text for h in hardest]}")
        self._emit(EVENT_SUMMARY, self.summary)

    # ------------------------------------------------------------------
    # Auto-advance
    # ------------------------------------------------------------------

    def _schedule_auto_advance(self) -> None:
        self._cancel_timer()
        if self.config.auto_advance_ms <= 0 or self.scheduler is None:
            return
        seq = self._question_seq
        self._timer = self.scheduler.call_later(
            self.config.auto_advance_ms, lambda: self._auto_advance(seq)
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @serialized
    def _auto_advance(self, seq: int) -> None:
        if self.state.phase != SHOW_FEEDBACK or seq != self._question_seq:
            return
        self._timer = None
        try:
            self._advance()
        except NoQuestionAvailable as e:
            logger.warning(f"Auto-advance stopped: {e}")
