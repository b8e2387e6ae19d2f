from .models import (
    Term, Question, TermStats, RetryEntry, TopicRecord, SessionState,
    RoundSummary, Outcome, HardTerm,
    IDLE, AWAIT_ANSWER, SHOW_FEEDBACK, FINISHED
)
from .interfaces import KeyValueStore, MemoryStore, Scheduler, ScheduledTask
from .errors import (
    QuizError, EmptyPool, NoQuestionAvailable, PersistenceFailure,
    InvalidCommand, CatalogError, ConfigError
)
from .catalog import Catalog, load_catalog
from .config import SessionConfig
from .difficulty import DifficultyModel
from .sampler import build_question, weighted_sample
from .review import RetryQueue, ReviewPool
from .stats import StatsAggregator
from .session import SessionDriver

__all__ = [
    'Term', 'Question', 'TermStats', 'RetryEntry', 'TopicRecord', 'SessionState',
    'RoundSummary', 'Outcome', 'HardTerm',
    'IDLE', 'AWAIT_ANSWER', 'SHOW_FEEDBACK', 'FINISHED',
    'KeyValueStore', 'MemoryStore', 'Scheduler', 'ScheduledTask',
    'QuizError', 'EmptyPool', 'NoQuestionAvailable', 'PersistenceFailure',
    'InvalidCommand', 'CatalogError', 'ConfigError',
    'Catalog', 'load_catalog', 'SessionConfig',
    'DifficultyModel', 'build_question', 'weighted_sample',
    'RetryQueue', 'ReviewPool', 'StatsAggregator', 'SessionDriver'
]
