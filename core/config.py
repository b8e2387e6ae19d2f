"""Configuration constants for flashround."""

from .errors import ConfigError

# Round size
ROUND_SIZE_MIN = 3
ROUND_SIZE_MAX = 20
DEFAULT_ROUND_SIZE = 10

# Questions
MAX_OPTIONS_PER_QUESTION = 4

# Scoring
BASE_POINTS = 100
STREAK_BONUS_FRACTION = 0.15  # +15% per correct answer already in the streak

# Gameplay
AUTO_ADVANCE_MS = 1200  # 0 disables auto-advance

# Adaptive selection
ADAPTIVE_ENABLED_BY_DEFAULT = True
ADAPTIVE_WEIGHT_FACTOR = 1.2
RETRY_AFTER_ROUNDS = 3        # A missed term comes back this many questions later
MAX_RETRY_ATTEMPTS = 2
REVIEW_POOL_MAX_SIZE = 5
HARDEST_TERMS_COUNT = 3

# Difficulty model
DIFFICULTY_MIN = 0.5
DIFFICULTY_MAX = 4.0
RECENT_MISS_PENALTY = 0.5
MIN_SAMPLING_WEIGHT = 0.2

# Store keys
WORD_STATS_PREFIX = 'stats:word:'
TOPIC_STATS_PREFIX = 'stats:topic:'
ALL_TOPICS_KEY = 'All'
DEFAULT_TOPIC = 'Misc'


class SessionConfig:
    """Tunable settings for one session driver."""

    def __init__(self,
                 round_size_min: int = ROUND_SIZE_MIN,
                 round_size_max: int = ROUND_SIZE_MAX,
                 default_round_size: int = DEFAULT_ROUND_SIZE,
                 max_options: int = MAX_OPTIONS_PER_QUESTION,
                 base_points: int = BASE_POINTS,
                 streak_bonus: float = STREAK_BONUS_FRACTION,
                 auto_advance_ms: int = AUTO_ADVANCE_MS,
                 weight_factor: float = ADAPTIVE_WEIGHT_FACTOR,
                 retry_after: int = RETRY_AFTER_ROUNDS,
                 max_retries: int = MAX_RETRY_ATTEMPTS,
                 review_max: int = REVIEW_POOL_MAX_SIZE,
                 adaptive_enabled: bool = ADAPTIVE_ENABLED_BY_DEFAULT,
                 hardest_count: int = HARDEST_TERMS_COUNT):
        self.round_size_min = round_size_min
        self.round_size_max = round_size_max
        self.default_round_size = default_round_size
        self.max_options = max_options
        self.base_points = base_points
        self.streak_bonus = streak_bonus
        self.auto_advance_ms = auto_advance_ms
        self.weight_factor = weight_factor
        self.retry_after = retry_after
        self.max_retries = max_retries
        self.review_max = review_max
        self.adaptive_enabled = adaptive_enabled
        self.hardest_count = hardest_count
        self.validate()

    _FIELDS = [
        'round_size_min', 'round_size_max', 'default_round_size', 'max_options',
        'base_points', 'streak_bonus', 'auto_advance_ms', 'weight_factor',
        'retry_after', 'max_retries', 'review_max', 'adaptive_enabled',
        'hardest_count'
    ]

    def validate(self) -> None:
        if self.max_options < 2:
            raise ConfigError(f"max_options must be at least 2, got {self.max_options}")
        if self.round_size_min > self.round_size_max:
            raise ConfigError(
                f"round_size_min ({self.round_size_min}) exceeds round_size_max ({self.round_size_max})"
            )
        if self.auto_advance_ms < 0:
            raise ConfigError("auto_advance_ms must not be negative")
        if self.weight_factor <= 0:
            raise ConfigError("weight_factor must be positive")
        if self.retry_after < 0 or self.max_retries < 0 or self.review_max < 0:
            raise ConfigError("retry and review settings must not be negative")

    def clamp_round_size(self, n: int) -> int:
        return max(self.round_size_min, min(self.round_size_max, int(n)))

    def to_dict(self) -> dict:
        return {field: getattr(self, field) for field in self._FIELDS}

    @classmethod
    def from_dict(cls, data: dict) -> 'SessionConfig':
        """Build a config from a dict, ignoring unknown keys."""
        return cls(**{k: v for k, v in data.items() if k in cls._FIELDS})
