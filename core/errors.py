"""Exception types for flashround."""


class QuizError(Exception):
    """Base class for all flashround errors."""


class EmptyPool(QuizError):
    """No catalog terms match the topic or forced-subset filter."""


class NoQuestionAvailable(QuizError):
    """The session driver could not build the next question.

    Raised to the caller of a command; driver state is left untouched.
    """


class PersistenceFailure(QuizError):
    """A store read or write failed.

    Always recovered locally. Instances are logged, never raised to the host.
    """

    def __init__(self, operation: str, key: str, cause: Exception):
        super().__init__(f"{operation} {key!r} failed: {cause}")
        self.operation = operation
        self.key = key
        self.cause = cause


class InvalidCommand(QuizError):
    """A command arrived in a phase with no transition for it. Logged only."""

    def __init__(self, command: str, phase: str):
        super().__init__(f"{command} ignored in phase {phase}")
        self.command = command
        self.phase = phase


class CatalogError(QuizError):
    """The term catalog could not be parsed."""


class ConfigError(QuizError, ValueError):
    """Invalid session configuration."""
