"""
Exception hierarchy for QuizIt.

Invalid quality ratings are clamped rather than raised; only conditions the
caller has to act on get an exception.
"""


class QuizItError(Exception):
    """Base class for all QuizIt errors."""
    pass


class EmptyPoolError(QuizItError):
    """Raised when an assessment session is started with no items."""
    pass


class SessionCompleteError(QuizItError):
    """Raised when an answer is submitted to a session that has ended."""
    pass


class StorageError(QuizItError):
    """Raised when a stored record is missing or malformed."""
    pass


class SessionNotStartedError(QuizItError):
    """Raised when an answer is submitted before the session has started."""
    pass
