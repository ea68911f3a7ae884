"""
Core spaced repetition logic.

Components:
- LearningItem / AttemptRecord / SessionRecord: value types
- compute_next_schedule: SM-2 update for one recall event
- sort_by_priority: review urgency ranking
- classify: status, difficulty and mastery labels
"""

from .errors import (
    EmptyPoolError,
    QuizItError,
    SessionCompleteError,
    SessionNotStartedError,
    StorageError,
)
from .models import AttemptRecord, LearningItem, SessionRecord, StudyMode
from .priority import due_items, is_due, priority_score, sort_by_priority
from .scheduler import (
    QualityScale,
    SM2Config,
    answer_quality,
    compute_next_schedule,
    format_interval,
    map_simple_rating,
    to_quality,
)
from .status import (
    Difficulty,
    ItemStatus,
    ReviewStatus,
    SessionPlan,
    classify,
    recommend_session,
)

__all__ = [
    # Models
    "LearningItem",
    "AttemptRecord",
    "SessionRecord",
    "StudyMode",
    # Scheduling
    "SM2Config",
    "QualityScale",
    "compute_next_schedule",
    "answer_quality",
    "map_simple_rating",
    "to_quality",
    "format_interval",
    # Ranking
    "priority_score",
    "sort_by_priority",
    "is_due",
    "due_items",
    # Classification
    "classify",
    "recommend_session",
    "ItemStatus",
    "ReviewStatus",
    "Difficulty",
    "SessionPlan",
    # Errors
    "QuizItError",
    "EmptyPoolError",
    "SessionCompleteError",
    "SessionNotStartedError",
    "StorageError",
]
