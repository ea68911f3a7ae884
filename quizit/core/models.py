"""
Value types shared by the scheduler, ranker, composer and store.

- LearningItem: a schedulable unit of study content with SM-2 state
- AttemptRecord: one answered question (append-only)
- SessionRecord: a study session summary
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

DEFAULT_EASE = 2.5
MIN_EASE = 1.3


class StudyMode(str, Enum):
    """How a session presents items."""

    FLASHCARDS = "flashcards"
    LEARN = "learn"
    TEST = "test"


@dataclass(frozen=True)
class LearningItem:
    """A single study item and its spaced repetition state."""

    id: int
    front: str
    back: str
    next_review_at: datetime
    collection_id: int | None = None
    front_image: str | None = None
    back_image: str | None = None
    ease_factor: float = DEFAULT_EASE
    interval_days: int = 0
    repetitions: int = 0  # Consecutive successful recalls
    created_at: datetime | None = None

    @classmethod
    def new(
        cls,
        id: int,
        front: str,
        back: str,
        now: datetime,
        **content,
    ) -> LearningItem:
        """Create an item in its initial, never-reviewed state."""
        return cls(
            id=id,
            front=front,
            back=back,
            next_review_at=now,
            created_at=now,
            **content,
        )


@dataclass(frozen=True)
class AttemptRecord:
    """A single answer to a learning item."""

    item_id: int
    correct: bool
    time_spent_ms: int
    timestamp: datetime
    confidence: int = 3  # Quality or simplified rating supplied by the caller
    session_id: int | None = None


@dataclass
class SessionRecord:
    """A study session summary."""

    id: int
    collection_id: int
    mode: StudyMode
    started_at: datetime
    ended_at: datetime | None = None
    items_studied: int = 0
    correct_count: int = 0
    incorrect_count: int = 0

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    @property
    def duration(self) -> timedelta:
        """Elapsed time of a finished session (zero while still open)."""
        if self.ended_at is None:
            return timedelta(0)
        return self.ended_at - self.started_at
