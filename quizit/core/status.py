"""
Item status classification for display and filtering.

Derives three labels from an item's SM-2 state:
- status: new / due / learning
- difficulty: easy / medium / hard (from ease factor)
- mastery: a coarse 0/33/66/100 bucket (from repetitions)

Also builds the recommended session plan shown before studying.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .models import LearningItem
from .priority import is_due, overdue_days

# Ease thresholds
EASY_EASE = 2.5
MEDIUM_EASE = 2.0

# Recommended session sizing
RECOMMENDED_DUE_CAP = 15
DUE_PER_NEW = 3
MIN_RECOMMENDED_NEW = 5


class ReviewStatus(str, Enum):
    NEW = "new"
    DUE = "due"
    LEARNING = "learning"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class ItemStatus:
    """Display labels for one item at a point in time."""

    status: ReviewStatus
    difficulty: Difficulty
    mastery_percent: int
    is_new: bool
    is_due: bool
    days_since_review: int  # Whole days past due; negative when not yet due
    next_review_at: datetime


def difficulty_of(ease_factor: float) -> Difficulty:
    if ease_factor >= EASY_EASE:
        return Difficulty.EASY
    if ease_factor >= MEDIUM_EASE:
        return Difficulty.MEDIUM
    return Difficulty.HARD


def mastery_bucket(repetitions: int) -> int:
    """Coarse mastery scale used for grouping (not linear)."""
    if repetitions == 0:
        return 0
    if repetitions < 3:
        return 33
    if repetitions < 6:
        return 66
    return 100


def classify(item: LearningItem, now: datetime) -> ItemStatus:
    new = item.repetitions == 0
    due = is_due(item, now)

    if new:
        status = ReviewStatus.NEW
    elif due:
        status = ReviewStatus.DUE
    else:
        status = ReviewStatus.LEARNING

    return ItemStatus(
        status=status,
        difficulty=difficulty_of(item.ease_factor),
        mastery_percent=mastery_bucket(item.repetitions),
        is_new=new,
        is_due=due,
        days_since_review=math.floor(overdue_days(item, now)),
        next_review_at=item.next_review_at,
    )


@dataclass(frozen=True)
class SessionPlan:
    """Recommended mix of due and new items for the next session."""

    total_items: int
    due_items: int
    new_items: int
    learning_items: int
    recommended_due: int
    recommended_new: int

    @property
    def recommended_total(self) -> int:
        return self.recommended_due + self.recommended_new


def recommend_session(
    items: Sequence[LearningItem],
    now: datetime,
    due_cap: int = RECOMMENDED_DUE_CAP,
) -> SessionPlan:
    """
    Suggest a session size: up to ``due_cap`` due items plus one new item
    per three due items (five new items when nothing is due).
    """
    due = sum(1 for item in items if is_due(item, now))
    new = sum(1 for item in items if item.repetitions == 0)
    learning = sum(1 for item in items if not is_due(item, now) and item.repetitions > 0)

    recommended_due = min(due, due_cap)
    recommended_new = min(new, recommended_due // DUE_PER_NEW or MIN_RECOMMENDED_NEW)

    return SessionPlan(
        total_items=len(items),
        due_items=due,
        new_items=new,
        learning_items=learning,
        recommended_due=recommended_due,
        recommended_new=recommended_new,
    )
