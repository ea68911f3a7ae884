"""
Review urgency ranking.

Lower score = higher priority. Overdue time dominates: each overdue day
subtracts 10, each day until due adds 1. The ease and repetition terms add
``(3 - ease) * 5`` and ``(10 - repetitions) * 0.5`` on top, so among items
with the same due time a higher ease or more repetitions gives a lower score.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from .models import LearningItem

DAY = timedelta(days=1)

OVERDUE_WEIGHT = 10.0
EASE_WEIGHT = 5.0
REPETITION_WEIGHT = 0.5


def overdue_days(item: LearningItem, now: datetime) -> float:
    """Fractional days past the scheduled review (negative if not yet due)."""
    return (now - item.next_review_at) / DAY


def priority_score(item: LearningItem, now: datetime) -> float:
    overdue = overdue_days(item, now)

    if overdue > 0:
        score = -(overdue * OVERDUE_WEIGHT)
    else:
        score = abs(overdue)

    score += (3 - item.ease_factor) * EASE_WEIGHT
    score += (10 - item.repetitions) * REPETITION_WEIGHT
    return score


def sort_by_priority(items: Iterable[LearningItem], now: datetime) -> list[LearningItem]:
    """
    Order items by ascending priority score.

    The sort is stable: items with equal scores keep their input order.
    Returns a new list; the input is not modified.
    """
    return sorted(items, key=lambda item: priority_score(item, now))


def is_due(item: LearningItem, now: datetime) -> bool:
    return item.next_review_at <= now


def due_items(items: Iterable[LearningItem], now: datetime) -> list[LearningItem]:
    """Items whose next review is at or before ``now``, in input order."""
    return [item for item in items if is_due(item, now)]
