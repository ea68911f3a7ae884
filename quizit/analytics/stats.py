"""
Attempt and session statistics.

Summarizes stored history for a collection and for single items. Pure
consumers of stored records: nothing here touches scheduling state.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from quizit.core.models import AttemptRecord, LearningItem, SessionRecord, StudyMode
from quizit.core.status import Difficulty, ItemStatus, classify

# Items above this ease with a non-zero interval count as mastered
MASTERY_EASE = 2.5


def _percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


@dataclass(frozen=True)
class CollectionStats:
    total_items: int
    total_sessions: int
    total_time: timedelta
    total_correct: int
    total_incorrect: int
    accuracy: float
    mastery_level: float


@dataclass(frozen=True)
class ItemStats:
    total_attempts: int
    correct_count: int
    incorrect_count: int
    accuracy: float
    avg_time_ms: float
    last_attempt_at: datetime | None


def collection_stats(
    items: Sequence[LearningItem],
    sessions: Sequence[SessionRecord],
) -> CollectionStats:
    """
    Totals across a collection.

    Only finished sessions contribute answers and time. ``mastery_level`` is
    the share of items with ease above 2.5 and an interval of at least a day.
    """
    finished = [s for s in sessions if s.is_finished]
    correct = sum(s.correct_count for s in finished)
    incorrect = sum(s.incorrect_count for s in finished)
    total_time = sum((s.duration for s in finished), timedelta(0))

    mastered = sum(
        1 for item in items if item.ease_factor > MASTERY_EASE and item.interval_days >= 1
    )

    return CollectionStats(
        total_items=len(items),
        total_sessions=len(sessions),
        total_time=total_time,
        total_correct=correct,
        total_incorrect=incorrect,
        accuracy=_percent(correct, correct + incorrect),
        mastery_level=_percent(mastered, len(items)),
    )


def item_stats(attempts: Sequence[AttemptRecord]) -> ItemStats:
    """
    Summarize attempts for one item.

    Attempts are expected in chronological append order; the last one
    supplies ``last_attempt_at``.
    """
    total = len(attempts)
    correct = sum(1 for a in attempts if a.correct)
    total_time = sum(a.time_spent_ms for a in attempts)

    return ItemStats(
        total_attempts=total,
        correct_count=correct,
        incorrect_count=total - correct,
        accuracy=_percent(correct, total),
        avg_time_ms=total_time / total if total > 0 else 0.0,
        last_attempt_at=attempts[-1].timestamp if attempts else None,
    )


def accuracy_by_mode(sessions: Sequence[SessionRecord]) -> dict[StudyMode, float]:
    """Accuracy percent per study mode over finished sessions."""
    result = {}
    for mode in StudyMode:
        finished = [s for s in sessions if s.mode == mode and s.is_finished]
        correct = sum(s.correct_count for s in finished)
        incorrect = sum(s.incorrect_count for s in finished)
        result[mode] = _percent(correct, correct + incorrect)
    return result


def session_history(
    sessions: Sequence[SessionRecord],
    since: datetime | None = None,
    limit: int | None = None,
) -> list[SessionRecord]:
    """Finished sessions, newest first, optionally bounded by start time and count."""
    finished = [
        s for s in sessions
        if s.is_finished and (since is None or s.started_at >= since)
    ]
    finished.sort(key=lambda s: s.started_at, reverse=True)
    return finished if limit is None else finished[:limit]


# =============================================================================
# Per-item performance listing
# =============================================================================


class PerformanceFilter(str, Enum):
    ALL = "all"
    STRUGGLING = "struggling"
    MASTERED = "mastered"
    LEARNING = "learning"


class PerformanceSort(str, Enum):
    DEFAULT = "default"
    ACCURACY = "accuracy"
    ATTEMPTS = "attempts"
    LAST_STUDIED = "last_studied"


@dataclass(frozen=True)
class ItemPerformance:
    item: LearningItem
    stats: ItemStats
    status: ItemStatus


def _matches(row: ItemPerformance, which: PerformanceFilter) -> bool:
    if which == PerformanceFilter.STRUGGLING:
        return row.status.difficulty == Difficulty.HARD
    if which == PerformanceFilter.MASTERED:
        return row.status.mastery_percent == 100
    if which == PerformanceFilter.LEARNING:
        return 0 < row.status.mastery_percent < 100
    return True


def item_performance(
    items: Sequence[LearningItem],
    attempts_by_item: Mapping[int, Sequence[AttemptRecord]],
    now: datetime,
    which: PerformanceFilter = PerformanceFilter.ALL,
    sort: PerformanceSort = PerformanceSort.DEFAULT,
) -> list[ItemPerformance]:
    """Join item stats with status labels, then filter and sort."""
    rows = [
        ItemPerformance(
            item=item,
            stats=item_stats(attempts_by_item.get(item.id, [])),
            status=classify(item, now),
        )
        for item in items
    ]
    rows = [row for row in rows if _matches(row, which)]

    if sort == PerformanceSort.ACCURACY:
        rows.sort(key=lambda r: r.stats.accuracy)
    elif sort == PerformanceSort.ATTEMPTS:
        rows.sort(key=lambda r: r.stats.total_attempts, reverse=True)
    elif sort == PerformanceSort.LAST_STUDIED:
        # Never-studied items go last
        rows.sort(
            key=lambda r: (r.stats.last_attempt_at is not None, r.stats.last_attempt_at or datetime.min),
            reverse=True,
        )
    return rows
