"""
SM-2 Spaced Repetition Scheduler.

Implements the SuperMemo 2 update for a single recall event. Each item has:
- Ease Factor (EF): how easy the item is (2.5 default, min 1.3)
- Interval: days until next review
- Repetitions: consecutive successful recalls

SM-2 Quality Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall

The simplified rating scale used by flashcard review (1 Again, 2 Hard,
3 Good, 4 Easy) maps onto this scale through ``map_simple_rating``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from .models import DEFAULT_EASE, MIN_EASE, LearningItem

# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class SM2Config:
    """Configuration for the SM-2 algorithm."""

    initial_easiness: float = DEFAULT_EASE
    minimum_easiness: float = MIN_EASE
    first_interval: int = 1  # Days after the first successful recall
    second_interval: int = 6  # Days after the second successful recall
    pass_grade: int = 3


DEFAULT_SM2 = SM2Config()

MIN_QUALITY = 0
MAX_QUALITY = 5

# Quality recorded for graded answers in learn and test modes
CORRECT_ANSWER_QUALITY = 4
INCORRECT_ANSWER_QUALITY = 1

SIMPLE_RATING_TO_QUALITY = {
    1: 0,  # Again -> complete blackout
    2: 3,  # Hard  -> correct with difficulty
    3: 4,  # Good  -> correct with hesitation
    4: 5,  # Easy  -> perfect recall
}
FALLBACK_QUALITY = 3


class QualityScale(str, Enum):
    """Scale a caller-supplied rating is expressed in."""

    NATIVE = "native"  # 0-5
    SIMPLE = "simple"  # 1-4


# =============================================================================
# Quality handling
# =============================================================================


def clamp_quality(quality: float) -> float:
    """Clamp a quality rating into the 0-5 range."""
    return max(MIN_QUALITY, min(MAX_QUALITY, quality))


def map_simple_rating(rating: int) -> int:
    """Map a simplified 1-4 rating to SM-2 quality; unknown values map to 3."""
    return SIMPLE_RATING_TO_QUALITY.get(rating, FALLBACK_QUALITY)


def to_quality(rating: float, scale: QualityScale = QualityScale.NATIVE) -> float:
    """Convert a rating on either supported scale to SM-2 quality."""
    if scale == QualityScale.SIMPLE:
        return map_simple_rating(rating)
    return clamp_quality(rating)


def answer_quality(correct: bool) -> int:
    """Quality recorded for a graded (correct/incorrect) answer."""
    return CORRECT_ANSWER_QUALITY if correct else INCORRECT_ANSWER_QUALITY


def is_passing(quality: float, config: SM2Config = DEFAULT_SM2) -> bool:
    """Whether a quality counts as a successful recall (inclusive threshold)."""
    return clamp_quality(quality) >= config.pass_grade


# =============================================================================
# SM-2 update
# =============================================================================


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def ease_delta(quality: float) -> float:
    """EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))"""
    miss = MAX_QUALITY - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def compute_next_schedule(
    item: LearningItem,
    quality: float,
    now: datetime,
    config: SM2Config = DEFAULT_SM2,
) -> LearningItem:
    """
    Calculate the next review state for an item.

    Args:
        item: Current item snapshot
        quality: Recall quality (0-5, clamped)
        now: Time of the recall event
        config: Algorithm constants

    Returns:
        A new LearningItem with ease, interval, repetitions and next review
        replaced together
    """
    quality = clamp_quality(quality)

    if quality < config.pass_grade:
        # Failed - reset to beginning
        repetitions = 0
        interval = 0
    else:
        repetitions = item.repetitions + 1

        if repetitions == 1:
            interval = config.first_interval
        elif repetitions == 2:
            interval = config.second_interval
        else:
            interval = _round_half_up(item.interval_days * item.ease_factor)

    ease = max(config.minimum_easiness, item.ease_factor + ease_delta(quality))
    next_review = now + timedelta(days=interval)

    logger.debug(
        f"Scheduled item {item.id}: q={quality}, reps={repetitions}, "
        f"interval={interval}d, ease={ease:.2f}"
    )

    return replace(
        item,
        ease_factor=ease,
        interval_days=interval,
        repetitions=repetitions,
        next_review_at=next_review,
    )


# =============================================================================
# Display
# =============================================================================


def format_interval(days: float) -> str:
    """Human-readable form of a review interval."""
    if days == 0:
        return "Now"
    if days < 1:
        return "Less than a day"
    if days == 1:
        return "1 day"
    if days < 30:
        return f"{days} days"
    if days < 365:
        months = _round_half_up(days / 30)
        return f"{months} month{'s' if months > 1 else ''}"
    years = _round_half_up(days / 365)
    return f"{years} year{'s' if years > 1 else ''}"
