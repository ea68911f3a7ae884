"""
Answer formats for test mode.

A question is multiple choice when the collection has other items to borrow
wrong answers from; a single-item collection falls back to a written answer
graded by fuzzy match.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from difflib import SequenceMatcher

from quizit.core.models import LearningItem

MAX_DISTRACTORS = 3

# Minimum similarity for a written answer to count as correct
WRITTEN_ANSWER_THRESHOLD = 0.8


def build_choices(
    item: LearningItem,
    pool: Sequence[LearningItem],
    rng: random.Random | None = None,
) -> list[LearningItem]:
    """
    Pick up to three other items as distractors and shuffle them with ``item``.

    Choices are items rather than strings so that grading compares ids, not
    answer text. Returns an empty list when ``pool`` has no other item.
    """
    rng = rng or random.Random()
    others = [candidate for candidate in pool if candidate.id != item.id]
    if not others:
        return []

    choices = rng.sample(others, min(MAX_DISTRACTORS, len(others)))
    choices.append(item)
    rng.shuffle(choices)
    return choices


def is_choice_correct(item: LearningItem, choice: LearningItem) -> bool:
    return choice.id == item.id


def answer_similarity(answer: str, expected: str) -> float:
    """Case-insensitive similarity ratio in [0, 1]."""
    given = answer.strip().lower()
    target = expected.strip().lower()
    if given == target:
        return 1.0
    if not given or not target:
        return 0.0
    return SequenceMatcher(None, given, target).ratio()


def is_written_answer_correct(
    answer: str,
    expected: str,
    threshold: float = WRITTEN_ANSWER_THRESHOLD,
) -> bool:
    if not answer.strip():
        return False
    return answer_similarity(answer, expected) >= threshold
