"""
Study sessions.

Provides the adaptive assessment composer and the answer formats used by
test mode.
"""

from quizit.study.choices import (
    build_choices,
    is_choice_correct,
    is_written_answer_correct,
)
from quizit.study.composer import (
    AdaptiveSession,
    ReviewRecorder,
    SessionPhase,
    SessionResults,
    SessionState,
    cycle_take,
)

__all__ = [
    "AdaptiveSession",
    "ReviewRecorder",
    "SessionPhase",
    "SessionResults",
    "SessionState",
    "cycle_take",
    "build_choices",
    "is_choice_correct",
    "is_written_answer_correct",
]
