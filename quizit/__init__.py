"""
QuizIt: spaced repetition scheduling and adaptive assessment.

SM-2 scheduling, review-urgency ranking, status classification, an adaptive
test-session composer and attempt statistics, with a SQLite store and a
terminal interface.
"""

__version__ = "1.0.0"
