"""
Unit tests for status classification and session recommendations.
"""

from datetime import timedelta

import pytest

from quizit.core.status import Difficulty, ReviewStatus, classify, recommend_session


class TestClassify:
    @pytest.mark.parametrize("ease", [1.3, 2.0, 2.9])
    @pytest.mark.parametrize("interval", [0, 6, 120])
    def test_zero_repetitions_is_new_with_no_mastery(self, make_item, now, ease, interval):
        item = make_item(
            ease_factor=ease,
            interval_days=interval,
            next_review_at=now + timedelta(days=interval),
        )

        status = classify(item, now)

        assert status.status == ReviewStatus.NEW
        assert status.mastery_percent == 0
        assert status.is_new

    def test_practiced_item_past_review_is_due(self, make_item, now):
        item = make_item(repetitions=2, next_review_at=now - timedelta(days=3))

        status = classify(item, now)

        assert status.status == ReviewStatus.DUE
        assert status.is_due
        assert status.days_since_review == 3

    def test_due_exactly_now(self, make_item, now):
        assert classify(make_item(repetitions=1), now).status == ReviewStatus.DUE

    def test_practiced_item_not_yet_due_is_learning(self, make_item, now):
        item = make_item(repetitions=2, next_review_at=now + timedelta(days=4))

        status = classify(item, now)

        assert status.status == ReviewStatus.LEARNING
        assert not status.is_due
        assert status.days_since_review == -4

    @pytest.mark.parametrize(
        "ease,expected",
        [
            (2.7, Difficulty.EASY),
            (2.5, Difficulty.EASY),
            (2.49, Difficulty.MEDIUM),
            (2.0, Difficulty.MEDIUM),
            (1.99, Difficulty.HARD),
            (1.3, Difficulty.HARD),
        ],
    )
    def test_difficulty_thresholds(self, make_item, now, ease, expected):
        assert classify(make_item(ease_factor=ease), now).difficulty == expected

    @pytest.mark.parametrize(
        "reps,expected",
        [(0, 0), (1, 33), (2, 33), (3, 66), (5, 66), (6, 100), (12, 100)],
    )
    def test_mastery_buckets(self, make_item, now, reps, expected):
        assert classify(make_item(repetitions=reps), now).mastery_percent == expected


class TestRecommendSession:
    def test_counts_and_one_new_per_three_due(self, make_item, now):
        due = [make_item(i, repetitions=1, next_review_at=now - timedelta(days=1)) for i in range(9)]
        new = [make_item(100 + i, next_review_at=now + timedelta(days=1)) for i in range(6)]
        learning = [make_item(200, repetitions=3, next_review_at=now + timedelta(days=2))]

        plan = recommend_session(due + new + learning, now)

        assert plan.total_items == 16
        assert plan.due_items == 9
        assert plan.new_items == 6
        assert plan.learning_items == 1
        assert plan.recommended_due == 9
        assert plan.recommended_new == 3
        assert plan.recommended_total == 12

    def test_due_capped(self, make_item, now):
        items = [make_item(i, repetitions=1) for i in range(40)]

        plan = recommend_session(items, now)

        assert plan.recommended_due == 15
        assert plan.recommended_new == 0

    def test_nothing_due_suggests_five_new(self, make_item, now):
        items = [make_item(i, next_review_at=now + timedelta(days=1)) for i in range(8)]

        plan = recommend_session(items, now)

        assert plan.recommended_due == 0
        assert plan.recommended_new == 5
