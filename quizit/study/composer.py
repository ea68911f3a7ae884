"""
Adaptive Session Composer.

Owns one assessment run:

    INIT -> ACTIVE -> (REPLENISH)* -> COMPLETE

Selection at start uses the priority ranker (most urgent items win), then the
working set is shuffled so priority decides *what* is asked, not the order.
When the caller asks for more questions than the pool holds, the working set
is replenished from this session's answer history at a 3:1 ratio of
previously-missed to previously-known items.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol, TypeVar

from loguru import logger

from quizit.core.errors import EmptyPoolError, SessionCompleteError, SessionNotStartedError
from quizit.core.models import AttemptRecord, LearningItem
from quizit.core.priority import sort_by_priority
from quizit.core.scheduler import DEFAULT_SM2, SM2Config, answer_quality, compute_next_schedule

T = TypeVar("T")

INCORRECT_WEIGHT = 3
CORRECT_WEIGHT = 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def cycle_take(items: Sequence[T], count: int) -> list[T]:
    """
    Take ``count`` elements from ``items`` as a ring buffer.

    An empty sequence yields nothing; a single element is repeated.
    """
    if not items or count <= 0:
        return []
    return [items[i % len(items)] for i in range(count)]


class ReviewRecorder(Protocol):
    """Storage operations the composer needs after each answer."""

    def save_item(self, item: LearningItem) -> None:
        """Persist the four scheduler fields of an item."""
        ...

    def log_attempt(self, attempt: AttemptRecord) -> int:
        """Append an attempt record and return its id."""
        ...


class SessionPhase(str, Enum):
    INIT = "init"
    ACTIVE = "active"
    REPLENISH = "replenish"
    COMPLETE = "complete"


@dataclass
class SessionState:
    """Mutable state of one run. Correctness sets only ever grow."""

    queue: list[int] = field(default_factory=list)  # Item ids in presentation order
    position: int = 0
    presented: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    answered_correctly: list[int] = field(default_factory=list)
    answered_incorrectly: list[int] = field(default_factory=list)

    def record(self, item_id: int, correct: bool) -> None:
        self.presented += 1
        if correct:
            self.correct_count += 1
            target = self.answered_correctly
        else:
            self.incorrect_count += 1
            target = self.answered_incorrectly
        if item_id not in target:
            target.append(item_id)


@dataclass(frozen=True)
class SessionResults:
    """Summary exposed once a run is over (or at any point during it)."""

    presented: int
    correct: int
    incorrect: int
    target: int

    @property
    def accuracy(self) -> float:
        answered = self.correct + self.incorrect
        if answered == 0:
            return 0.0
        return self.correct / answered * 100


class AdaptiveSession:
    """
    One adaptive assessment run.

    Usage:
        session = AdaptiveSession(recorder=store).start(items, target_count=20)
        while not session.is_complete():
            item = session.current
            ...
            session.submit_answer(correct)
        results = session.results()
    """

    def __init__(
        self,
        recorder: ReviewRecorder | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utc_now,
        config: SM2Config = DEFAULT_SM2,
        incorrect_weight: int = INCORRECT_WEIGHT,
        correct_weight: int = CORRECT_WEIGHT,
        session_id: int | None = None,
    ):
        """
        Args:
            recorder: Storage collaborator for updated items and attempts
            rng: Random source for presentation shuffles
            clock: Time source used when ``now`` is not passed explicitly
            config: SM-2 constants
            incorrect_weight: Replenishment share of previously-missed items
            correct_weight: Replenishment share of previously-known items
            session_id: Stored session id attached to attempt records

        Raises:
            ValueError: If a weight is negative or both weights are zero
        """
        if incorrect_weight < 0 or correct_weight < 0:
            raise ValueError("Replenishment weights must not be negative")
        if incorrect_weight + correct_weight == 0:
            raise ValueError("At least one replenishment weight must be positive")

        self.recorder = recorder
        self.rng = rng or random.Random()
        self.clock = clock
        self.config = config
        self.incorrect_weight = incorrect_weight
        self.correct_weight = correct_weight
        self.session_id = session_id

        self.phase = SessionPhase.INIT
        self.target_count = 0
        self.state = SessionState()
        self._pool: list[int] = []
        self._items: dict[int, LearningItem] = {}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(
        self,
        pool: Sequence[LearningItem],
        target_count: int | None = None,
        now: datetime | None = None,
    ) -> AdaptiveSession:
        """
        Select and shuffle the initial working set.

        Raises:
            EmptyPoolError: If ``pool`` has no items
        """
        if not pool:
            raise EmptyPoolError("Cannot start a session with an empty item pool")

        now = now or self.clock()
        target = len(pool) if target_count is None else max(0, target_count)

        self._items = {item.id: item for item in pool}
        self._pool = [item.id for item in pool]
        self.target_count = target

        if target <= len(pool):
            selected = sort_by_priority(pool, now)[:target]
        else:
            # Deficit is covered by replenishment once these run out
            selected = list(pool)

        queue = [item.id for item in selected]
        self.rng.shuffle(queue)
        self.state = SessionState(queue=queue)
        self.phase = SessionPhase.ACTIVE if queue else SessionPhase.COMPLETE

        logger.info(
            f"Session started: {len(queue)} of {len(pool)} items selected, target {target}"
        )
        return self

    @property
    def current(self) -> LearningItem | None:
        """Item awaiting an answer, or None once complete."""
        if self.phase != SessionPhase.ACTIVE:
            return None
        return self._items[self.state.queue[self.state.position]]

    def submit_answer(
        self,
        correct: bool,
        time_spent_ms: int = 0,
        now: datetime | None = None,
    ) -> AttemptRecord:
        """
        Grade the current item, reschedule it and advance.

        Returns:
            The attempt record handed to the recorder

        Raises:
            SessionNotStartedError: If ``start`` has not been called
            SessionCompleteError: If the session has already ended
        """
        if self.phase == SessionPhase.INIT:
            raise SessionNotStartedError("Session has not been started; call start() first")
        if self.phase != SessionPhase.ACTIVE:
            raise SessionCompleteError(f"Session is {self.phase.value}; no question pending")

        now = now or self.clock()
        item = self.current
        quality = answer_quality(correct)

        updated = compute_next_schedule(item, quality, now, self.config)
        self._items[item.id] = updated
        self.state.record(item.id, correct)

        attempt = AttemptRecord(
            item_id=item.id,
            correct=correct,
            time_spent_ms=time_spent_ms,
            timestamp=now,
            confidence=quality,
            session_id=self.session_id,
        )
        if self.recorder is not None:
            self.recorder.save_item(updated)
            self.recorder.log_attempt(attempt)

        self._advance()
        return attempt

    def is_complete(self) -> bool:
        return self.phase == SessionPhase.COMPLETE

    def results(self) -> SessionResults:
        return SessionResults(
            presented=self.state.presented,
            correct=self.state.correct_count,
            incorrect=self.state.incorrect_count,
            target=self.target_count,
        )

    @property
    def remaining(self) -> int:
        """Questions left before the target is reached."""
        return max(0, self.target_count - self.state.presented)

    # =========================================================================
    # Replenishment
    # =========================================================================

    def _advance(self) -> None:
        self.state.position += 1

        if self.state.presented >= self.target_count:
            self._complete()
            return

        if self.state.position < len(self.state.queue):
            return

        self.phase = SessionPhase.REPLENISH
        drawn = self.select_additional(self.target_count - self.state.presented)

        if not drawn:
            logger.warning(
                f"No items available to replenish session; ending at "
                f"{self.state.presented}/{self.target_count}"
            )
            self._complete()
            return

        self.state.queue.extend(item.id for item in drawn)
        self.phase = SessionPhase.ACTIVE

    def select_additional(self, count: int) -> list[LearningItem]:
        """
        Draw ``count`` repeat items, weighted toward missed ones.

        ceil(count * 3/4) come from the incorrectly-answered set and the rest
        from the correctly-answered set, each cycled as needed. If one set is
        empty the other covers the whole count; if both are empty the
        original pool is cycled. Drawn items are shuffled.
        """
        incorrect = self.state.answered_incorrectly
        correct = self.state.answered_correctly

        if incorrect and correct:
            total_weight = self.incorrect_weight + self.correct_weight
            incorrect_count = -(-count * self.incorrect_weight // total_weight)
            ids = cycle_take(incorrect, incorrect_count)
            ids += cycle_take(correct, count - incorrect_count)
        elif incorrect or correct:
            ids = cycle_take(incorrect or correct, count)
        else:
            ids = cycle_take(self._pool, count)

        drawn = [self._items[item_id] for item_id in ids]
        self.rng.shuffle(drawn)

        logger.debug(
            f"Replenished {len(drawn)} items "
            f"({len(incorrect)} missed, {len(correct)} known in history)"
        )
        return drawn

    def _complete(self) -> None:
        self.phase = SessionPhase.COMPLETE
        results = self.results()
        logger.info(
            f"Session complete: {results.presented} presented, "
            f"{results.correct} correct, {results.incorrect} incorrect"
        )
