"""
Domain models for flashcard scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime

from .constants import (
    FIRST_INTERVAL_DAYS,
    INITIAL_EASINESS,
    LAPSE_INTERVAL_DAYS,
    MASTERY_MIN_EASINESS,
    MASTERY_REPETITIONS,
    MIN_EASINESS,
    SECOND_INTERVAL_DAYS,
    SUCCESS_THRESHOLD,
)

CardId = int


@dataclass(frozen=True)
class Sm2Parameters:
    """
    Tuning constants for the SM-2 update.

    Attributes:
        initial_easiness: Easiness factor of a never-reviewed card.
        min_easiness: Floor applied after every update.
        first_interval_days: Interval after the 1st consecutive success.
        second_interval_days: Interval after the 2nd consecutive success.
        lapse_interval_days: Interval after a failed recall.
        base_gain: Constant term of the easiness delta.
        linear_penalty: Linear coefficient on (5 - quality).
        quadratic_penalty: Quadratic coefficient on (5 - quality).
    """

    initial_easiness: float = INITIAL_EASINESS
    min_easiness: float = MIN_EASINESS
    first_interval_days: int = FIRST_INTERVAL_DAYS
    second_interval_days: int = SECOND_INTERVAL_DAYS
    lapse_interval_days: int = LAPSE_INTERVAL_DAYS
    base_gain: float = 0.1
    linear_penalty: float = 0.08
    quadratic_penalty: float = 0.02


DEFAULT_PARAMETERS = Sm2Parameters()


@dataclass(frozen=True)
class CardReviewState:
    """
    Scheduling state of one card for one learner.

    Attributes:
        easiness_factor: Multiplier for interval growth (never below the floor).
        repetition_count: Consecutive successful reviews; reset by a lapse.
        interval_days: Days between last_reviewed_at and due_at.
        due_at: When the card next becomes eligible for review (UTC).
        last_reviewed_at: None for a card that was never reviewed.
        total_reviews: Every review ever recorded, lapses included.
        correct_reviews: Reviews with a successful quality.
        first_reviewed_at: Time of the first review, if any.
    """

    easiness_factor: float
    repetition_count: int
    interval_days: int
    due_at: datetime
    last_reviewed_at: datetime | None = None
    total_reviews: int = 0
    correct_reviews: int = 0
    first_reviewed_at: datetime | None = None

    @classmethod
    def new(
        cls, now: datetime, params: Sm2Parameters = DEFAULT_PARAMETERS
    ) -> "CardReviewState":
        """Default state of a card the learner has never reviewed; due immediately."""
        return cls(
            easiness_factor=params.initial_easiness,
            repetition_count=0,
            interval_days=0,
            due_at=now,
        )

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    def is_due(self, as_of: datetime) -> bool:
        return self.due_at <= as_of

    def mastered(
        self,
        min_repetitions: int = MASTERY_REPETITIONS,
        min_easiness: float = MASTERY_MIN_EASINESS,
    ) -> bool:
        return self.repetition_count >= min_repetitions and self.easiness_factor >= min_easiness


@dataclass(frozen=True)
class ReviewResult:
    """
    Outcome of a persisted review, as returned to the study UI.
    """

    card_id: CardId
    quality: int
    state: CardReviewState

    @property
    def next_review_at(self) -> datetime:
        return self.state.due_at

    @property
    def interval_days(self) -> int:
        return self.state.interval_days

    @property
    def message(self) -> str:
        if self.quality < SUCCESS_THRESHOLD:
            return "Try again!"
        days = self.state.interval_days
        return f"Great! Next review in {days} day{'s' if days != 1 else ''}."


@dataclass
class SetStatistics:
    """
    Learner progress across one flashcard set.
    """

    total_cards: int
    reviewed_cards: int
    mastered_cards: int
    cards_due: int
    progress_percentage: float
    mastery_percentage: float
    is_completed: bool
    last_reviewed_at: datetime | None = None
