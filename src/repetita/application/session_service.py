"""
Study Session Service — Application layer orchestrator.

Coordinates the flashcard store and the pure scheduler for the study UI:
fetch the due cards once per session, then record one review per answer.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from repetita.domain.constants import DEFAULT_SESSION_LIMIT
from repetita.domain.exceptions import PersistenceFailure, UnknownCard
from repetita.domain.models import (
    DEFAULT_PARAMETERS,
    CardId,
    CardReviewState,
    ReviewResult,
    SetStatistics,
    Sm2Parameters,
)
from repetita.domain.ports import FlashcardStore

from .progress import ProgressCalculator
from .scheduler import due_cards, record_review, validate_quality

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudySessionService:
    """
    Application service behind the study UI.

    Follows Dependency Inversion: depends on the FlashcardStore abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        store: FlashcardStore,
        params: Sm2Parameters = DEFAULT_PARAMETERS,
        calculator: ProgressCalculator | None = None,
        session_limit: int | None = DEFAULT_SESSION_LIMIT,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            store: The repository (port) for card catalogue and review state.
            params: SM-2 tuning constants.
            calculator: Optional custom calculator; uses default if not provided.
            session_limit: Default maximum number of cards per session (0 or None: no cap).
            clock: Source of the current time (timezone-aware UTC).
        """
        self._store = store
        self._params = params
        self._calc = calculator or ProgressCalculator()
        self._session_limit = session_limit
        self._clock = clock

    async def start_session(
        self, learner_id: str, set_id: int, limit: int | None = None
    ) -> list[CardId]:
        """
        Fetch the cards due for review in a set, oldest-due first.

        Args:
            learner_id: The studying learner.
            set_id: The flashcard set being studied.
            limit: Maximum cards to return; falls back to the service default.

        Returns:
            Card ids in review order. Never-reviewed cards are always included.
        """
        candidates = await self._store.load_candidate_card_ids(learner_id, set_id)
        if not candidates:
            return []

        states = await self._store.load_states(learner_id, candidates)
        due = due_cards(learner_id, candidates, self._clock(), states)
        selected = due.take(limit if limit is not None else self._session_limit)

        logger.info(
            f"Session started: learner={learner_id} set={set_id} "
            f"due={len(due)}/{len(candidates)} selected={len(selected)}"
        )
        return selected

    async def submit_review(self, learner_id: str, card_id: CardId, quality: int) -> ReviewResult:
        """
        Record the learner's rating for one card.

        Returns only once the new state is persisted. If the store fails, the
        computed state is discarded and the error propagates so the caller can
        retry the same submission.

        Raises:
            InvalidQuality: quality is outside 0-5. The store is not touched.
            UnknownCard: the card does not exist.
            PersistenceFailure: the new state could not be saved.
        """
        validate_quality(quality)

        if not await self._store.card_exists(card_id):
            raise UnknownCard(card_id)

        current = await self._store.load_state(learner_id, card_id)
        new_state = record_review(current, quality, self._clock(), self._params)

        try:
            await self._store.save_state(learner_id, card_id, new_state, expected=current)
        except PersistenceFailure:
            logger.error(
                f"Review not recorded: learner={learner_id} card={card_id} quality={quality}",
                exc_info=True,
            )
            raise

        logger.info(
            f"Review recorded: learner={learner_id} card={card_id} quality={quality} "
            f"interval={new_state.interval_days}d reps={new_state.repetition_count} "
            f"ef={new_state.easiness_factor:.2f}"
        )
        return ReviewResult(card_id=card_id, quality=quality, state=new_state)

    def is_mastered(self, state: CardReviewState) -> bool:
        """Mastery under the configured thresholds, the same rule set statistics use."""
        return self._calc.is_mastered(state)

    async def get_card_progress(self, learner_id: str, card_id: CardId) -> CardReviewState | None:
        """
        Fetch the stored state of one card; None if the learner never reviewed it.
        """
        return await self._store.load_state(learner_id, card_id)

    def close(self) -> None:
        self._store.close()

    async def get_set_statistics(self, learner_id: str, set_id: int) -> SetStatistics:
        """
        Summarize the learner's progress over a set.
        """
        candidates = await self._store.load_candidate_card_ids(learner_id, set_id)
        states = await self._store.load_states(learner_id, candidates) if candidates else {}
        return self._calc.summarize(candidates, states, self._clock())
