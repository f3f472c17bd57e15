"""
Progress calculator for flashcard sets.

This is a pure computation module with no I/O.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime

from repetita.domain.constants import MASTERY_MIN_EASINESS, MASTERY_REPETITIONS
from repetita.domain.models import CardId, CardReviewState, SetStatistics


class ProgressCalculator:
    """
    Derives set-level progress from per-card review states.

    Stateless and side-effect free.
    """

    def __init__(
        self,
        mastery_repetitions: int = MASTERY_REPETITIONS,
        mastery_min_easiness: float = MASTERY_MIN_EASINESS,
    ):
        self.mastery_repetitions = mastery_repetitions
        self.mastery_min_easiness = mastery_min_easiness

    def is_mastered(self, state: CardReviewState) -> bool:
        return state.mastered(self.mastery_repetitions, self.mastery_min_easiness)

    def summarize(
        self,
        card_ids: Iterable[CardId],
        states: Mapping[CardId, CardReviewState],
        as_of: datetime,
    ) -> SetStatistics:
        """
        Summarize a learner's progress over the given cards.

        Cards without state count towards the total and are due, but are
        neither reviewed nor mastered.
        """
        card_ids = set(card_ids)
        total = len(card_ids)
        reviewed = 0
        mastered = 0
        due = 0
        last_reviewed_at: datetime | None = None

        for card_id in card_ids:
            state = states.get(card_id)
            if state is None:
                due += 1
                continue
            if not state.is_new:
                reviewed += 1
                if last_reviewed_at is None or state.last_reviewed_at > last_reviewed_at:
                    last_reviewed_at = state.last_reviewed_at
            if self.is_mastered(state):
                mastered += 1
            if state.is_due(as_of):
                due += 1

        return SetStatistics(
            total_cards=total,
            reviewed_cards=reviewed,
            mastered_cards=mastered,
            cards_due=due,
            progress_percentage=self._percentage(reviewed, total),
            mastery_percentage=self._percentage(mastered, total),
            is_completed=total > 0 and mastered >= total,
            last_reviewed_at=last_reviewed_at,
        )

    def _percentage(self, part: int, total: int) -> float:
        if total == 0:
            return 0.0
        return part * 100.0 / total
