"""
SM-2 scheduler: review updates and due-card selection.

This is a pure computation module with no I/O. Callers pass in the clock
reading and the learner's stored states; persistence is the store's job.
"""

import heapq
import math
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import replace
from datetime import datetime, timedelta
from itertools import islice

from repetita.domain.constants import MAX_QUALITY, MIN_QUALITY, SUCCESS_THRESHOLD
from repetita.domain.exceptions import InvalidQuality
from repetita.domain.models import DEFAULT_PARAMETERS, CardId, CardReviewState, Sm2Parameters


def validate_quality(quality: object) -> int:
    """
    Return quality unchanged if it is an integer on the 0-5 scale.

    Raises:
        InvalidQuality: For anything else, including bools and floats.
    """
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQuality(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidQuality(quality)
    return quality


def next_easiness(
    easiness: float, quality: int, params: Sm2Parameters = DEFAULT_PARAMETERS
) -> float:
    """
    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3.
    """
    miss = MAX_QUALITY - quality
    delta = params.base_gain - miss * (params.linear_penalty + miss * params.quadratic_penalty)
    return max(params.min_easiness, easiness + delta)


def _round_half_up(value: float) -> int:
    # round() would send 2.5 to 2
    return int(math.floor(value + 0.5))


def record_review(
    state: CardReviewState | None,
    quality: int,
    now: datetime,
    params: Sm2Parameters = DEFAULT_PARAMETERS,
) -> CardReviewState:
    """
    Apply one review to a card's state and return the new state.

    Args:
        state: Current state, or None for a card never shown to the learner.
        quality: Recall rating, 0 (blackout) to 5 (perfect).
        now: Review time; becomes last_reviewed_at.
        params: SM-2 tuning constants.

    Returns:
        A new CardReviewState. The input is never modified.

    Raises:
        InvalidQuality: quality is not an integer in [0, 5].
    """
    validate_quality(quality)
    if state is None:
        state = CardReviewState.new(now, params)

    easiness = next_easiness(state.easiness_factor, quality, params)
    success = quality >= SUCCESS_THRESHOLD

    if not success:
        repetitions = 0
        interval = params.lapse_interval_days
    else:
        repetitions = state.repetition_count + 1
        if repetitions == 1:
            interval = params.first_interval_days
        elif repetitions == 2:
            interval = params.second_interval_days
        else:
            interval = _round_half_up(state.interval_days * easiness)

    return replace(
        state,
        easiness_factor=easiness,
        repetition_count=repetitions,
        interval_days=interval,
        due_at=now + timedelta(days=interval),
        last_reviewed_at=now,
        total_reviews=state.total_reviews + 1,
        correct_reviews=state.correct_reviews + (1 if success else 0),
        first_reviewed_at=state.first_reviewed_at or now,
    )


class DueCards:
    """
    Due cards of one learner, oldest-due first.

    Iterating is lazy: entries come off a heap one at a time, so taking a
    prefix does not sort the whole set. Every iteration starts over.
    """

    def __init__(self, learner_id: str, entries: list[tuple[datetime, CardId]]):
        self.learner_id = learner_id
        self._entries = entries

    def __iter__(self) -> Iterator[CardId]:
        heap = list(self._entries)
        heapq.heapify(heap)
        while heap:
            _, card_id = heapq.heappop(heap)
            yield card_id

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def take(self, limit: int | None) -> list[CardId]:
        """Return the first `limit` due cards; None or 0 means all of them."""
        if not limit:
            return list(self)
        return list(islice(self, limit))


def due_cards(
    learner_id: str,
    candidate_card_ids: Iterable[CardId],
    as_of: datetime,
    states: Mapping[CardId, CardReviewState],
) -> DueCards:
    """
    Select the candidates that are due for review at `as_of`.

    A card is due if the learner has no state for it yet or its due_at is not
    after `as_of`. Cards never reviewed are ordered as if due at `as_of`; ties
    are broken by card id.
    """
    entries: list[tuple[datetime, CardId]] = []
    for card_id in set(candidate_card_ids):
        state = states.get(card_id)
        if state is None:
            entries.append((as_of, card_id))
        elif state.is_due(as_of):
            entries.append((state.due_at, card_id))
    return DueCards(learner_id, entries)
