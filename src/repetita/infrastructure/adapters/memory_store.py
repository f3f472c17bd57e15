"""
In-Memory Flashcard Store — Infrastructure adapter backed by dictionaries.

Used for tests, demos and the `memory` backend. State is lost on exit.
"""

import asyncio
import logging
from collections.abc import Iterable

from repetita.domain.exceptions import ConcurrentUpdate
from repetita.domain.models import CardId, CardReviewState
from repetita.domain.ports import FlashcardStore

logger = logging.getLogger(__name__)


class InMemoryFlashcardStore(FlashcardStore):
    """
    Keeps the catalogue and review states in process memory.

    Writes go through a single asyncio.Lock, so the compare-and-set in
    save_state is atomic with respect to other coroutines.
    """

    def __init__(self):
        self._card_sets: dict[CardId, int] = {}
        self._states: dict[tuple[str, CardId], CardReviewState] = {}
        self._lock = asyncio.Lock()

    async def load_state(self, learner_id: str, card_id: CardId) -> CardReviewState | None:
        return self._states.get((learner_id, card_id))

    async def load_states(
        self, learner_id: str, card_ids: Iterable[CardId]
    ) -> dict[CardId, CardReviewState]:
        found = {}
        for card_id in card_ids:
            state = self._states.get((learner_id, card_id))
            if state is not None:
                found[card_id] = state
        return found

    async def save_state(
        self,
        learner_id: str,
        card_id: CardId,
        state: CardReviewState,
        expected: CardReviewState | None = None,
    ) -> None:
        key = (learner_id, card_id)
        async with self._lock:
            if self._states.get(key) != expected:
                raise ConcurrentUpdate(learner_id, card_id)
            self._states[key] = state

    async def load_candidate_card_ids(self, learner_id: str, set_id: int) -> set[CardId]:
        return {cid for cid, sid in self._card_sets.items() if sid == set_id}

    async def add_cards(self, set_id: int, card_ids: Iterable[CardId]) -> int:
        added = 0
        async with self._lock:
            for card_id in card_ids:
                if card_id in self._card_sets:
                    continue
                self._card_sets[card_id] = set_id
                added += 1
        logger.debug(f"Added {added} cards to set {set_id}")
        return added

    async def card_exists(self, card_id: CardId) -> bool:
        return card_id in self._card_sets

    async def remove_card(self, card_id: CardId) -> bool:
        async with self._lock:
            if self._card_sets.pop(card_id, None) is None:
                return False
            for key in [k for k in self._states if k[1] == card_id]:
                del self._states[key]
        return True

    async def remove_learner(self, learner_id: str) -> int:
        async with self._lock:
            keys = [k for k in self._states if k[0] == learner_id]
            for key in keys:
                del self._states[key]
        return len(keys)
