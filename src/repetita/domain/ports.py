"""
Ports (interfaces) for review state persistence.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from .models import CardId, CardReviewState


class FlashcardStore(ABC):
    """
    Port for the flashcard catalogue and per-learner review state.

    Implementations:
        - InMemoryFlashcardStore: Process-local dictionaries.
        - SqliteFlashcardStore: A single SQLite database file.
    """

    @abstractmethod
    async def load_state(self, learner_id: str, card_id: CardId) -> CardReviewState | None:
        """
        Fetch the review state of one card for one learner.

        Returns:
            The stored state, or None if the learner never reviewed the card.
            Absence is not an error.
        """
        pass

    @abstractmethod
    async def load_states(
        self, learner_id: str, card_ids: Iterable[CardId]
    ) -> dict[CardId, CardReviewState]:
        """
        Bulk variant of load_state. Cards without state are omitted from the result.
        """
        pass

    @abstractmethod
    async def save_state(
        self,
        learner_id: str,
        card_id: CardId,
        state: CardReviewState,
        expected: CardReviewState | None = None,
    ) -> None:
        """
        Persist a new review state.

        Args:
            learner_id: The learner who reviewed the card.
            card_id: The reviewed card.
            state: The complete new state.
            expected: The state the caller loaded before computing `state`.
                The write only happens if the stored state still equals it
                (None meaning "no state stored yet").

        Raises:
            ConcurrentUpdate: The stored state no longer matches `expected`.
            PersistenceFailure: Any other storage error. Nothing was written.
        """
        pass

    @abstractmethod
    async def load_candidate_card_ids(self, learner_id: str, set_id: int) -> set[CardId]:
        """
        Fetch the ids of the cards belonging to a set the learner is studying.
        """
        pass

    @abstractmethod
    async def add_cards(self, set_id: int, card_ids: Iterable[CardId]) -> int:
        """
        Register cards as members of a set. Returns the number of new cards.
        """
        pass

    @abstractmethod
    async def card_exists(self, card_id: CardId) -> bool:
        pass

    @abstractmethod
    async def remove_card(self, card_id: CardId) -> bool:
        """
        Delete a card together with every learner's review state for it.

        Returns:
            True if the card existed.
        """
        pass

    @abstractmethod
    async def remove_learner(self, learner_id: str) -> int:
        """
        Delete all review states of a learner. Returns the number of states removed.
        """
        pass

    def close(self) -> None:
        """Release any held resources. Stores without connections need not override."""
