"""Error taxonomy shared by the scheduler, the stores and the outer surfaces."""

from .constants import MAX_QUALITY, MIN_QUALITY


class RepetitaError(Exception):
    """Base class for all Repetita errors."""


class InvalidQuality(RepetitaError, ValueError):
    """Raised when a review rating falls outside the accepted scale."""

    def __init__(self, quality: object):
        self.quality = quality
        super().__init__(
            f"Quality must be an integer between {MIN_QUALITY} and {MAX_QUALITY}, got {quality!r}"
        )


class UnknownCard(RepetitaError, LookupError):
    """Raised when a review targets a card the catalogue does not contain."""

    def __init__(self, card_id: int):
        self.card_id = card_id
        super().__init__(f"Flashcard {card_id} not found")


class PersistenceFailure(RepetitaError):
    """The store could not read or write review state. Safe to retry."""


class ConcurrentUpdate(PersistenceFailure):
    """The stored state changed between load and save; the write was rejected."""

    def __init__(self, learner_id: str, card_id: int):
        self.learner_id = learner_id
        self.card_id = card_id
        super().__init__(
            f"Review state for learner={learner_id} card={card_id} changed concurrently"
        )
