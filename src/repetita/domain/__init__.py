# Domain Package
from .exceptions import (
    ConcurrentUpdate,
    InvalidQuality,
    PersistenceFailure,
    RepetitaError,
    UnknownCard,
)
from .models import (
    DEFAULT_PARAMETERS,
    CardReviewState,
    ReviewResult,
    SetStatistics,
    Sm2Parameters,
)
from .ports import FlashcardStore

__all__ = [
    "CardReviewState",
    "ConcurrentUpdate",
    "DEFAULT_PARAMETERS",
    "FlashcardStore",
    "InvalidQuality",
    "PersistenceFailure",
    "RepetitaError",
    "ReviewResult",
    "SetStatistics",
    "Sm2Parameters",
    "UnknownCard",
]
