# Application Package
from .progress import ProgressCalculator
from .scheduler import DueCards, due_cards, record_review
from .session_service import StudySessionService

__all__ = ["DueCards", "ProgressCalculator", "StudySessionService", "due_cards", "record_review"]
