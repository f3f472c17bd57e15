"""
Flashcard Store Factory
Centralizes the logic for selecting the store adapter and wiring the session service.
"""

import logging

from repetita.application.config import AppConfig
from repetita.application.progress import ProgressCalculator
from repetita.application.session_service import StudySessionService
from repetita.domain.ports import FlashcardStore
from repetita.infrastructure.adapters.memory_store import InMemoryFlashcardStore
from repetita.infrastructure.adapters.sqlite_store import SqliteFlashcardStore

logger = logging.getLogger(__name__)


def get_flashcard_store(config: AppConfig) -> FlashcardStore:
    """
    Returns the FlashcardStore implementation selected by config.
    """
    if config.backend == "memory":
        logger.info("Store: in-memory")
        return InMemoryFlashcardStore()

    logger.info(f"Store: sqlite ({config.database_path})")
    return SqliteFlashcardStore(config.database_path)


def build_session_service(
    config: AppConfig, store: FlashcardStore | None = None
) -> StudySessionService:
    """
    Wires a StudySessionService from config, building the store if none is given.
    """
    return StudySessionService(
        store=store or get_flashcard_store(config),
        params=config.sm2_parameters(),
        calculator=ProgressCalculator(
            mastery_repetitions=config.mastery_repetitions,
            mastery_min_easiness=config.mastery_min_easiness,
        ),
        session_limit=config.session_limit,
    )
