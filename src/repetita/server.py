import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from repetita.application.session_service import StudySessionService
from repetita.consts import VERSION
from repetita.domain.exceptions import (
    ConcurrentUpdate,
    InvalidQuality,
    PersistenceFailure,
    RepetitaError,
    UnknownCard,
)
from repetita.domain.models import CardReviewState

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("repetita.server")

_service: StudySessionService | None = None


def get_service() -> StudySessionService:
    """Process-wide session service, built from config on first use."""
    global _service
    if _service is None:
        from repetita.application.config import resolve_config
        from repetita.application.factory import build_session_service

        _service = build_session_service(resolve_config())
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _service
    # Startup
    logger.info(f"Repetita Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Repetita Server shutting down...")
    if _service is not None:
        _service.close()
        _service = None


app = FastAPI(
    title="Repetita Server",
    description="Spaced-repetition scheduling for flashcard study sessions.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


def _to_http(e: RepetitaError) -> HTTPException:
    if isinstance(e, InvalidQuality):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, UnknownCard):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ConcurrentUpdate):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, PersistenceFailure):
        # Retryable: the review was not recorded
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


class CardStateResponse(BaseModel):
    easiness_factor: float
    repetition_count: int
    interval_days: int
    due_at: datetime
    last_reviewed_at: datetime | None
    total_reviews: int
    correct_reviews: int
    first_reviewed_at: datetime | None
    is_mastered: bool

    @classmethod
    def from_state(cls, state: CardReviewState, mastered: bool) -> "CardStateResponse":
        return cls(
            easiness_factor=state.easiness_factor,
            repetition_count=state.repetition_count,
            interval_days=state.interval_days,
            due_at=state.due_at,
            last_reviewed_at=state.last_reviewed_at,
            total_reviews=state.total_reviews,
            correct_reviews=state.correct_reviews,
            first_reviewed_at=state.first_reviewed_at,
            is_mastered=mastered,
        )


class SessionRequest(BaseModel):
    learner_id: str
    set_id: int
    limit: int | None = Field(default=None, ge=0)


class SessionResponse(BaseModel):
    learner_id: str
    set_id: int
    card_ids: list[int]


@app.post("/sessions", response_model=SessionResponse)
async def start_session(req: SessionRequest, service: StudySessionService = Depends(get_service)):
    """
    Start a study session: the set's due cards, oldest-due first.
    """
    try:
        card_ids = await service.start_session(req.learner_id, req.set_id, req.limit)
    except RepetitaError as e:
        logger.error(f"Session start failed: {e}", exc_info=True)
        raise _to_http(e) from e
    return SessionResponse(learner_id=req.learner_id, set_id=req.set_id, card_ids=card_ids)


class ReviewRequest(BaseModel):
    learner_id: str
    card_id: int
    # Accepted as-is: the scheduler rejects anything but an int in 0-5 with InvalidQuality (400)
    quality: Any


class ReviewResponse(BaseModel):
    card_id: int
    next_review_at: datetime
    interval_days: int
    message: str
    state: CardStateResponse


@app.post("/reviews", response_model=ReviewResponse)
async def submit_review(req: ReviewRequest, service: StudySessionService = Depends(get_service)):
    """
    Record one answer. Responds only after the new state is persisted.
    """
    try:
        result = await service.submit_review(req.learner_id, req.card_id, req.quality)
    except RepetitaError as e:
        logger.warning(f"Review rejected: {e}")
        raise _to_http(e) from e
    return ReviewResponse(
        card_id=result.card_id,
        next_review_at=result.next_review_at,
        interval_days=result.interval_days,
        message=result.message,
        state=CardStateResponse.from_state(result.state, service.is_mastered(result.state)),
    )


@app.get("/learners/{learner_id}/cards/{card_id}", response_model=CardStateResponse | None)
async def get_card_progress(
    learner_id: str, card_id: int, service: StudySessionService = Depends(get_service)
):
    """Review state of one card; null if the learner never reviewed it."""
    try:
        state = await service.get_card_progress(learner_id, card_id)
    except RepetitaError as e:
        raise _to_http(e) from e
    if state is None:
        return None
    return CardStateResponse.from_state(state, service.is_mastered(state))


class SetStatisticsResponse(BaseModel):
    total_cards: int
    reviewed_cards: int
    mastered_cards: int
    cards_due: int
    progress_percentage: float
    mastery_percentage: float
    is_completed: bool
    last_reviewed_at: datetime | None


@app.get("/learners/{learner_id}/sets/{set_id}/stats", response_model=SetStatisticsResponse)
async def get_set_statistics(
    learner_id: str, set_id: int, service: StudySessionService = Depends(get_service)
):
    try:
        stats = await service.get_set_statistics(learner_id, set_id)
    except RepetitaError as e:
        raise _to_http(e) from e
    return SetStatisticsResponse(**asdict(stats))
