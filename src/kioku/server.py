import logging
import time
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from kioku.application.config import AppConfig, resolve_config
from kioku.application.progress.outcomes import FlashcardAssessment, outcome_from_flashcard
from kioku.application.progress.service import ProgressService
from kioku.consts import VERSION
from kioku.domain.constants import CROSS_DECK_REVIEW_LIMIT, RECENT_DECKS_LIMIT
from kioku.domain.progress.errors import ConcurrencyConflict, InvalidItemReference
from kioku.domain.progress.models import SubmitAttempt
from kioku.infrastructure.adapters.stores.codec import (
    deck_summary_to_dict,
    due_item_to_dict,
    item_to_dict,
    progress_to_dict,
    section_to_dict,
    stats_to_dict,
)

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("kioku.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"kioku server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("kioku server shutting down...")
    if get_service.cache_info().currsize:
        await get_service().close()


app = FastAPI(
    title="kioku",
    description="Vocabulary mastery and spaced-repetition progress API.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return resolve_config()


@lru_cache(maxsize=1)
def get_service() -> ProgressService:
    """Process-wide service built from the resolved configuration."""
    from kioku.application.factory import get_progress_service

    return get_progress_service(get_config())


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class AttemptRequest(BaseModel):
    user_id: str = Field(min_length=1)
    deck_id: str = Field(min_length=1)
    section_index: int = Field(ge=0)
    item_index: int = Field(ge=0)
    # Exactly one outcome source is used: correct, assessment, answer, then score.
    correct: bool | None = None
    assessment: FlashcardAssessment | None = None
    answer: str | None = None
    score: float | None = Field(default=None, ge=0, le=100)
    occurred_at: datetime | None = None


@app.post("/progress/attempts")
async def submit_attempt(req: AttemptRequest, service: ProgressService = Depends(get_service)):
    """
    Record one practice attempt and return the updated item, section and deck stats.
    """
    correct = req.correct
    if correct is None and req.assessment is not None:
        correct = outcome_from_flashcard(req.assessment)
    if correct is None and req.answer is None and req.score is None:
        raise HTTPException(
            status_code=422,
            detail="One of 'correct', 'assessment', 'answer' or 'score' is required",
        )

    attempt = SubmitAttempt(
        user_id=req.user_id,
        deck_id=req.deck_id,
        section_index=req.section_index,
        item_index=req.item_index,
        correct=correct,
        occurred_at=req.occurred_at,
        score=req.score,
        answer=req.answer,
    )

    try:
        result = await service.submit_attempt(attempt)
    except InvalidItemReference as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConcurrencyConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Attempt failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {
        "item": item_to_dict(result.item),
        "section": section_to_dict(result.section),
        "stats": stats_to_dict(result.stats),
        "version": result.progress.version,
    }


class SessionRequest(BaseModel):
    user_id: str = Field(min_length=1)
    deck_id: str = Field(min_length=1)
    study_minutes: int = Field(default=0, ge=0)
    completed_at: datetime | None = None


@app.post("/progress/sessions")
async def complete_session(req: SessionRequest, service: ProgressService = Depends(get_service)):
    """Count a finished practice session and update the study streak."""
    try:
        progress = await service.complete_session(
            req.user_id, req.deck_id, req.study_minutes, req.completed_at
        )
    except InvalidItemReference as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ConcurrencyConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error(f"Session update failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return {
        "study_streak": progress.study_streak,
        "longest_streak": progress.longest_streak,
        "stats": stats_to_dict(progress.overall_stats),
    }


@app.get("/progress/{user_id}/{deck_id}")
async def get_deck_progress(
    user_id: str, deck_id: str, service: ProgressService = Depends(get_service)
):
    progress = await service.get_deck_progress(user_id, deck_id)
    return progress_to_dict(progress)


@app.get("/progress/{user_id}/{deck_id}/items/{section_index}/{item_index}")
async def get_item_progress(
    user_id: str,
    deck_id: str,
    section_index: int,
    item_index: int,
    service: ProgressService = Depends(get_service),
):
    item = await service.get_item_progress(user_id, deck_id, section_index, item_index)
    if item is None:
        raise HTTPException(status_code=404, detail="Item has not been practiced")
    return item_to_dict(item)


@app.get("/progress/{user_id}/{deck_id}/review")
async def get_review_items(
    user_id: str,
    deck_id: str,
    now: datetime | None = None,
    limit: int | None = Query(default=None, ge=1),
    service: ProgressService = Depends(get_service),
    config: AppConfig = Depends(get_config),
):
    """Items due for review, most overdue first."""
    keys = await service.get_items_needing_review(
        user_id, deck_id, now, limit or config.review_limit
    )
    return {
        "count": len(keys),
        "items": [{"section_index": k.section_index, "item_index": k.item_index} for k in keys],
    }


@app.get("/progress/{user_id}/{deck_id}/completion")
async def get_completion(
    user_id: str,
    deck_id: str,
    total_items: int = Query(ge=0),
    service: ProgressService = Depends(get_service),
):
    percent = await service.get_completion_percentage(user_id, deck_id, total_items)
    return {"completion_percentage": percent}


class ResetRequest(BaseModel):
    section_index: int | None = Field(default=None, ge=0)


@app.post("/progress/{user_id}/{deck_id}/reset")
async def reset_progress(
    user_id: str,
    deck_id: str,
    req: ResetRequest | None = None,
    service: ProgressService = Depends(get_service),
):
    """Reset a whole deck, or a single section when section_index is given."""
    try:
        if req is not None and req.section_index is not None:
            progress = await service.reset_section_progress(user_id, deck_id, req.section_index)
        else:
            progress = await service.reset_deck_progress(user_id, deck_id)
    except ConcurrencyConflict as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return progress_to_dict(progress)


@app.get("/users/{user_id}/stats")
async def get_user_stats(user_id: str, service: ProgressService = Depends(get_service)):
    stats = await service.get_user_stats(user_id)
    return asdict(stats)


@app.get("/users/{user_id}/review")
async def get_all_review_items(
    user_id: str,
    now: datetime | None = None,
    limit: int = Query(default=CROSS_DECK_REVIEW_LIMIT, ge=1),
    service: ProgressService = Depends(get_service),
):
    """Items due for review across every deck of the learner."""
    items = await service.get_all_items_needing_review(user_id, now, limit)
    return {"count": len(items), "items": [due_item_to_dict(i) for i in items]}


@app.get("/users/{user_id}/decks")
async def get_recent_decks(
    user_id: str,
    limit: int = Query(default=RECENT_DECKS_LIMIT, ge=1),
    service: ProgressService = Depends(get_service),
):
    """The learner's decks, most recently studied first."""
    decks = await service.get_recent_decks(user_id, limit)
    return [deck_summary_to_dict(p) for p in decks]
