from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from studydeck.core.config import settings
from studydeck.core.db.base import get_session
from studydeck.core.db_services import StudyProgressService
from studydeck.core.logging import get_logger
from studydeck.apis.deps import current_learner_id
from studydeck.modules.study.models import ProgressSnapshot
from .schemas import ProgressResetResponse


logger = get_logger(__name__)
router = APIRouter()


@router.get(
    f"/{settings.app.version}/study-progress/{{deck_id}}",
    response_model=ProgressSnapshot,
    tags=["study_progress"],
)
async def get_study_progress(
    deck_id: str,
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> ProgressSnapshot:
    progress = await StudyProgressService(session).get(learner_id, deck_id)
    if progress is None:
        raise HTTPException(status_code=404, detail="No progress found for this deck")
    return progress


@router.post(
    f"/{settings.app.version}/study-progress/{{deck_id}}",
    response_model=ProgressSnapshot,
    tags=["study_progress"],
)
async def save_study_progress(
    deck_id: str,
    snapshot: ProgressSnapshot,
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> ProgressSnapshot:
    """Overwrite the learner's snapshot for this deck (last write wins)."""
    if snapshot.deck_id != deck_id:
        snapshot = snapshot.model_copy(update={"deck_id": deck_id})
    saved = await StudyProgressService(session).upsert(learner_id, deck_id, snapshot)
    logger.info(
        f"Progress saved at index {saved.current_index} ({saved.mode.value})",
        extra={"deck_id": deck_id, "learner": learner_id},
    )
    return saved


@router.delete(
    f"/{settings.app.version}/study-progress/{{deck_id}}",
    response_model=ProgressResetResponse,
    tags=["study_progress"],
)
async def reset_study_progress(
    deck_id: str,
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> ProgressResetResponse:
    removed = await StudyProgressService(session).delete(learner_id, deck_id)
    return ProgressResetResponse(
        deck_id=deck_id,
        reset=removed,
        message="Study progress reset successfully",
    )
