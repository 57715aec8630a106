from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from studydeck.core.config import settings
from studydeck.core.db.base import get_session
from studydeck.core.db.schemas.decks import StudyDeck
from studydeck.core.db_services import DeckService
from studydeck.apis.deps import current_learner_id
from studydeck.modules.study.models import DeckPayload
from .schemas import DeckCreate, DeckSummary


router = APIRouter()


def _summary(deck: StudyDeck) -> DeckSummary:
    return DeckSummary(
        id=str(deck.id),
        title=deck.title,
        description=deck.description,
        tags=deck.tags or [],
        total_cards=len(deck.cards or []),
        created_at=deck.created_at.isoformat(),
    )


@router.post(
    f"/{settings.app.version}/decks",
    response_model=DeckSummary,
    status_code=status.HTTP_201_CREATED,
    tags=["decks"],
)
async def create_deck(
    req: DeckCreate,
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> DeckSummary:
    deck = await DeckService(session).create_deck(
        title=req.title,
        description=req.description,
        tags=req.tags,
        cards=[(c.question, c.answer) for c in req.cards],
        owner_id=learner_id,
    )
    return _summary(deck)


@router.get(
    f"/{settings.app.version}/decks",
    response_model=list[DeckSummary],
    tags=["decks"],
)
async def list_decks(
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> list[DeckSummary]:
    decks = await DeckService(session).list_decks(learner_id)
    return [_summary(d) for d in decks]


@router.get(
    f"/{settings.app.version}/decks/{{deck_id}}",
    response_model=DeckPayload,
    tags=["decks"],
)
async def get_deck(
    deck_id: str,
    learner_id: str = Depends(current_learner_id),
    session: AsyncSession = Depends(get_session),
) -> DeckPayload:
    """Cards in study order plus this learner's saved progress, if any."""
    payload = await DeckService(session).get_payload(deck_id, learner_id)
    if payload is None:
        raise HTTPException(status_code=404, detail="Deck not found")
    return payload
