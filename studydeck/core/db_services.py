"""Database service classes for decks and per-learner study progress."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import selectinload

from studydeck.core.db.schemas.decks import StudyCard, StudyDeck
from studydeck.core.db.schemas.study_progress import StudyProgress
from studydeck.modules.study.models import Card, DeckPayload, ProgressSnapshot


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_deck_id(deck_id: str) -> Optional[int]:
    try:
        return int(deck_id)
    except (TypeError, ValueError):
        return None


class DeckService:
    """Reads and seeds decks."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_deck(
        self,
        *,
        title: str,
        cards: list[tuple[str, str]],
        description: str = "",
        tags: Optional[list[str]] = None,
        owner_id: Optional[str] = None,
    ) -> StudyDeck:
        """Create a deck; card positions follow the order of `cards`."""
        deck = StudyDeck(
            owner_id=owner_id,
            title=title,
            description=description,
            tags=tags or [],
            cards=[
                StudyCard(position=pos, question=q, answer=a)
                for pos, (q, a) in enumerate(cards)
            ],
        )
        self.session.add(deck)
        await self.session.commit()
        return await self.get_deck(str(deck.id))  # type: ignore[return-value]

    async def list_decks(self, owner_id: str) -> list[StudyDeck]:
        result = await self.session.execute(
            select(StudyDeck)
            .options(selectinload(StudyDeck.cards))
            .where(StudyDeck.owner_id == owner_id)
            .order_by(StudyDeck.created_at.desc(), StudyDeck.id.desc())
        )
        return list(result.scalars().all())

    async def get_deck(self, deck_id: str) -> Optional[StudyDeck]:
        pk = _parse_deck_id(deck_id)
        if pk is None:
            return None
        result = await self.session.execute(
            select(StudyDeck)
            .options(selectinload(StudyDeck.cards))
            .where(StudyDeck.id == pk)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def to_cards(deck: StudyDeck) -> list[Card]:
        ordered = sorted(deck.cards or [], key=lambda c: c.position)
        return [Card(id=str(c.id), question=c.question, answer=c.answer) for c in ordered]

    async def get_payload(
        self, deck_id: str, learner_id: str
    ) -> Optional[DeckPayload]:
        """Cards plus the learner's saved progress, as `fetch_deck` returns them."""
        deck = await self.get_deck(deck_id)
        if deck is None:
            return None
        progress = await StudyProgressService(self.session).get(learner_id, deck_id)
        return DeckPayload(
            deck_id=str(deck.id),
            title=deck.title,
            cards=self.to_cards(deck),
            study_progress=progress,
        )


class StudyProgressService:
    """One snapshot per (learner, deck); every write overwrites it."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_row(self, learner_id: str, deck_id: str) -> Optional[StudyProgress]:
        result = await self.session.execute(
            select(StudyProgress).where(
                StudyProgress.learner_id == learner_id,
                StudyProgress.deck_id == deck_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def to_snapshot(row: StudyProgress) -> ProgressSnapshot:
        return ProgressSnapshot(
            deck_id=row.deck_id,
            current_index=row.current_index,
            learned_set=list(row.learned_cards or []),
            review_set=list(row.review_later_cards or []),
            mode=row.study_mode,
            timestamp=_as_utc(row.snapshot_at),
            total_cards=row.total_cards,
        )

    async def get(self, learner_id: str, deck_id: str) -> Optional[ProgressSnapshot]:
        row = await self._get_row(learner_id, deck_id)
        if row is None:
            return None
        return self.to_snapshot(row)

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert
        if dialect == "sqlite":
            return sqlite_insert
        raise NotImplementedError(f"study progress upsert not supported on {dialect}")

    async def upsert(
        self, learner_id: str, deck_id: str, snapshot: ProgressSnapshot
    ) -> ProgressSnapshot:
        """Store the snapshot unconditionally: last write wins.

        A single INSERT .. ON CONFLICT DO UPDATE, so two first writes for the
        same (learner, deck) racing each other both succeed and the later one
        is what remains.
        """
        values = dict(
            current_index=snapshot.current_index,
            learned_cards=list(snapshot.learned_set),
            review_later_cards=list(snapshot.review_set),
            study_mode=snapshot.mode,
            total_cards=snapshot.total_cards,
            snapshot_at=_as_utc(snapshot.timestamp).astimezone(timezone.utc),
            last_studied=datetime.now(timezone.utc).replace(tzinfo=None),
        )
        stmt = self._insert()(StudyProgress).values(
            learner_id=learner_id, deck_id=deck_id, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[StudyProgress.learner_id, StudyProgress.deck_id],
            set_={**{k: stmt.excluded[k] for k in values}, "updated_at": func.now()},
        )
        await self.session.execute(stmt)
        await self.session.commit()

        result = await self.session.execute(
            select(StudyProgress)
            .where(
                StudyProgress.learner_id == learner_id,
                StudyProgress.deck_id == deck_id,
            )
            .execution_options(populate_existing=True)
        )
        return self.to_snapshot(result.scalar_one())

    async def delete(self, learner_id: str, deck_id: str) -> bool:
        result = await self.session.execute(
            delete(StudyProgress).where(
                StudyProgress.learner_id == learner_id,
                StudyProgress.deck_id == deck_id,
            )
        )
        await self.session.commit()
        return (result.rowcount or 0) > 0
