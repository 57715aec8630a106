"""Shared test fixtures."""

from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studydeck.core.db.base import get_session, init_models
from studydeck.modules.study.collaborators import DeckCollaboratorError
from studydeck.modules.study.models import Card, Deck, DeckPayload, ProgressSnapshot
from studydeck.modules.study.store import LocalProgressCache, ProgressStore


def make_cards(n: int) -> list[Card]:
    return [Card(id=f"c{i}", question=f"Q{i}", answer=f"A{i}") for i in range(1, n + 1)]


class FakeCollaborator:
    """In-memory stand-in for the deck/progress API."""

    def __init__(self, cards: Optional[list[Card]] = None, *, embed_progress: bool = False):
        self.cards = list(cards or [])
        self.embed_progress = embed_progress
        self.progress: dict[str, ProgressSnapshot] = {}
        self.writes: list[ProgressSnapshot] = []
        self.deletes: list[str] = []
        self.fail_fetch_deck = False
        self.fail_fetch_progress = False
        self.fail_write = False

    async def fetch_deck(self, deck_id: str) -> DeckPayload:
        if self.fail_fetch_deck:
            raise DeckCollaboratorError("deck api offline")
        return DeckPayload(
            deck_id=deck_id,
            cards=self.cards,
            study_progress=self.progress.get(deck_id) if self.embed_progress else None,
        )

    async def fetch_progress(self, deck_id: str) -> Optional[ProgressSnapshot]:
        if self.fail_fetch_progress:
            raise DeckCollaboratorError("progress api offline")
        return self.progress.get(deck_id)

    async def write_progress(self, deck_id: str, snapshot: ProgressSnapshot) -> None:
        if self.fail_write:
            raise DeckCollaboratorError("write rejected")
        self.writes.append(snapshot)
        self.progress[deck_id] = snapshot

    async def delete_progress(self, deck_id: str) -> None:
        self.deletes.append(deck_id)
        self.progress.pop(deck_id, None)


@pytest.fixture
def deck5():
    return Deck(deck_id="deck-5", cards=tuple(make_cards(5)))


@pytest.fixture
def deck1():
    return Deck(deck_id="deck-1", cards=tuple(make_cards(1)))


@pytest.fixture
def remote():
    return FakeCollaborator(make_cards(5))


@pytest.fixture
def cache(tmp_path):
    return LocalProgressCache(tmp_path / "cache" / "progress.json", "test_progress")


@pytest.fixture
def store(remote, cache):
    return ProgressStore(remote, cache, debounce_seconds=0.05)


@pytest.fixture
async def db_engine():
    """In-memory SQLite shared across connections, schema applied."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


def build_app(session_maker):
    from main import create_app

    app = create_app()

    async def _get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    return app


@pytest.fixture
def api_app(session_maker):
    return build_app(session_maker)


@pytest.fixture
def transport(api_app):
    return httpx.ASGITransport(app=api_app)


@pytest.fixture
async def api_client(transport):
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Learner-Id": "learner-1"},
    ) as client:
        yield client


@pytest.fixture
async def file_api_client(tmp_path):
    """API client over a file-backed SQLite database, so requests get separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'study.db'}")
    await init_models(engine)
    app = build_app(async_sessionmaker(engine, expire_on_commit=False))
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Learner-Id": "learner-1"},
    ) as client:
        yield client
    await engine.dispose()
