"""Pydantic models and value types for a study session.

Cards and decks are created by the deck collaborator and never edited here.
`ProgressSnapshot` is the unit of persistence: the same shape is written to
the local cache, sent to the remote store and returned by the HTTP API
(camelCase on the wire, snake_case accepted on input).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class StudyMode(str, Enum):
    NORMAL = "normal"
    REVIEW = "review"
    COMPLETED = "completed"


class DisplayState(str, Enum):
    """What the learner is looking at. Derived, never persisted."""

    NO_CARDS = "no_cards"
    STUDYING = "studying"
    REVIEWING = "reviewing"
    REVIEW_NEEDED = "review_needed"
    COMPLETED = "completed"


class Action(str, Enum):
    FLIP = "flip"
    LEARN = "learn"
    DEFER = "defer"
    NEXT = "next"
    PREV = "prev"
    RESTART = "restart"
    START_REVIEW = "start_review"


class DeckIndexError(IndexError):
    """Raised by `Deck.card_at` for an index outside the deck."""


class Card(BaseModel):
    """Simple question/answer flashcard."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str
    question: str
    answer: str


@dataclass(frozen=True)
class Deck:
    deck_id: str
    cards: tuple[Card, ...] = field(default_factory=tuple)
    title: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "cards", tuple(self.cards))

    def size(self) -> int:
        return len(self.cards)

    def card_at(self, index: int) -> Card:
        if index < 0 or index >= len(self.cards):
            raise DeckIndexError(
                f"card index {index} out of range for deck of {len(self.cards)}"
            )
        return self.cards[index]

    def ids(self) -> list[str]:
        return [c.id for c in self.cards]

    @property
    def is_empty(self) -> bool:
        return not self.cards

    def __len__(self) -> int:
        return len(self.cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self.cards)


class ProgressSnapshot(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    deck_id: str
    current_index: int = Field(default=0, ge=0)
    learned_set: list[str] = Field(default_factory=list)
    review_set: list[str] = Field(default_factory=list)
    mode: StudyMode = StudyMode.NORMAL
    timestamp: datetime = Field(default_factory=_now_utc)
    total_cards: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls, deck_id: str, total_cards: int = 0) -> "ProgressSnapshot":
        return cls(deck_id=deck_id, total_cards=total_cards)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class DeckPayload(BaseModel):
    """Response of `fetch_deck`: the cards plus any saved progress."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deck_id: str
    title: str = ""
    cards: list[Card] = Field(default_factory=list)
    study_progress: Optional[ProgressSnapshot] = None

    def to_deck(self) -> Deck:
        return Deck(deck_id=self.deck_id, cards=tuple(self.cards), title=self.title)


class SessionStats(BaseModel):
    learned_count: int = 0
    review_count: int = 0
    position: int = 0
    active_total: int = 0
    total_cards: int = 0
    percent_complete: int = 0
