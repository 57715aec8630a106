from __future__ import annotations

from pydantic import BaseModel, Field


class CardCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)


class DeckCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    cards: list[CardCreate] = Field(default_factory=list)


class DeckSummary(BaseModel):
    id: str
    title: str
    description: str
    tags: list[str] = Field(default_factory=list)
    total_cards: int = 0
    created_at: str
