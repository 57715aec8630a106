from __future__ import annotations

from datetime import datetime
from typing import Optional
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
    JSON,
    UniqueConstraint,
    text as sa_text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studydeck.core.db.base import Base


class StudyDeck(Base):
    """A named, ordered deck of question/answer cards owned by one learner."""

    __tablename__ = "study_decks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, server_default=sa_text("'[]'")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), index=True
    )

    cards: Mapped[list["StudyCard"]] = relationship(
        "StudyCard",
        back_populates="deck",
        cascade="all, delete-orphan",
        order_by="StudyCard.position",
    )


class StudyCard(Base):
    __tablename__ = "study_cards"
    __table_args__ = (UniqueConstraint("deck_id", "position", name="uq_study_card_position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    deck_id: Mapped[int] = mapped_column(
        ForeignKey("study_decks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # study order
    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)

    deck: Mapped["StudyDeck"] = relationship("StudyDeck", back_populates="cards")


__all__ = ["StudyDeck", "StudyCard"]
