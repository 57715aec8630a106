from __future__ import annotations

from datetime import datetime
from sqlalchemy import (
    DateTime,
    Enum,
    Integer,
    String,
    func,
    JSON,
    UniqueConstraint,
    text as sa_text,
)
from sqlalchemy.orm import Mapped, mapped_column

from studydeck.core.db.base import Base
from studydeck.modules.study.models import StudyMode


class StudyProgress(Base):
    """One resumable snapshot per (learner, deck); overwritten on every save."""

    __tablename__ = "study_progress"
    __table_args__ = (
        UniqueConstraint("learner_id", "deck_id", name="uq_study_progress_learner_deck"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    learner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    deck_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    current_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    learned_cards: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, server_default=sa_text("'[]'")
    )
    review_later_cards: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, server_default=sa_text("'[]'")
    )
    study_mode: Mapped[StudyMode] = mapped_column(
        Enum(
            StudyMode,
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=StudyMode.NORMAL,
    )
    total_cards: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    snapshot_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_studied: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


__all__ = ["StudyProgress"]
