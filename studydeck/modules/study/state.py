"""Immutable session state and its pure transitions.

Every transition returns a new `SessionState`; nothing here performs I/O or
looks at the clock except `to_snapshot`. Illegal inputs are tolerated as
no-ops so stale UI state cannot corrupt a session.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, Optional

from studydeck.modules.study.models import Card, Deck, ProgressSnapshot, StudyMode


def _deck_ordered(ids: Iterable[str], deck: Deck) -> list[str]:
    """Order ids by deck position; ids unknown to the deck go last, sorted."""
    wanted = set(ids)
    ordered = [cid for cid in deck.ids() if cid in wanted]
    extras = sorted(wanted.difference(ordered))
    return ordered + extras


@dataclass(frozen=True)
class SessionState:
    current_index: int = 0
    learned: frozenset[str] = frozenset()
    review: frozenset[str] = frozenset()
    mode: StudyMode = StudyMode.NORMAL
    showing_answer: bool = False
    # Active list while in Review mode, fixed when the review pass starts
    review_queue: tuple[str, ...] = ()

    # Derived views ------------------------------------------------------
    @property
    def outstanding_review(self) -> frozenset[str]:
        return self.review - self.learned

    def active_ids(self, deck: Deck) -> list[str]:
        if self.mode == StudyMode.REVIEW:
            return list(self.review_queue)
        return deck.ids()

    def current_card_id(self, deck: Deck) -> Optional[str]:
        ids = self.active_ids(deck)
        if 0 <= self.current_index < len(ids):
            return ids[self.current_index]
        return None

    def current_card(self, deck: Deck) -> Optional[Card]:
        card_id = self.current_card_id(deck)
        if card_id is None:
            return None
        for card in deck:
            if card.id == card_id:
                return card
        return None

    def at_last_card(self, deck: Deck) -> bool:
        ids = self.active_ids(deck)
        return bool(ids) and self.current_index >= len(ids) - 1

    def acted_on_all(self, deck: Deck) -> bool:
        acted = self.learned | self.review
        return all(cid in acted for cid in deck.ids())

    # Transitions --------------------------------------------------------
    def flip(self) -> "SessionState":
        return replace(self, showing_answer=not self.showing_answer)

    def mark_learned(self, card_id: str) -> "SessionState":
        if card_id in self.learned and card_id not in self.review:
            return self
        return replace(
            self,
            learned=self.learned | {card_id},
            review=self.review - {card_id},
        )

    def mark_review_later(self, card_id: str) -> "SessionState":
        # Review cards can only graduate to learned, never be re-deferred
        if self.mode != StudyMode.NORMAL:
            return self
        if card_id in self.learned or card_id in self.review:
            return self
        return replace(self, review=self.review | {card_id})

    def advance(self, deck: Deck) -> "SessionState":
        return self._move_to(self.current_index + 1, deck)

    def retreat(self, deck: Deck) -> "SessionState":
        return self._move_to(self.current_index - 1, deck)

    def _move_to(self, index: int, deck: Deck) -> "SessionState":
        last = max(len(self.active_ids(deck)) - 1, 0)
        index = min(max(index, 0), last)
        if index == self.current_index:
            return self
        return replace(self, current_index=index, showing_answer=False)

    def restart(self) -> "SessionState":
        return SessionState()

    def begin_review(self, queue: Iterable[str]) -> "SessionState":
        return replace(
            self,
            mode=StudyMode.REVIEW,
            current_index=0,
            review_queue=tuple(queue),
            showing_answer=False,
        )

    def complete(self) -> "SessionState":
        return replace(
            self,
            mode=StudyMode.COMPLETED,
            current_index=0,
            review_queue=(),
            showing_answer=False,
        )

    # Persistence --------------------------------------------------------
    def to_snapshot(
        self, deck: Deck, timestamp: Optional[datetime] = None
    ) -> ProgressSnapshot:
        data = dict(
            deck_id=deck.deck_id,
            current_index=self.current_index,
            learned_set=_deck_ordered(self.learned, deck),
            review_set=_deck_ordered(self.review, deck),
            mode=self.mode,
            total_cards=deck.size(),
        )
        if timestamp is not None:
            data["timestamp"] = timestamp
        return ProgressSnapshot(**data)

    @classmethod
    def from_snapshot(cls, snapshot: ProgressSnapshot, deck: Deck) -> "SessionState":
        learned = frozenset(snapshot.learned_set)
        review = frozenset(snapshot.review_set) - learned
        queue: tuple[str, ...] = ()
        if snapshot.mode == StudyMode.REVIEW:
            queue = tuple(cid for cid in deck.ids() if cid in review)
        state = cls(
            learned=learned,
            review=review,
            mode=snapshot.mode,
            review_queue=queue,
        )
        last = max(len(state.active_ids(deck)) - 1, 0)
        return replace(state, current_index=min(snapshot.current_index, last))
