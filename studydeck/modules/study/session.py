"""SessionHost: wires learner actions to the state machine and persistence.

The host owns one deck and one `SessionState` for the life of a sitting.
Each action goes through `ModeController.dispatch`; when the index, the
learned/review sets or the mode changed, the new snapshot is reported via
`on_progress_update` and handed to `ProgressStore.save`. `exit()` flushes a
final snapshot (with the resume-in-review rule applied) and stops the
debounce timer.

Actions are synchronous. Remote writes are scheduled on the running event
loop; called without one, an action still updates the local cache.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from studydeck.core.logging import deck_logger, get_logger
from studydeck.modules.study.collaborators import DeckCollaborator
from studydeck.modules.study.controller import ModeController
from studydeck.modules.study.models import (
    Action,
    Card,
    Deck,
    DeckPayload,
    DisplayState,
    ProgressSnapshot,
    SessionStats,
    StudyMode,
)
from studydeck.modules.study.state import SessionState
from studydeck.modules.study.store import ProgressStore, exit_snapshot


logger = get_logger(__name__)


@dataclass
class SessionCallbacks:
    """Hooks for the hosting UI. All optional."""

    on_card_complete: Optional[Callable[[str, str], None]] = None
    on_review_later_toggle: Optional[Callable[[str, bool], None]] = None
    on_deck_complete: Optional[Callable[[ProgressSnapshot], None]] = None
    on_progress_update: Optional[Callable[[ProgressSnapshot], None]] = None
    on_exit: Optional[Callable[[ProgressSnapshot], None]] = None


def _progress_key(state: SessionState) -> tuple:
    return (state.current_index, state.learned, state.review, state.mode)


class SessionHost:
    def __init__(
        self,
        collaborator: DeckCollaborator,
        store: ProgressStore,
        callbacks: Optional[SessionCallbacks] = None,
        controller: Optional[ModeController] = None,
    ) -> None:
        self.collaborator = collaborator
        self.store = store
        self.callbacks = callbacks or SessionCallbacks()
        self.controller = controller or ModeController()
        self.deck = Deck(deck_id="")
        self.state = SessionState()
        self._log = deck_logger(logger, "-")
        self._exited = False

    # Lifecycle ----------------------------------------------------------
    async def open(self, deck_id: str) -> DisplayState:
        """Load the deck and resume saved progress (remote, then local cache)."""
        self._log = deck_logger(logger, deck_id)
        try:
            payload = await self.collaborator.fetch_deck(deck_id)
        except Exception as e:  # noqa: BLE001
            self._log.warning(f"Deck fetch failed: {e}")
            payload = DeckPayload(deck_id=deck_id)

        self.deck = Deck(deck_id=deck_id, cards=tuple(payload.cards), title=payload.title)
        self.state = SessionState()
        self._exited = False
        if self.deck.is_empty:
            self._log.info("Nothing to study")
            return self.display_state

        if payload.study_progress is not None:
            snapshot = self.store.resolve(deck_id, payload.study_progress)
        else:
            snapshot = await self.store.load(deck_id)
        self.state = self.controller.settle(
            SessionState.from_snapshot(snapshot, self.deck), self.deck
        )
        self._log.info(
            f"Session opened at card {self.state.current_index + 1} in {self.state.mode.value} mode"
        )
        return self.display_state

    def exit(self) -> Optional[asyncio.Task[None]]:
        """Flush the final snapshot once and stop the debounce timer."""
        if self._exited:
            return None
        self._exited = True
        if self.deck.is_empty:
            return None
        snapshot = exit_snapshot(self.snapshot(), self.display_state)
        if self.callbacks.on_exit:
            self.callbacks.on_exit(snapshot)
        task = self.store.flush(snapshot)
        self.store.close()
        return task

    # Views --------------------------------------------------------------
    @property
    def active(self) -> bool:
        return not self._exited and not self.deck.is_empty

    @property
    def display_state(self) -> DisplayState:
        return self.controller.display_state(self.state, self.deck)

    @property
    def current_card(self) -> Optional[Card]:
        if self.display_state in (DisplayState.NO_CARDS, DisplayState.COMPLETED):
            return None
        return self.state.current_card(self.deck)

    @property
    def review_needed_count(self) -> int:
        if self.display_state != DisplayState.REVIEW_NEEDED:
            return 0
        return len(self.state.outstanding_review)

    @property
    def stats(self) -> SessionStats:
        total = self.deck.size()
        learned_in_deck = sum(1 for cid in self.deck.ids() if cid in self.state.learned)
        active_total = len(self.state.active_ids(self.deck))
        return SessionStats(
            learned_count=len(self.state.learned),
            review_count=len(self.state.outstanding_review),
            position=min(self.state.current_index + 1, active_total),
            active_total=active_total,
            total_cards=total,
            percent_complete=round(learned_in_deck / total * 100) if total else 0,
        )

    def snapshot(self) -> ProgressSnapshot:
        return self.state.to_snapshot(self.deck)

    # Actions ------------------------------------------------------------
    def flip(self) -> DisplayState:
        return self._apply(Action.FLIP)

    def next(self) -> DisplayState:
        return self._apply(Action.NEXT)

    def prev(self) -> DisplayState:
        return self._apply(Action.PREV)

    def start_review(self) -> DisplayState:
        return self._apply(Action.START_REVIEW)

    def restart(self) -> DisplayState:
        return self._apply(Action.RESTART)

    def learn(self) -> DisplayState:
        if not self.active or self.state.mode == StudyMode.COMPLETED:
            return self.display_state
        card_id = self.state.current_card_id(self.deck)
        if card_id is None:
            return self.display_state
        was_deferred = card_id in self.state.review
        newly_learned = card_id not in self.state.learned
        display = self._apply(Action.LEARN, card_id)
        if was_deferred and self.callbacks.on_review_later_toggle:
            self.callbacks.on_review_later_toggle(card_id, False)
        if newly_learned and self.callbacks.on_card_complete:
            self.callbacks.on_card_complete(card_id, "learned")
        return display

    def defer(self) -> DisplayState:
        if not self.active or self.state.mode != StudyMode.NORMAL:
            return self.display_state
        card_id = self.state.current_card_id(self.deck)
        if card_id is None:
            return self.display_state
        newly_marked = card_id not in self.state.review and card_id not in self.state.learned
        display = self._apply(Action.DEFER, card_id)
        if newly_marked and self.callbacks.on_review_later_toggle:
            self.callbacks.on_review_later_toggle(card_id, True)
        return display

    def _apply(self, action: Action, card_id: Optional[str] = None) -> DisplayState:
        if not self.active:
            return self.display_state
        before = self.state
        after = self.controller.dispatch(before, self.deck, action, card_id)
        self.state = after
        if _progress_key(before) != _progress_key(after):
            self._persist()
            if after.mode == StudyMode.COMPLETED and before.mode != StudyMode.COMPLETED:
                self._log.info("Deck completed")
                if self.callbacks.on_deck_complete:
                    self.callbacks.on_deck_complete(self.snapshot())
        return self.display_state

    def _persist(self) -> None:
        snapshot = self.snapshot()
        if self.callbacks.on_progress_update:
            self.callbacks.on_progress_update(snapshot)
        self.store.save(snapshot)
