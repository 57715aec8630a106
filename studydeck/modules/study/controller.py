"""Mode state machine layered over `SessionState`.

Stored modes are Normal, Review and Completed. "Review Needed" is only a
display label over Normal: the pass has reached the last card, every card
has been acted on, and some deferred cards are still not learned.

All inputs are total. A trigger that does not apply in the current mode
returns the state unchanged instead of raising.
"""

from __future__ import annotations

from typing import Optional

from studydeck.modules.study.models import Action, Deck, DisplayState, StudyMode
from studydeck.modules.study.state import SessionState


class ModeController:
    def review_needed(self, state: SessionState, deck: Deck) -> bool:
        return (
            state.mode == StudyMode.NORMAL
            and not deck.is_empty
            and state.at_last_card(deck)
            and state.acted_on_all(deck)
            and bool(state.outstanding_review)
        )

    def display_state(self, state: SessionState, deck: Deck) -> DisplayState:
        if deck.is_empty:
            return DisplayState.NO_CARDS
        if state.mode == StudyMode.COMPLETED:
            return DisplayState.COMPLETED
        if state.mode == StudyMode.REVIEW:
            return DisplayState.REVIEWING
        if self.review_needed(state, deck):
            return DisplayState.REVIEW_NEEDED
        return DisplayState.STUDYING

    def evaluate(self, state: SessionState, deck: Deck) -> SessionState:
        """Apply the completion guards after a transition."""
        if deck.is_empty:
            return state
        if state.mode == StudyMode.NORMAL:
            if (
                state.at_last_card(deck)
                and state.acted_on_all(deck)
                and not state.outstanding_review
            ):
                return state.complete()
        elif state.mode == StudyMode.REVIEW:
            # An empty queue also lands here, so Review is never left empty
            if all(cid in state.learned for cid in state.review_queue):
                return state.complete()
        return state

    # A resumed snapshot goes through the same guards as a live transition
    settle = evaluate

    def start_review(self, state: SessionState, deck: Deck) -> SessionState:
        if deck.is_empty or state.mode != StudyMode.NORMAL:
            return state
        if not (state.at_last_card(deck) and state.acted_on_all(deck)):
            return state
        queue = [cid for cid in deck.ids() if cid in state.outstanding_review]
        if not queue:
            # The last deferred card was learned before the pass started
            return state.complete()
        return state.begin_review(queue)

    def dispatch(
        self,
        state: SessionState,
        deck: Deck,
        action: Action,
        card_id: Optional[str] = None,
    ) -> SessionState:
        """Reducer: apply one user action, then the completion guards."""
        if deck.is_empty:
            return state
        action = Action(action)
        if action == Action.RESTART:
            return self.evaluate(state.restart(), deck)
        if state.mode == StudyMode.COMPLETED:
            return state

        if action == Action.FLIP:
            return state.flip()
        if action == Action.NEXT:
            nxt = state.advance(deck)
        elif action == Action.PREV:
            nxt = state.retreat(deck)
        elif action == Action.START_REVIEW:
            return self.start_review(state, deck)
        elif action == Action.LEARN:
            card_id = card_id or state.current_card_id(deck)
            if card_id is None:
                return state
            nxt = state.mark_learned(card_id).advance(deck)
        elif action == Action.DEFER:
            if state.mode != StudyMode.NORMAL:
                return state
            card_id = card_id or state.current_card_id(deck)
            if card_id is None:
                return state
            nxt = state.mark_review_later(card_id).advance(deck)
        else:
            return state
        return self.evaluate(nxt, deck)
