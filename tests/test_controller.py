"""Mode machine scenarios and invariants."""

import random

import pytest

from studydeck.modules.study.controller import ModeController
from studydeck.modules.study.models import Action, Deck, DisplayState, StudyMode
from studydeck.modules.study.state import SessionState

from tests.conftest import make_cards


@pytest.fixture
def ctl():
    return ModeController()


def run(ctl, deck, actions, state=None):
    state = state or SessionState()
    for action in actions:
        state = ctl.dispatch(state, deck, action)
    return state


MIXED_PASS = [Action.LEARN, Action.DEFER, Action.LEARN, Action.DEFER, Action.LEARN]


def test_mixed_pass_reaches_review_needed(ctl, deck5):
    s = run(ctl, deck5, MIXED_PASS)
    assert s.mode == StudyMode.NORMAL
    assert s.current_index == 4
    assert s.learned == {"c1", "c3", "c5"}
    assert s.review == {"c2", "c4"}
    assert ctl.display_state(s, deck5) == DisplayState.REVIEW_NEEDED


def test_review_pass_completes_deck(ctl, deck5):
    s = run(ctl, deck5, MIXED_PASS + [Action.START_REVIEW])
    assert s.mode == StudyMode.REVIEW
    assert s.review_queue == ("c2", "c4")
    assert s.current_index == 0
    assert s.current_card_id(deck5) == "c2"

    s = ctl.dispatch(s, deck5, Action.LEARN)
    assert s.mode == StudyMode.REVIEW
    assert s.current_card_id(deck5) == "c4"

    s = ctl.dispatch(s, deck5, Action.LEARN)
    assert s.mode == StudyMode.COMPLETED
    assert s.current_index == 0
    assert s.learned == {"c1", "c2", "c3", "c4", "c5"}
    assert s.review == frozenset()
    assert ctl.display_state(s, deck5) == DisplayState.COMPLETED


def test_learning_every_card_completes(ctl, deck5):
    s = run(ctl, deck5, [Action.LEARN] * 4)
    assert s.mode == StudyMode.NORMAL
    assert s.current_index == 4
    s = ctl.dispatch(s, deck5, Action.LEARN)
    assert s.mode == StudyMode.COMPLETED


def test_next_to_end_without_acting_keeps_studying(ctl, deck5):
    s = run(ctl, deck5, [Action.NEXT] * 10)
    assert s.current_index == 4
    assert ctl.display_state(s, deck5) == DisplayState.STUDYING


def test_review_needed_requires_every_card_acted_on(ctl, deck5):
    # c3 skipped with next, so the prompt must not show at the end
    s = run(ctl, deck5, [Action.DEFER, Action.LEARN, Action.NEXT, Action.LEARN, Action.LEARN])
    assert ctl.display_state(s, deck5) == DisplayState.STUDYING
    s = run(ctl, deck5, [Action.PREV, Action.PREV, Action.LEARN], s)
    assert s.current_index == 3
    s = run(ctl, deck5, [Action.NEXT], s)
    assert ctl.display_state(s, deck5) == DisplayState.REVIEW_NEEDED


def test_defer_is_ignored_in_review(ctl, deck5):
    s = run(ctl, deck5, MIXED_PASS + [Action.START_REVIEW])
    assert ctl.dispatch(s, deck5, Action.DEFER) == s


def test_start_review_only_from_end_of_pass(ctl, deck5):
    s = run(ctl, deck5, [Action.DEFER])
    assert ctl.dispatch(s, deck5, Action.START_REVIEW) == s


def test_start_review_with_nothing_outstanding_completes(ctl, deck5):
    # Deferred card learned between the prompt and the start of review
    s = SessionState(
        current_index=4,
        learned=frozenset(deck5.ids()),
    )
    assert ctl.start_review(s, deck5).mode == StudyMode.COMPLETED


def test_single_card_deferred_then_learned(ctl, deck1):
    s = ctl.dispatch(SessionState(), deck1, Action.DEFER)
    assert ctl.display_state(s, deck1) == DisplayState.REVIEW_NEEDED
    s = ctl.dispatch(s, deck1, Action.START_REVIEW)
    assert ctl.display_state(s, deck1) == DisplayState.REVIEWING
    s = ctl.dispatch(s, deck1, Action.LEARN)
    assert s.mode == StudyMode.COMPLETED


def test_single_card_learned_completes_immediately(ctl, deck1):
    s = ctl.dispatch(SessionState(), deck1, Action.LEARN)
    assert s.mode == StudyMode.COMPLETED


def test_completed_ignores_everything_but_restart(ctl, deck1):
    done = ctl.dispatch(SessionState(), deck1, Action.LEARN)
    for action in (Action.FLIP, Action.LEARN, Action.DEFER, Action.NEXT, Action.PREV, Action.START_REVIEW):
        assert ctl.dispatch(done, deck1, action) == done
    assert ctl.dispatch(done, deck1, Action.RESTART) == SessionState()


def test_restart_from_review(ctl, deck5):
    s = run(ctl, deck5, MIXED_PASS + [Action.START_REVIEW, Action.RESTART])
    assert s == SessionState()


def test_empty_deck_is_inert(ctl):
    empty = Deck(deck_id="empty")
    s = SessionState()
    assert ctl.display_state(s, empty) == DisplayState.NO_CARDS
    for action in Action:
        assert ctl.dispatch(s, empty, action) == s


def test_dispatch_accepts_action_values(ctl, deck5):
    s = ctl.dispatch(SessionState(), deck5, "next")
    assert s.current_index == 1


def test_settle_completes_finished_review(ctl, deck5):
    s = SessionState(
        learned=frozenset(deck5.ids()),
        mode=StudyMode.REVIEW,
        review_queue=("c2",),
    )
    assert ctl.settle(s, deck5).mode == StudyMode.COMPLETED


def test_settle_leaves_open_review(ctl, deck5):
    s = SessionState(
        learned=frozenset({"c1"}),
        review=frozenset({"c2"}),
        mode=StudyMode.REVIEW,
        review_queue=("c2",),
    )
    assert ctl.settle(s, deck5) == s


@pytest.mark.parametrize("seed", range(20))
def test_random_walk_keeps_invariants(ctl, seed):
    rng = random.Random(seed)
    deck = Deck(deck_id="walk", cards=tuple(make_cards(rng.randint(1, 8))))
    s = SessionState()
    actions = list(Action)
    for _ in range(200):
        s = ctl.dispatch(s, deck, rng.choice(actions))
        assert not (s.learned & s.review)
        assert 0 <= s.current_index < max(len(s.active_ids(deck)), 1)
        if s.mode == StudyMode.REVIEW:
            assert s.review_queue
            assert not all(cid in s.learned for cid in s.review_queue)
        if s.mode == StudyMode.COMPLETED:
            assert s.current_index == 0
