from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Optional

from studydeck.core.logging import setup_logging
from studydeck.modules.study.collaborators import HttpDeckClient
from studydeck.modules.study.models import DisplayState
from studydeck.modules.study.session import SessionCallbacks, SessionHost
from studydeck.modules.study.store import LocalProgressCache, ProgressStore


HELP = "[f]lip  [l]earned  [d]efer  [n]ext  [p]rev  [s]tart review  [r]estart  [q]uit"


def render(host: SessionHost) -> str:
    display = host.display_state
    stats = host.stats
    if display == DisplayState.NO_CARDS:
        return "Nothing to study in this deck."
    if display == DisplayState.COMPLETED:
        return (
            f"You've completed all {stats.total_cards} cards in this deck.\n"
            "[r]estart  [q]uit"
        )
    if display == DisplayState.REVIEW_NEEDED:
        n = host.review_needed_count
        return (
            f"You've marked {n} {'card' if n == 1 else 'cards'} for review.\n"
            "[s]tart review  [q]uit"
        )
    card = host.current_card
    label = " (Review)" if display == DisplayState.REVIEWING else ""
    side = "A" if host.state.showing_answer else "Q"
    text = ""
    if card is not None:
        text = card.answer if host.state.showing_answer else card.question
    return (
        f"{stats.position} / {stats.active_total}{label}  "
        f"learned {stats.learned_count}, review {stats.review_count}\n"
        f"{side}: {text}\n{HELP}"
    )


def handle_command(host: SessionHost, cmd: str) -> bool:
    """Apply one keystroke. Returns False when the learner asked to leave."""
    actions = {
        "f": host.flip,
        "l": host.learn,
        "d": host.defer,
        "n": host.next,
        "p": host.prev,
        "s": host.start_review,
        "r": host.restart,
    }
    cmd = cmd.strip().lower()[:1]
    if cmd == "q":
        return False
    fn = actions.get(cmd)
    if fn is not None:
        fn()
    return True


def _make_store(client: HttpDeckClient, args: argparse.Namespace) -> ProgressStore:
    cache = LocalProgressCache(Path(args.cache)) if args.cache else LocalProgressCache()
    return ProgressStore(client, cache, debounce_seconds=args.debounce)


async def _study(args: argparse.Namespace) -> int:
    async with HttpDeckClient(base_url=args.base_url, learner_id=args.learner) as client:
        host = SessionHost(
            client,
            _make_store(client, args),
            callbacks=SessionCallbacks(
                on_deck_complete=lambda _s: print("Deck complete!"),
            ),
        )
        await host.open(args.deck_id)
        if host.display_state == DisplayState.NO_CARDS:
            print(render(host))
            return 1
        while True:
            print(render(host))
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                line = "q"
            if not handle_command(host, line):
                break
        task = host.exit()
        if task is not None:
            await task
        return 0


async def _reset(args: argparse.Namespace) -> int:
    async with HttpDeckClient(base_url=args.base_url, learner_id=args.learner) as client:
        store = _make_store(client, args)
        task = store.reset(args.deck_id)
        if task is not None:
            await task
        print(f"Progress reset for deck {args.deck_id}")
        return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="studydeck-study", description="Study a flashcard deck in the terminal"
    )
    parser.add_argument("--base-url", help="Study API base URL")
    parser.add_argument("--learner", help="Learner id sent as X-Learner-Id")
    parser.add_argument("--cache", help="Path of the local progress cache file")
    parser.add_argument(
        "--debounce", type=float, default=None, help="Seconds to coalesce remote saves"
    )
    parser.add_argument("--log-level", default=None, help="Logging level")
    sub = parser.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("study", help="Walk through a deck, resuming saved progress")
    s.add_argument("deck_id")

    r = sub.add_parser("reset", help="Forget saved progress for a deck")
    r.add_argument("deck_id")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    if args.cmd == "study":
        return asyncio.run(_study(args))
    if args.cmd == "reset":
        return asyncio.run(_reset(args))

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
