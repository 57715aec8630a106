"""Study session engine exports."""

from .models import (
    Action,
    Card,
    Deck,
    DeckIndexError,
    DeckPayload,
    DisplayState,
    ProgressSnapshot,
    StudyMode,
)
from .state import SessionState
from .controller import ModeController
from .store import LocalProgressCache, ProgressStore, exit_snapshot
from .collaborators import DeckCollaborator, DeckCollaboratorError, HttpDeckClient
from .session import SessionCallbacks, SessionHost

__all__ = [
    "Action",
    "Card",
    "Deck",
    "DeckIndexError",
    "DeckPayload",
    "DisplayState",
    "ProgressSnapshot",
    "StudyMode",
    "SessionState",
    "ModeController",
    "LocalProgressCache",
    "ProgressStore",
    "exit_snapshot",
    "DeckCollaborator",
    "DeckCollaboratorError",
    "HttpDeckClient",
    "SessionCallbacks",
    "SessionHost",
]
