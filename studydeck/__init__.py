"""studydeck: flashcard study sessions with resumable progress."""

__version__ = "0.1.0"
