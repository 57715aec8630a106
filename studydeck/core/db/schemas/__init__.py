# Import models so Base metadata is aware of them
from .decks import StudyCard, StudyDeck  # noqa: F401
from .study_progress import StudyProgress  # noqa: F401
