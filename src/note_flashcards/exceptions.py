"""Exception hierarchy for flashcard generation, scheduling and storage."""


class FlashcardError(Exception):
    """Base class for all errors raised by note_flashcards."""


class TaskCancelledError(FlashcardError):
    """A batch task was not run (or its result was discarded) after cancellation."""


class BatchCancelledError(FlashcardError):
    """Batch processing was cancelled before it started."""


class ResponseParseError(FlashcardError):
    """The AI response did not match the expected flashcard JSON shape."""


class GenerationError(FlashcardError):
    """Card generation failed for the whole document."""


class NoteNotFoundError(FlashcardError):
    """The source note does not exist."""

    def __init__(self, path):
        super().__init__(f"Note not found: {path}")
        self.path = path


class DeckNotFoundError(FlashcardError):
    """No deck with the given id could be loaded."""

    def __init__(self, deck_id: str):
        super().__init__(f"Deck not found: {deck_id}")
        self.deck_id = deck_id


class CardNotFoundError(FlashcardError):
    """The deck has no card with the given id."""

    def __init__(self, deck_id: str, card_id: str):
        super().__init__(f"Card {card_id} not found in deck {deck_id}")
        self.deck_id = deck_id
        self.card_id = card_id


class DeckLoadError(FlashcardError):
    """Persisted deck data is unreadable or missing required fields."""


class NoDecksToMergeError(FlashcardError):
    """None of the decks requested for a merge could be loaded."""
