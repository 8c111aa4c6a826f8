"""Note Flashcards - Generate and study spaced-repetition flashcards from notes using Claude."""

__version__ = "0.1.0"

from .batch import BatchProcessor, BatchTask, TaskResult, merge_results, process_in_batches
from .deck_manager import DeckManager, compute_deck_stats
from .deduplicator import CardDeduplicator, DeduplicationResult
from .exceptions import FlashcardError
from .generator import AnthropicTextGenerator, ChunkedGenerationPipeline, FlashcardGenerator
from .learning_path import LearningPathFlashcardService
from .models import (
    Card,
    CardStatus,
    Chunk,
    Deck,
    DeckBundle,
    DeckStats,
    FlashcardConfig,
    LearningFile,
    LearningPathResult,
    LearningState,
    Rating,
)
from .scheduler import calculate_next_review, review_learning_state
from .splitter import split_document
from .storage import DeckStorage

__all__ = [
    # Batch processing
    "BatchProcessor",
    "BatchTask",
    "TaskResult",
    "merge_results",
    "process_in_batches",
    # Generation
    "AnthropicTextGenerator",
    "ChunkedGenerationPipeline",
    "FlashcardGenerator",
    "LearningPathFlashcardService",
    "split_document",
    # Deduplication
    "CardDeduplicator",
    "DeduplicationResult",
    # Scheduling
    "calculate_next_review",
    "review_learning_state",
    # Decks
    "DeckManager",
    "DeckStorage",
    "compute_deck_stats",
    # Errors
    "FlashcardError",
    # Models
    "Card",
    "CardStatus",
    "Chunk",
    "Deck",
    "DeckBundle",
    "DeckStats",
    "FlashcardConfig",
    "LearningFile",
    "LearningPathResult",
    "LearningState",
    "Rating",
]
