"""Generate and save flashcard decks for every file of a learning path."""

import logging
from typing import Optional

from .deck_manager import DeckManager
from .exceptions import FlashcardError
from .generator import FlashcardGenerator
from .generator.card_generator import PathProgressReporter
from .models import DeckBundle, GeneratedDeck, LearningFile, LearningPathResult

logger = logging.getLogger(__name__)


class LearningPathFlashcardService:
    """Turn a learning path into saved decks, one deck per file."""

    def __init__(self, generator: FlashcardGenerator, manager: DeckManager):
        self.generator = generator
        self.manager = manager

    async def generate_flashcards_from_path(
        self,
        files: list[LearningFile],
        path_name: str,
        progress: Optional[PathProgressReporter] = None,
    ) -> LearningPathResult:
        """
        Generate a deck per file and save each one.

        Files that fail to generate or save are reported in ``errors``; the
        rest of the path is still processed.

        Args:
            files: Files of the learning path
            path_name: Name of the path, used as deck name prefix
            progress: Optional callback(percent, status, current_file)

        Returns:
            LearningPathResult; ``success`` is True when at least one deck was saved
        """
        if not files:
            logger.error("Learning path %s has no files", path_name)
            return LearningPathResult(success=False, errors=["No learning files to process"])

        self._report(progress, 5, f"Generating flashcards for {len(files)} file(s)...")
        generation = await self.generator.generate_learning_path_decks(files, path_name, progress)
        errors = list(generation.errors)

        self._report(progress, 90, "Saving decks...")
        saved: list[GeneratedDeck] = []
        for generated in generation.decks:
            try:
                await self.manager.create_deck(
                    DeckBundle(deck=generated.deck, cards=generated.cards)
                )
            except (FlashcardError, OSError) as e:
                logger.error("Failed to save deck %s: %s", generated.deck.name, e)
                errors.append(f"Saving deck for {generated.file_name} failed: {e}")
                continue
            saved.append(generated)

        total_cards = sum(len(generated.cards) for generated in saved)
        logger.info(
            "Learning path %s: %d deck(s), %d card(s), %d error(s)",
            path_name,
            len(saved),
            total_cards,
            len(errors),
        )
        self._report(
            progress, 100, f"Generated {len(saved)} deck(s) with {total_cards} flashcards"
        )

        return LearningPathResult(
            success=bool(saved),
            decks=saved,
            total_cards=total_cards,
            total_decks=len(saved),
            errors=errors,
        )

    @staticmethod
    def _report(progress: Optional[PathProgressReporter], percent: int, status: str) -> None:
        if progress is None:
            return
        try:
            progress(percent, status, None)
        except Exception:
            logger.exception("Progress callback failed at %d%%", percent)
