"""Generate flashcard decks from notes and learning paths."""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from ..batch import BatchProcessor, BatchTask
from ..deck_manager import compute_deck_stats
from ..exceptions import (
    BatchCancelledError,
    FlashcardError,
    NoteNotFoundError,
    TaskCancelledError,
)
from ..models import (
    Card,
    Deck,
    DeckBundle,
    FlashcardConfig,
    GeneratedDeck,
    GenerationOptions,
    LearningFile,
    generate_id,
    utc_now,
)
from .client import TextGenerator
from .pipeline import ChunkedGenerationPipeline, ProgressReporter, report_progress

logger = logging.getLogger(__name__)

DEFAULT_CARDS_PER_FILE = 10

PathProgressReporter = Callable[[int, str, Optional[str]], None]


@dataclass
class LearningPathGeneration:
    """Decks generated for a learning path, plus per-file errors."""

    decks: list[GeneratedDeck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def _report_path_progress(
    progress: Optional[PathProgressReporter],
    percent: int,
    status: str,
    current_file: Optional[str] = None,
) -> None:
    if progress is None:
        return
    try:
        progress(percent, status, current_file)
    except Exception:
        logger.exception("Progress callback failed at %d%%", percent)


class FlashcardGenerator:
    """Generate flashcard decks with an AI text generator."""

    def __init__(
        self,
        client: TextGenerator,
        config: Optional[FlashcardConfig] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        """
        Initialize the generator.

        Args:
            client: Text generator used for every AI call
            config: Generation and deck settings
            cancel_event: Optional event that stops outstanding AI calls
        """
        self.config = config or FlashcardConfig()
        self.cancel_event = cancel_event
        self.pipeline = ChunkedGenerationPipeline(
            client, self.config, cancel_event=cancel_event
        )

    async def generate_from_note(
        self,
        options: GenerationOptions,
        progress: Optional[ProgressReporter] = None,
    ) -> DeckBundle:
        """
        Generate a deck from a note in the vault.

        The deck is returned, not saved.

        Raises:
            NoteNotFoundError: If the note does not exist
            GenerationError: If no cards could be generated
        """
        report_progress(progress, 10, "Reading note...")
        content = await self.read_note(options.source_note)
        return await self.generate_from_text(content, options, progress)

    async def generate_from_text(
        self,
        content: str,
        options: GenerationOptions,
        progress: Optional[ProgressReporter] = None,
    ) -> DeckBundle:
        """Generate a deck from already loaded note content."""
        cards = await self.pipeline.generate_cards(
            content, options.count, options.source_note, progress
        )
        deck = self.build_deck(options.deck_name, [options.source_note], cards)
        return DeckBundle(deck=deck, cards=cards)

    async def read_note(self, source_note: str) -> str:
        """Read a note relative to the configured vault."""
        path = Path(self.config.vault_dir) / source_note
        if not path.is_file():
            raise NoteNotFoundError(source_note)
        return await asyncio.to_thread(path.read_text, encoding="utf-8")

    def build_deck(self, name: str, source_notes: list[str], cards: list[Card]) -> Deck:
        """Create a new deck record for freshly generated cards."""
        now = utc_now()
        return Deck(
            id=generate_id(),
            name=name,
            source_notes=source_notes,
            card_ids=[card.id for card in cards],
            created_at=now,
            updated_at=now,
            settings=self.config.deck_settings(),
            stats=compute_deck_stats(cards),
        )

    async def generate_from_learning_path(
        self,
        files: list[LearningFile],
        path_name: str,
        progress: Optional[PathProgressReporter] = None,
    ) -> list[GeneratedDeck]:
        """Generate one deck per file, returning only the decks that succeeded."""
        generation = await self.generate_learning_path_decks(files, path_name, progress)
        return generation.decks

    async def generate_learning_path_decks(
        self,
        files: list[LearningFile],
        path_name: str,
        progress: Optional[PathProgressReporter] = None,
        cards_per_file: int = DEFAULT_CARDS_PER_FILE,
    ) -> LearningPathGeneration:
        """
        Generate one deck per learning-path file.

        Small paths are processed one file at a time; larger ones go through
        the batch processor. A failing file is recorded as an error and does
        not stop the others; cancellation raises BatchCancelledError.

        Args:
            files: Files of the learning path
            path_name: Name of the path, used as deck name prefix
            progress: Optional callback(percent, status, current_file)
            cards_per_file: Target cards per deck

        Returns:
            LearningPathGeneration with generated decks and error messages
        """
        generation = LearningPathGeneration()
        if not files:
            return generation

        async def generate_file(file: LearningFile) -> GeneratedDeck:
            options = GenerationOptions(
                source_note=file.path,
                deck_name=f"{path_name} - {file.title}",
                count=cards_per_file,
            )
            if file.content is not None:
                bundle = await self.generate_from_text(file.content, options)
            else:
                bundle = await self.generate_from_note(options)
            return GeneratedDeck(deck=bundle.deck, cards=bundle.cards, file_name=file.title)

        total = len(files)
        if total <= self.config.serial_path_limit:
            for index, file in enumerate(files):
                _report_path_progress(
                    progress,
                    10 + 80 * index // total,
                    f"Generating flashcards ({index + 1}/{total})...",
                    file.title,
                )
                try:
                    generation.decks.append(await generate_file(file))
                except BatchCancelledError:
                    raise
                except FlashcardError as e:
                    logger.error("Flashcard generation failed for %s: %s", file.path, e)
                    generation.errors.append(f"{file.title}: {e}")
        else:

            def on_progress(done: int, count: int) -> None:
                _report_path_progress(
                    progress, 10 + 80 * done // count, f"Generated {done}/{count} decks"
                )

            processor: BatchProcessor[LearningFile, GeneratedDeck] = BatchProcessor(
                max_concurrent=self.config.path_concurrency,
                retry_delay=self.config.retry_delay,
                on_progress=on_progress,
                cancel_event=self.cancel_event,
            )
            tasks = [
                BatchTask(id=f"file_{index}", input=file, execute=generate_file, max_retries=1)
                for index, file in enumerate(files)
            ]
            results = await processor.process_batch(tasks)
            if processor.cancelled or any(
                isinstance(r.error, (TaskCancelledError, BatchCancelledError)) for r in results
            ):
                raise BatchCancelledError("Learning path generation was cancelled")
            by_id = {task.id: task.input for task in tasks}
            order = {task.id: index for index, task in enumerate(tasks)}

            # Restore input order; completion order is arbitrary
            for result in sorted(results, key=lambda r: order[r.task_id]):
                if result.success:
                    generation.decks.append(result.data)
                else:
                    file = by_id[result.task_id]
                    logger.error("Flashcard generation failed for %s: %s", file.path, result.error)
                    generation.errors.append(f"{file.title}: {result.error}")

        _report_path_progress(
            progress, 90, f"Generated {len(generation.decks)}/{total} decks"
        )
        return generation
