"""Chunked flashcard generation with compensation for failed chunks."""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from ..batch import BatchProcessor, BatchTask
from ..deduplicator import CardDeduplicator
from ..exceptions import BatchCancelledError, GenerationError, ResponseParseError
from ..models import Card, Chunk, FlashcardConfig, GeneratedCard, generate_id, utc_now
from ..scheduler import initialize_learning_state
from ..splitter import get_split_stats, split_document
from .client import TextGenerator
from .prompts import SYSTEM_PROMPT, build_chunk_prompt, build_note_prompt
from .response_parser import ParseFailure, parse_flashcard_response

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"

ProgressReporter = Callable[[int, str], None]
Splitter = Callable[[str, int], list[Chunk]]


def report_progress(progress: Optional[ProgressReporter], percent: int, status: str) -> None:
    """Invoke a progress callback, never letting it break generation."""
    if progress is None:
        return
    try:
        progress(percent, status)
    except Exception:
        logger.exception("Progress callback failed at %d%%", percent)


def build_card(
    generated: GeneratedCard,
    source_note: str,
    chunk_title: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Card:
    """Turn a validated AI card into a new, unreviewed Card."""
    now = now or utc_now()
    return Card(
        id=generate_id(),
        question=generated.question,
        answer=generated.answer,
        source_note=source_note,
        source_section=generated.source_section or chunk_title or UNCATEGORIZED,
        tags=list(generated.tags),
        created_at=now,
        updated_at=now,
        learning=initialize_learning_state(now),
    )


@dataclass
class ChunkCards:
    """Cards generated from a single chunk."""

    chunk: Chunk
    cards: list[Card] = field(default_factory=list)


@dataclass
class PassOutcome:
    """Successful chunks of one generation pass, keyed by chunk index."""

    succeeded: dict[int, ChunkCards] = field(default_factory=dict)
    failed: list[int] = field(default_factory=list)

    @property
    def card_count(self) -> int:
        return sum(len(cc.cards) for cc in self.succeeded.values())

    def ordered_cards(self) -> list[Card]:
        cards: list[Card] = []
        for index in sorted(self.succeeded):
            cards.extend(self.succeeded[index].cards)
        return cards


class ChunkedGenerationPipeline:
    """
    Generate a target number of cards from a document of any size.

    Short documents go to the model in one call. Longer documents are split
    into chunks that are generated concurrently; chunks that fail (or, when
    none failed, chunks that under-produce) get one compensation pass. The
    merged result is deduplicated and truncated to the target.
    """

    def __init__(
        self,
        client: TextGenerator,
        config: Optional[FlashcardConfig] = None,
        splitter: Splitter = split_document,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.client = client
        self.config = config or FlashcardConfig()
        self.splitter = splitter
        self.cancel_event = cancel_event
        self.deduplicator = CardDeduplicator()

    async def generate_cards(
        self,
        content: str,
        target: int,
        source_note: str,
        progress: Optional[ProgressReporter] = None,
    ) -> list[Card]:
        """
        Generate up to ``target`` cards from ``content``.

        Args:
            content: Full document text
            target: Number of cards wanted
            source_note: Note path stamped on every card
            progress: Optional callback(percent, status)

        Returns:
            Fresh, unreviewed cards

        Raises:
            GenerationError: If no cards could be generated
            BatchCancelledError: If cancellation was requested
        """
        if target < 1:
            raise ValueError("target must be at least 1")

        report_progress(progress, 20, "Splitting document...")
        chunks = self.splitter(content, self.config.max_chunk_size)
        logger.info("Split %s into chunks: %s", source_note, get_split_stats(chunks))

        if len(chunks) <= 1:
            report_progress(progress, 30, "Generating flashcards...")
            generated = await self.generate_single(content, target)
            now = utc_now()
            title = chunks[0].title if chunks else None
            cards = [build_card(g, source_note, title, now) for g in generated]
            if not cards:
                raise GenerationError("The model returned no flashcards")
            report_progress(progress, 100, f"Generated {len(cards)} flashcards")
            return cards

        per_chunk = max(1, math.ceil(target / len(chunks)))
        report_progress(progress, 30, f"Generating flashcards for {len(chunks)} sections...")
        first_pass = await self._run_pass(
            chunks,
            per_chunk,
            source_note,
            max_retries=self.config.chunk_max_retries,
            total_parts=len(chunks),
            progress=progress,
            progress_range=(30, 70),
        )
        self._check_cancelled()

        generated_so_far = first_pass.card_count
        logger.info(
            "First pass: %d/%d chunks succeeded, %d/%d cards",
            len(first_pass.succeeded),
            len(chunks),
            generated_so_far,
            target,
        )

        compensation = PassOutcome()
        retry_chunks = self._compensation_chunks(chunks, first_pass, per_chunk, target)
        if retry_chunks:
            remaining = target - generated_so_far
            per_retry = max(1, math.ceil(remaining / len(retry_chunks)))
            report_progress(progress, 75, f"Retrying {len(retry_chunks)} section(s)...")
            logger.info(
                "Compensating chunks %s with %d card(s) each",
                [c.index for c in retry_chunks],
                per_retry,
            )
            compensation = await self._run_pass(
                retry_chunks,
                per_retry,
                source_note,
                max_retries=self.config.compensation_max_retries,
                total_parts=len(chunks),
                progress=progress,
                progress_range=(75, 80),
            )
            self._check_cancelled()

        report_progress(progress, 85, "Merging and deduplicating...")
        merged = first_pass.ordered_cards() + compensation.ordered_cards()
        result = self.deduplicator.deduplicate(merged)
        if result.duplicates_found:
            logger.info("Dropped %d duplicate card(s)", result.duplicates_found)

        cards = result.cards[:target]
        if not cards:
            raise GenerationError(f"No flashcards could be generated for {source_note}")
        if len(cards) < target:
            logger.warning("Generated %d of %d requested cards", len(cards), target)

        report_progress(progress, 100, f"Generated {len(cards)} flashcards")
        return cards

    async def generate_single(self, content: str, count: int) -> list[GeneratedCard]:
        """Generate cards against a whole document in one call."""
        self._check_cancelled()
        try:
            response = await self.client.generate_text(
                SYSTEM_PROMPT,
                build_note_prompt(content, count),
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                model=self.config.model,
            )
        except Exception as e:
            raise GenerationError(f"AI generation failed: {e}") from e

        parsed = parse_flashcard_response(response)
        if isinstance(parsed, ParseFailure):
            logger.debug("Unparseable response: %s", parsed.raw)
            raise GenerationError(f"Could not parse AI response: {parsed.reason}")
        return parsed.cards

    async def generate_for_chunk(
        self,
        chunk: Chunk,
        count: int,
        total_parts: int,
        source_note: str,
    ) -> ChunkCards:
        """
        Generate cards for one chunk.

        Raises:
            ResponseParseError: If the response does not have the expected shape
        """
        prompt = build_chunk_prompt(
            chunk.content,
            count,
            part=chunk.index + 1,
            total_parts=total_parts,
            title=chunk.title,
        )
        response = await self.client.generate_text(
            SYSTEM_PROMPT,
            prompt,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
            model=self.config.model,
        )

        parsed = parse_flashcard_response(response)
        if isinstance(parsed, ParseFailure):
            raise ResponseParseError(f"Chunk {chunk.index}: {parsed.reason}")

        now = utc_now()
        return ChunkCards(
            chunk=chunk,
            cards=[build_card(g, source_note, chunk.title, now) for g in parsed.cards],
        )

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise BatchCancelledError("Generation was cancelled")

    async def _run_pass(
        self,
        chunks: list[Chunk],
        per_chunk: int,
        source_note: str,
        max_retries: int,
        total_parts: int,
        progress: Optional[ProgressReporter] = None,
        progress_range: tuple[int, int] = (30, 70),
    ) -> PassOutcome:

        async def run(chunk: Chunk) -> ChunkCards:
            return await self.generate_for_chunk(chunk, per_chunk, total_parts, source_note)

        start, end = progress_range

        def on_progress(done: int, total: int) -> None:
            percent = start + (end - start) * done // total
            report_progress(progress, percent, f"Generated {done}/{total} sections")

        processor: BatchProcessor[Chunk, ChunkCards] = BatchProcessor(
            max_concurrent=self.config.chunk_concurrency,
            retry_delay=self.config.retry_delay,
            on_progress=on_progress if progress else None,
            cancel_event=self.cancel_event,
        )
        tasks = [
            BatchTask(id=f"chunk_{chunk.index}", input=chunk, execute=run, max_retries=max_retries)
            for chunk in chunks
        ]
        results = await processor.process_batch(tasks)

        outcome = PassOutcome()
        by_id = {task.id: task.input for task in tasks}
        for result in results:
            chunk = by_id[result.task_id]
            if result.success:
                outcome.succeeded[chunk.index] = result.data
            else:
                outcome.failed.append(chunk.index)
        return outcome

    @staticmethod
    def _compensation_chunks(
        chunks: list[Chunk],
        first_pass: PassOutcome,
        per_chunk: int,
        target: int,
    ) -> list[Chunk]:
        """Chunks to retry: failed ones, or under-producing ones when none failed."""
        chunk_shortfall = len(first_pass.succeeded) < len(chunks)
        card_shortfall = first_pass.card_count < target
        if not (chunk_shortfall or card_shortfall):
            return []

        failed = [c for c in chunks if c.index not in first_pass.succeeded]
        if failed:
            return failed
        return [c for c in chunks if len(first_pass.succeeded[c.index].cards) < per_chunk]
