"""Data models for flashcard generation, scheduling and deck management."""

import uuid
from datetime import datetime, timezone
from enum import Enum, IntEnum
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def generate_id() -> str:
    """Generate a unique card or deck ID."""
    return uuid.uuid4().hex[:12]


class CardStatus(str, Enum):
    """Learning status of a card, derived from its scheduling state."""

    NEW = "new"
    LEARNING = "learning"
    REVIEW = "review"
    MASTERED = "mastered"


class Rating(IntEnum):
    """How well a card was recalled during review."""

    FORGOT = 0
    HARD = 1
    GOOD = 2
    EASY = 3


class ReviewRecord(BaseModel):
    """A single review event in a card's history."""

    timestamp: datetime = Field(default_factory=utc_now)
    rating: Rating
    time_taken: float = Field(default=0, ge=0, description="Seconds spent on the card")


class LearningState(BaseModel):
    """SM-2 scheduling state embedded in every card."""

    ease_factor: float = Field(default=2.5, ge=1.3, le=2.5)
    interval: int = Field(default=0, ge=0, description="Review interval in days")
    repetitions: int = Field(default=0, ge=0, description="Consecutive correct reviews")
    next_review: datetime = Field(default_factory=utc_now)
    last_review: Optional[datetime] = Field(default=None)
    status: CardStatus = Field(default=CardStatus.NEW)


class Card(BaseModel):
    """A single flashcard."""

    id: str = Field(description="Unique identifier within the deck")
    question: str
    answer: str

    # Provenance
    source_note: str = Field(default="", description="Path of the note the card came from")
    source_section: str = Field(default="", description="Section heading or topic")
    source_line_start: Optional[int] = Field(default=None)
    source_line_end: Optional[int] = Field(default=None)

    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    learning: LearningState = Field(default_factory=LearningState)
    review_history: list[ReviewRecord] = Field(default_factory=list)

    @field_validator("question", "answer")
    @classmethod
    def _require_text(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    def get_display_text(self) -> str:
        """Get human-readable card content."""
        return f"Q: {self.question}\nA: {self.answer}"

    @property
    def dedup_key(self) -> tuple[str, str]:
        """Exact-match key used to drop duplicate generated cards."""
        return (self.question, self.answer)


class DeckSettings(BaseModel):
    """Per-deck daily study limits."""

    new_cards_per_day: int = Field(default=20, ge=0)
    review_cards_per_day: int = Field(default=200, ge=0)


class DeckStats(BaseModel):
    """Aggregate statistics, always recomputed from the deck's cards."""

    total: int = 0
    new: int = 0
    learning: int = 0
    review: int = 0
    mastered: int = 0
    mastery_rate: float = Field(default=0.0, ge=0, le=1)
    total_study_time: float = Field(default=0, description="Seconds spent reviewing")
    total_reviews: int = 0
    last_study_time: Optional[datetime] = Field(default=None)


class Deck(BaseModel):
    """A named collection of cards; the unit of persistence and deletion."""

    id: str
    name: str
    source_notes: list[str] = Field(default_factory=list)
    card_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    settings: DeckSettings = Field(default_factory=DeckSettings)
    stats: DeckStats = Field(default_factory=DeckStats)

    @field_validator("id", "name")
    @classmethod
    def _require_identity(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value


class DeckBundle(BaseModel):
    """A deck together with its cards."""

    deck: Deck
    cards: list[Card] = Field(default_factory=list)


class Chunk(BaseModel):
    """A contiguous slice of a source document."""

    index: int = Field(ge=0, description="Position of the chunk in the document")
    title: Optional[str] = Field(default=None, description="Heading the chunk falls under")
    content: str

    @property
    def length(self) -> int:
        return len(self.content)


class GeneratedCard(BaseModel):
    """A card as returned by the AI, after validation."""

    question: str
    answer: str
    source_section: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sourceSection", "source_section"),
    )
    tags: list[str] = Field(default_factory=list)

    @field_validator("question", "answer", mode="before")
    @classmethod
    def _require_text(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("question and answer are required")
        return value.strip()

    @field_validator("source_section", mode="before")
    @classmethod
    def _blank_section(cls, value):
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _repair_tags(cls, value):
        if not isinstance(value, list):
            return []
        return [str(tag).strip() for tag in value if str(tag).strip()]


class GenerationOptions(BaseModel):
    """What to generate from a single note."""

    source_note: str = Field(description="Path of the note, relative to the vault")
    deck_name: str
    count: int = Field(default=10, ge=1, description="Target number of cards")


class LearningFile(BaseModel):
    """A file belonging to a learning path."""

    path: str
    title: str
    content: Optional[str] = Field(default=None, description="Preloaded content, if any")


class GeneratedDeck(BaseModel):
    """A deck generated from one learning-path file."""

    deck: Deck
    cards: list[Card] = Field(default_factory=list)
    file_name: str


class LearningPathResult(BaseModel):
    """Outcome of generating and saving decks for a whole learning path."""

    success: bool
    decks: list[GeneratedDeck] = Field(default_factory=list)
    total_cards: int = 0
    total_decks: int = 0
    errors: list[str] = Field(default_factory=list)


class FlashcardConfig(BaseModel):
    """Configuration threaded through the generator, pipeline and deck manager."""

    vault_dir: Path = Field(default=Path("."), description="Root that note paths are relative to")
    deck_dir: Path = Field(default=Path("flashcards"), description="Where decks are stored")

    # Study limits applied to newly created decks
    new_cards_per_day: int = Field(default=20, ge=0)
    review_cards_per_day: int = Field(default=200, ge=0)

    # AI generation
    model: str = Field(default="claude-sonnet-4-20250514")
    temperature: float = Field(default=0.7, ge=0, le=1)
    max_tokens: int = Field(default=8000, ge=1)

    # Chunked pipeline
    max_chunk_size: int = Field(default=2000, ge=100, description="Max characters per chunk")
    chunk_concurrency: int = Field(default=5, ge=1)
    chunk_max_retries: int = Field(default=2, ge=0)
    compensation_max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0, description="Base backoff delay in seconds")

    # Learning paths
    path_concurrency: int = Field(default=3, ge=1)
    serial_path_limit: int = Field(
        default=3, ge=0, description="Paths with this many files or fewer run serially"
    )

    @classmethod
    def load(cls, path: Path) -> "FlashcardConfig":
        """Load configuration from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())

    def deck_settings(self) -> DeckSettings:
        """Default settings for a newly created deck."""
        return DeckSettings(
            new_cards_per_day=self.new_cards_per_day,
            review_cards_per_day=self.review_cards_per_day,
        )
