"""Duplicate removal for generated flashcards."""

from dataclasses import dataclass, field

from .models import Card, generate_id


@dataclass
class DeduplicationResult:
    """Result of removing exact duplicates."""

    cards: list[Card] = field(default_factory=list)
    duplicates: list[Card] = field(default_factory=list)

    @property
    def total_cards(self) -> int:
        return len(self.cards) + len(self.duplicates)

    @property
    def unique_cards(self) -> int:
        return len(self.cards)

    @property
    def duplicates_found(self) -> int:
        return len(self.duplicates)

    def __str__(self) -> str:
        return (
            f"Deduplication Results:\n"
            f"  Total cards: {self.total_cards}\n"
            f"  Unique cards: {self.unique_cards}\n"
            f"  Duplicates dropped: {self.duplicates_found}"
        )


class CardDeduplicator:
    """Drop cards whose (question, answer) pair was already seen."""

    def __init__(self, reassign_ids: bool = True):
        """
        Initialize deduplicator.

        Args:
            reassign_ids: Give every surviving card a fresh ID, since the
                merged set replaces the per-chunk sets it came from
        """
        self.reassign_ids = reassign_ids

    def deduplicate(self, cards: list[Card]) -> DeduplicationResult:
        """
        Remove exact duplicates, keeping the first occurrence.

        Args:
            cards: Cards in merge order

        Returns:
            DeduplicationResult with surviving cards in their original order
        """
        result = DeduplicationResult()
        seen: set[tuple[str, str]] = set()

        for card in cards:
            if card.dedup_key in seen:
                result.duplicates.append(card)
                continue
            seen.add(card.dedup_key)
            if self.reassign_ids:
                card = card.model_copy(update={"id": generate_id()})
            result.cards.append(card)

        return result

    def get_duplicate_summary(self, result: DeduplicationResult, max_examples: int = 3) -> str:
        """
        Get a human-readable summary of dropped duplicates.

        Args:
            result: DeduplicationResult to summarize
            max_examples: Maximum dropped cards to show

        Returns:
            Formatted summary string
        """
        lines = [
            "Duplicate Detection Summary",
            "-" * 40,
            f"Total cards analyzed: {result.total_cards}",
            f"Unique cards: {result.unique_cards}",
            f"Duplicates dropped: {result.duplicates_found}",
        ]

        if result.duplicates and max_examples > 0:
            lines.append("")
            num_shown = min(max_examples, len(result.duplicates))
            lines.append(f"Example duplicates (showing {num_shown}):")
            for card in result.duplicates[:max_examples]:
                lines.append(f"  {card.question[:60]}")

        return "\n".join(lines)
