"""Tests for the deck and card lifecycle."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from note_flashcards.deck_manager import DeckManager, compute_deck_stats, sum_deck_stats
from note_flashcards.exceptions import CardNotFoundError, DeckNotFoundError, NoDecksToMergeError
from note_flashcards.models import (
    Card,
    CardStatus,
    Deck,
    DeckBundle,
    DeckSettings,
    FlashcardConfig,
    LearningState,
    Rating,
    ReviewRecord,
)
from note_flashcards.storage import DeckStorage

NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def make_card(card_id: str, status: CardStatus = CardStatus.NEW, due_in_days: float = 0) -> Card:
    """Create a card in the given status, due relative to NOW."""
    repetitions, interval = {
        CardStatus.NEW: (0, 0),
        CardStatus.LEARNING: (1, 1),
        CardStatus.REVIEW: (3, 10),
        CardStatus.MASTERED: (5, 30),
    }[status]
    return Card(
        id=card_id,
        question=f"Question {card_id}?",
        answer=f"Answer {card_id}",
        learning=LearningState(
            repetitions=repetitions,
            interval=interval,
            next_review=NOW + timedelta(days=due_in_days),
            status=status,
        ),
    )


@pytest.fixture
def manager(tmp_path):
    return DeckManager(DeckStorage(tmp_path), FlashcardConfig(deck_dir=tmp_path))


async def create(manager: DeckManager, deck_id: str, cards: list[Card], **deck_fields) -> Deck:
    deck = Deck(id=deck_id, name=f"Deck {deck_id}", **deck_fields)
    return await manager.create_deck(DeckBundle(deck=deck, cards=cards))


class TestComputeDeckStats:
    """Tests for statistics."""

    def test_counts_and_mastery(self):
        """Counts per status and mastery over review plus mastered."""
        cards = [
            make_card("n", CardStatus.NEW),
            make_card("l", CardStatus.LEARNING),
            make_card("r", CardStatus.REVIEW),
            make_card("m", CardStatus.MASTERED),
        ]
        cards[2].review_history = [
            ReviewRecord(timestamp=NOW - timedelta(days=2), rating=Rating.GOOD, time_taken=4),
            ReviewRecord(timestamp=NOW, rating=Rating.EASY, time_taken=6),
        ]

        stats = compute_deck_stats(cards)

        assert (stats.total, stats.new, stats.learning, stats.review, stats.mastered) == (
            4,
            1,
            1,
            1,
            1,
        )
        assert stats.mastery_rate == 0.5
        assert stats.total_reviews == 2
        assert stats.total_study_time == 10
        assert stats.last_study_time == NOW

    def test_empty_deck(self):
        """An empty deck has zero mastery."""
        stats = compute_deck_stats([])
        assert stats.total == 0 and stats.mastery_rate == 0.0

    def test_idempotent(self):
        """Recomputing gives the same result."""
        cards = [make_card("a", CardStatus.REVIEW), make_card("b")]
        assert compute_deck_stats(cards) == compute_deck_stats(cards)

    def test_sum_deck_stats(self):
        """Summed stats recompute mastery from the summed counts."""
        first = compute_deck_stats([make_card("a", CardStatus.REVIEW), make_card("b")])
        second = compute_deck_stats([make_card("c", CardStatus.MASTERED)])

        summed = sum_deck_stats([first, second])

        assert summed.total == 3
        assert summed.mastery_rate == pytest.approx(2 / 3)


class TestReviews:
    """Tests for applying reviews."""

    @pytest.mark.asyncio
    async def test_apply_review_persists(self, manager):
        """A review reschedules the card, records history and refreshes stats."""
        await create(manager, "d1", [make_card("c1"), make_card("c2")])

        card = await manager.apply_review("d1", "c1", Rating.GOOD, 3.5, now=NOW)

        assert card.learning.repetitions == 1
        assert card.learning.status == CardStatus.LEARNING
        assert card.learning.next_review == NOW + timedelta(days=1)
        assert len(card.review_history) == 1
        assert card.review_history[0].time_taken == 3.5

        bundle = await manager.get_deck("d1")
        stored = next(c for c in bundle.cards if c.id == "c1")
        assert stored.learning.repetitions == 1
        assert bundle.deck.stats.learning == 1
        assert bundle.deck.stats.new == 1
        assert bundle.deck.stats.total_reviews == 1
        assert bundle.deck.stats.last_study_time == NOW

    @pytest.mark.asyncio
    async def test_repeated_reviews_do_not_double_count(self, manager):
        """Stats always reflect the cards, however many reviews happen."""
        await create(manager, "d1", [make_card("c1")])

        for offset in range(3):
            await manager.apply_review("d1", "c1", 2, 1.0, now=NOW + timedelta(days=offset * 7))

        bundle = await manager.get_deck("d1")
        assert bundle.deck.stats == compute_deck_stats(bundle.cards)
        assert bundle.deck.stats.total == 1
        assert bundle.deck.stats.total_reviews == 3

    @pytest.mark.asyncio
    async def test_unknown_deck_or_card(self, manager):
        """Reviews against missing decks or cards raise."""
        await create(manager, "d1", [make_card("c1")])

        with pytest.raises(DeckNotFoundError):
            await manager.apply_review("ghost", "c1", Rating.GOOD, 1.0)
        with pytest.raises(CardNotFoundError):
            await manager.apply_review("d1", "ghost", Rating.GOOD, 1.0)


class TestStudySet:
    """Tests for study set selection."""

    @pytest.mark.asyncio
    async def test_due_and_new_cards(self, manager):
        """Due cards and new cards are combined without duplicates."""
        cards = [make_card(f"due{i}", CardStatus.REVIEW, due_in_days=-i - 1) for i in range(5)]
        cards += [make_card(f"new{i}") for i in range(3)]
        cards += [make_card("later", CardStatus.REVIEW, due_in_days=3)]
        await create(manager, "d1", cards)

        study = await manager.select_study_set("d1", now=NOW, rng=random.Random(7))

        ids = [card.id for card in study]
        assert len(ids) == 8
        assert len(set(ids)) == 8
        assert "later" not in ids

    @pytest.mark.asyncio
    async def test_limits_prefer_most_overdue(self, manager):
        """Review limit keeps the earliest due cards, new limit the first new cards."""
        cards = [make_card(f"due{i}", CardStatus.LEARNING, due_in_days=-i - 1) for i in range(5)]
        cards += [make_card(f"new{i}") for i in range(3)]
        await create(manager, "d1", cards)

        study = await manager.select_study_set(
            "d1", new_limit=1, review_limit=2, now=NOW, rng=random.Random(1)
        )

        assert {card.id for card in study} == {"due4", "due3", "new0"}

    @pytest.mark.asyncio
    async def test_limits_default_to_deck_settings(self, manager):
        """Without explicit limits the deck's settings apply."""
        cards = [make_card(f"new{i}") for i in range(5)]
        await create(manager, "d1", cards, settings=DeckSettings(new_cards_per_day=2))

        study = await manager.select_study_set("d1", now=NOW)

        assert len(study) == 2

    @pytest.mark.asyncio
    async def test_missing_deck_gives_empty_set(self, manager):
        """An unknown deck has nothing to study."""
        assert await manager.select_study_set("ghost") == []

    @pytest.mark.asyncio
    async def test_negative_limits_rejected(self, manager):
        """Negative limits are an error rather than a slice from the end."""
        await create(manager, "d", [make_card("n1"), make_card("n2")])

        with pytest.raises(ValueError):
            await manager.select_study_set("d", new_limit=-1)
        with pytest.raises(ValueError):
            await manager.select_study_set("d", review_limit=-1)


class TestMergeAndDelete:
    """Tests for merging and deleting decks."""

    @pytest.mark.asyncio
    async def test_merge_keeps_every_card(self, manager):
        """Merging concatenates cards, including duplicates, and removes the sources."""
        shared = make_card("same-a")
        twin = shared.model_copy(update={"id": "same-b"})
        await create(manager, "a", [shared, make_card("a1")], source_notes=["x.md", "y.md"])
        await create(manager, "b", [twin, make_card("b1")], source_notes=["y.md"])

        merged = await manager.merge_decks(["a", "b"], "Everything")

        assert merged.name == "Everything"
        assert merged.stats.total == 4
        assert merged.source_notes == ["x.md", "y.md"]
        assert merged.card_ids == ["same-a", "a1", "same-b", "b1"]

        bundle = await manager.get_deck(merged.id)
        assert len(bundle.cards) == 4
        assert bundle.cards[0].dedup_key == bundle.cards[2].dedup_key
        assert await manager.storage.load_deck("a") is None
        assert await manager.storage.load_deck("b") is None

    @pytest.mark.asyncio
    async def test_merge_skips_unloadable_decks(self, manager):
        """Missing and corrupt decks are skipped and left on disk; the rest merge."""
        await create(manager, "a", [make_card("a1")])
        await create(manager, "bad", [make_card("x")])
        manager.storage.deck_path("bad").write_text("{}")

        merged = await manager.merge_decks(["a", "bad", "ghost"], "Merged")

        assert merged.stats.total == 1
        assert manager.storage.deck_path("bad").exists()
        assert '"id": "x"' in manager.storage.cards_path("bad").read_text()
        assert await manager.storage.load_deck("a") is None

    @pytest.mark.asyncio
    async def test_merge_skips_undecodable_cards_file(self, manager):
        """A cards file with invalid bytes is skipped instead of aborting the merge."""
        await create(manager, "a", [make_card("a1")])
        await create(manager, "b", [make_card("b1")])
        manager.storage.cards_path("b").write_bytes(b"\xff\xfe not utf-8")

        merged = await manager.merge_decks(["a", "b"], "Merged")

        assert merged.card_ids == ["a1"]
        assert manager.storage.cards_path("b").exists()

    @pytest.mark.asyncio
    async def test_merge_nothing_loadable(self, manager):
        """Merging only missing decks raises."""
        with pytest.raises(NoDecksToMergeError):
            await manager.merge_decks(["ghost"], "Nothing")

    @pytest.mark.asyncio
    async def test_delete_and_list(self, manager):
        """Deleted decks disappear from listings and lookups."""
        await create(manager, "a", [make_card("a1")])
        await create(manager, "b", [])

        await manager.delete_deck("a")
        await manager.delete_deck("a")

        assert [deck.id for deck in await manager.list_decks()] == ["b"]
        with pytest.raises(DeckNotFoundError):
            await manager.get_deck("a")
