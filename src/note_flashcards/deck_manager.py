"""Deck and card lifecycle: reviews, statistics, study sets, merging and deletion."""

import asyncio
import logging
import random
from datetime import datetime
from typing import Optional

from .exceptions import CardNotFoundError, DeckLoadError, DeckNotFoundError, NoDecksToMergeError
from .models import (
    Card,
    CardStatus,
    Deck,
    DeckBundle,
    DeckStats,
    FlashcardConfig,
    Rating,
    ReviewRecord,
    generate_id,
    utc_now,
)
from .scheduler import review_learning_state
from .storage import DeckStorage

logger = logging.getLogger(__name__)


def compute_deck_stats(cards: list[Card]) -> DeckStats:
    """
    Aggregate statistics over a deck's cards.

    Depends only on the cards' state, so repeated calls give identical results.
    """
    counts = {status: 0 for status in CardStatus}
    total_reviews = 0
    total_study_time = 0.0
    last_study_time: Optional[datetime] = None

    for card in cards:
        counts[card.learning.status] += 1
        total_reviews += len(card.review_history)
        for record in card.review_history:
            total_study_time += record.time_taken
            if last_study_time is None or record.timestamp > last_study_time:
                last_study_time = record.timestamp

    total = len(cards)
    mastered_or_review = counts[CardStatus.REVIEW] + counts[CardStatus.MASTERED]
    return DeckStats(
        total=total,
        new=counts[CardStatus.NEW],
        learning=counts[CardStatus.LEARNING],
        review=counts[CardStatus.REVIEW],
        mastered=counts[CardStatus.MASTERED],
        mastery_rate=mastered_or_review / total if total else 0.0,
        total_study_time=total_study_time,
        total_reviews=total_reviews,
        last_study_time=last_study_time,
    )


def sum_deck_stats(stats: list[DeckStats]) -> DeckStats:
    """Add stats together, recomputing mastery rate from the summed counts."""
    summed = DeckStats()
    for item in stats:
        summed.total += item.total
        summed.new += item.new
        summed.learning += item.learning
        summed.review += item.review
        summed.mastered += item.mastered
        summed.total_study_time += item.total_study_time
        summed.total_reviews += item.total_reviews
        if item.last_study_time is not None and (
            summed.last_study_time is None or item.last_study_time > summed.last_study_time
        ):
            summed.last_study_time = item.last_study_time

    if summed.total:
        summed.mastery_rate = (summed.review + summed.mastered) / summed.total
    return summed


class DeckManager:
    """
    Owns decks and their cards.

    Every operation loads the whole deck, changes it in memory and saves it
    back. Concurrent writers to the same deck are not coordinated; the last
    save wins.
    """

    def __init__(self, storage: DeckStorage, config: Optional[FlashcardConfig] = None):
        self.storage = storage
        self.config = config or FlashcardConfig()

    async def list_decks(self) -> list[Deck]:
        return await self.storage.load_all_decks()

    async def get_deck(self, deck_id: str) -> DeckBundle:
        """
        Load a deck with its cards.

        Raises:
            DeckNotFoundError: If the deck does not exist
        """
        bundle = await self.storage.load_deck(deck_id)
        if bundle is None:
            raise DeckNotFoundError(deck_id)
        return bundle

    async def create_deck(self, bundle: DeckBundle) -> Deck:
        """Persist a newly generated deck."""
        deck = bundle.deck
        deck.card_ids = [card.id for card in bundle.cards]
        deck.stats = compute_deck_stats(bundle.cards)
        await self.storage.save_deck(deck, bundle.cards)
        logger.info("Created deck %s (%s) with %d cards", deck.id, deck.name, len(bundle.cards))
        return deck

    async def apply_review(
        self,
        deck_id: str,
        card_id: str,
        rating: Rating | int,
        time_taken: float,
        now: Optional[datetime] = None,
    ) -> Card:
        """
        Record a review and reschedule the card.

        Args:
            deck_id: Deck containing the card
            card_id: Reviewed card
            rating: 0=forgot, 1=hard, 2=good, 3=easy
            time_taken: Seconds spent on the card
            now: Review time (defaults to the current time)

        Returns:
            The updated card

        Raises:
            DeckNotFoundError: If the deck does not exist
            CardNotFoundError: If the deck has no such card
        """
        now = now or utc_now()
        rating = Rating(rating)
        bundle = await self.get_deck(deck_id)

        card = next((c for c in bundle.cards if c.id == card_id), None)
        if card is None:
            raise CardNotFoundError(deck_id, card_id)

        card.learning = review_learning_state(card.learning, rating, now)
        card.review_history.append(ReviewRecord(timestamp=now, rating=rating, time_taken=time_taken))
        card.updated_at = now

        deck = bundle.deck
        deck.stats = compute_deck_stats(bundle.cards)
        deck.updated_at = now
        await self.storage.save_deck(deck, bundle.cards)

        logger.debug(
            "Reviewed card %s in deck %s: rating=%d interval=%d status=%s",
            card_id,
            deck_id,
            rating,
            card.learning.interval,
            card.learning.status.value,
        )
        return card

    async def select_study_set(
        self,
        deck_id: str,
        new_limit: Optional[int] = None,
        review_limit: Optional[int] = None,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
    ) -> list[Card]:
        """
        Pick the cards for one study session.

        Due review cards (earliest due first, capped at ``review_limit``) are
        combined with new cards (stored order, capped at ``new_limit``) and
        shuffled. Limits default to the deck's settings.

        Returns:
            Cards to study, or an empty list if the deck does not exist

        Raises:
            ValueError: If a limit is negative
        """
        for limit in (new_limit, review_limit):
            if limit is not None and limit < 0:
                raise ValueError(f"Study limits must not be negative, got {limit}")

        bundle = await self.storage.load_deck(deck_id)
        if bundle is None:
            logger.warning("Cannot build study set, deck %s not found", deck_id)
            return []

        now = now or utc_now()
        settings = bundle.deck.settings
        if new_limit is None:
            new_limit = settings.new_cards_per_day
        if review_limit is None:
            review_limit = settings.review_cards_per_day

        due = sorted(
            (
                c
                for c in bundle.cards
                if c.learning.status != CardStatus.NEW and c.learning.next_review <= now
            ),
            key=lambda c: c.learning.next_review,
        )[:review_limit]
        new = [c for c in bundle.cards if c.learning.status == CardStatus.NEW][:new_limit]

        study_set = due + new
        (rng or random).shuffle(study_set)
        return study_set

    async def merge_decks(self, deck_ids: list[str], new_name: str) -> Deck:
        """
        Merge decks into a new one and delete the originals that were merged.

        Cards are carried over verbatim; duplicates across decks are kept.
        Decks that cannot be loaded are skipped and left on disk.

        Raises:
            NoDecksToMergeError: If none of the decks can be loaded
        """
        loaded = await asyncio.gather(*(self._load_for_merge(deck_id) for deck_id in deck_ids))
        bundles = [bundle for bundle in loaded if bundle is not None]
        if not bundles:
            raise NoDecksToMergeError("No valid decks to merge")

        cards: list[Card] = []
        source_notes: list[str] = []
        for bundle in bundles:
            cards.extend(bundle.cards)
            for note in bundle.deck.source_notes:
                if note not in source_notes:
                    source_notes.append(note)

        now = utc_now()
        deck = Deck(
            id=generate_id(),
            name=new_name,
            source_notes=source_notes,
            card_ids=[card.id for card in cards],
            created_at=now,
            updated_at=now,
            settings=self.config.deck_settings(),
            stats=sum_deck_stats([bundle.deck.stats for bundle in bundles]),
        )
        await self.storage.save_deck(deck, cards)
        # Decks that could not be loaded keep their files
        merged_ids = [deck_id for deck_id, bundle in zip(deck_ids, loaded) if bundle is not None]
        await asyncio.gather(*(self.storage.delete_deck(deck_id) for deck_id in merged_ids))

        logger.info("Merged %d deck(s) into %s (%d cards)", len(bundles), deck.id, len(cards))
        return deck

    async def delete_deck(self, deck_id: str) -> None:
        """Delete a deck and all its cards."""
        if not await self.storage.delete_deck(deck_id):
            logger.info("Deck %s had nothing to delete", deck_id)

    async def _load_for_merge(self, deck_id: str) -> Optional[DeckBundle]:
        try:
            bundle = await self.storage.load_deck(deck_id)
        except DeckLoadError as e:
            logger.error("Skipping deck %s in merge: %s", deck_id, e)
            return None
        if bundle is None:
            logger.warning("Skipping missing deck %s in merge", deck_id)
        return bundle
