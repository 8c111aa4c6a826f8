"""JSON file storage for decks and their cards."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .exceptions import DeckLoadError
from .models import Card, Deck, DeckBundle

logger = logging.getLogger(__name__)


class DeckStorage:
    """
    Persist each deck as two files in one directory.

    ``deck_<id>.json`` holds the deck record (settings, stats, card ids) and
    ``deck_<id>_cards.json`` holds the cards with their learning state and
    review history. Each operation loads or writes a whole deck.
    """

    DECK_PREFIX = "deck_"
    CARDS_SUFFIX = "_cards"

    def __init__(self, deck_dir: Path):
        """
        Initialize storage.

        Args:
            deck_dir: Directory holding the deck files
        """
        self.deck_dir = Path(deck_dir)

    def deck_path(self, deck_id: str) -> Path:
        return self.deck_dir / f"{self.DECK_PREFIX}{deck_id}.json"

    def cards_path(self, deck_id: str) -> Path:
        return self.deck_dir / f"{self.DECK_PREFIX}{deck_id}{self.CARDS_SUFFIX}.json"

    async def load_all_decks(self) -> list[Deck]:
        """Load every readable deck record. Unreadable ones are logged and skipped."""
        return await asyncio.to_thread(self._load_all_decks)

    async def load_deck(self, deck_id: str) -> Optional[DeckBundle]:
        """
        Load a deck and its cards.

        Returns:
            DeckBundle, or None if either file is missing

        Raises:
            DeckLoadError: If the deck record is unreadable or lacks id/name
        """
        return await asyncio.to_thread(self._load_deck, deck_id)

    async def save_deck(self, deck: Deck, cards: list[Card]) -> None:
        """Write a deck and its cards, syncing the deck's card ids with ``cards``."""
        await asyncio.to_thread(self._save_deck, deck, cards)

    async def delete_deck(self, deck_id: str) -> bool:
        """
        Delete both files of a deck. Missing files are not an error.

        Returns:
            True if anything was deleted
        """
        return await asyncio.to_thread(self._delete_deck, deck_id)

    def _load_all_decks(self) -> list[Deck]:
        if not self.deck_dir.exists():
            return []

        decks: list[Deck] = []
        for path in sorted(self.deck_dir.glob(f"{self.DECK_PREFIX}*.json")):
            if path.stem.endswith(self.CARDS_SUFFIX):
                continue
            try:
                decks.append(self._read_deck_record(path))
            except DeckLoadError as e:
                logger.error("Failed to load deck %s: %s", path, e)
        return decks

    def _load_deck(self, deck_id: str) -> Optional[DeckBundle]:
        deck_path = self.deck_path(deck_id)
        cards_path = self.cards_path(deck_id)
        if not deck_path.exists() or not cards_path.exists():
            return None

        deck = self._read_deck_record(deck_path)

        try:
            raw_cards = json.loads(cards_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DeckLoadError(f"Unreadable cards file {cards_path}: {e}") from e
        if not isinstance(raw_cards, list):
            raise DeckLoadError(f"Cards file {cards_path} does not contain a list")

        cards: list[Card] = []
        for raw in raw_cards:
            try:
                cards.append(Card.model_validate(raw))
            except ValidationError as e:
                card_id = raw.get("id") if isinstance(raw, dict) else None
                logger.warning("Skipping invalid card %s in deck %s: %s", card_id, deck_id, e)

        # The card list on disk is authoritative
        if deck.card_ids != [card.id for card in cards]:
            logger.info("Repairing card ids of deck %s", deck_id)
            deck.card_ids = [card.id for card in cards]

        return DeckBundle(deck=deck, cards=cards)

    def _read_deck_record(self, path: Path) -> Deck:
        try:
            return Deck.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise DeckLoadError(f"Unreadable deck file {path}: {e}") from e
        except ValidationError as e:
            raise DeckLoadError(f"Invalid deck data in {path}: {e}") from e

    def _save_deck(self, deck: Deck, cards: list[Card]) -> None:
        self.deck_dir.mkdir(parents=True, exist_ok=True)
        deck.card_ids = [card.id for card in cards]

        cards_json = json.dumps(
            [card.model_dump(mode="json") for card in cards], indent=2, ensure_ascii=False
        )
        self.cards_path(deck.id).write_text(cards_json, encoding="utf-8")
        self.deck_path(deck.id).write_text(deck.model_dump_json(indent=2), encoding="utf-8")

    def _delete_deck(self, deck_id: str) -> bool:
        deleted = False
        for path in (self.deck_path(deck_id), self.cards_path(deck_id)):
            if path.exists():
                path.unlink()
                deleted = True
        return deleted
