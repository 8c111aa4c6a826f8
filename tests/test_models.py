"""Tests for data models."""

import json

import pytest
from pydantic import ValidationError

from note_flashcards.models import (
    Card,
    CardStatus,
    Deck,
    FlashcardConfig,
    GeneratedCard,
    LearningState,
    Rating,
    generate_id,
)


def test_card_defaults():
    """A new card starts unreviewed and due."""
    card = Card(id="c1", question="What is osmosis?", answer="Diffusion of water")

    assert card.learning.status == CardStatus.NEW
    assert card.learning.ease_factor == 2.5
    assert card.review_history == []
    assert card.created_at.tzinfo is not None
    assert card.get_display_text() == "Q: What is osmosis?\nA: Diffusion of water"
    assert card.dedup_key == ("What is osmosis?", "Diffusion of water")


def test_card_requires_question_and_answer():
    """Blank questions or answers are rejected."""
    with pytest.raises(ValidationError):
        Card(id="c1", question="  ", answer="A")
    with pytest.raises(ValidationError):
        Card(id="c1", question="Q", answer="")


def test_learning_state_ease_bounds():
    """Ease factor must stay within SM-2 bounds."""
    with pytest.raises(ValidationError):
        LearningState(ease_factor=1.2)
    with pytest.raises(ValidationError):
        LearningState(ease_factor=2.6)


def test_deck_requires_id_and_name():
    """Decks without identity are invalid."""
    with pytest.raises(ValidationError):
        Deck(id="", name="D")
    with pytest.raises(ValidationError):
        Deck(id="d", name="")


def test_card_json_round_trip():
    """Cards survive serialization with their learning state."""
    card = Card(id="c1", question="Q", answer="A", tags=["bio"])

    restored = Card.model_validate(json.loads(card.model_dump_json()))

    assert restored == card


def test_generated_card_accepts_camel_case_section():
    """AI output uses sourceSection."""
    card = GeneratedCard.model_validate({"question": "Q", "answer": "A", "sourceSection": "S"})
    assert card.source_section == "S"


def test_rating_values():
    """Ratings map to the 0-3 scale."""
    assert [int(r) for r in Rating] == [0, 1, 2, 3]


def test_generate_id_unique():
    """Generated ids are short and distinct."""
    ids = {generate_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(i) == 12 for i in ids)


def test_config_defaults_and_load(tmp_path):
    """Configuration loads from JSON, keeping defaults for missing keys."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"max_chunk_size": 800, "new_cards_per_day": 7}))

    config = FlashcardConfig.load(path)

    assert config.max_chunk_size == 800
    assert config.chunk_concurrency == 5
    assert config.deck_settings().new_cards_per_day == 7
    assert config.deck_settings().review_cards_per_day == 200


def test_config_rejects_invalid_values():
    """Out-of-range settings fail validation."""
    with pytest.raises(ValidationError):
        FlashcardConfig(chunk_concurrency=0)
