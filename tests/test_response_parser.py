"""Tests for AI response validation."""

import json

from note_flashcards.generator import ParsedCards, ParseFailure, parse_flashcard_response
from note_flashcards.generator.response_parser import extract_json


def test_extract_json_from_code_block():
    """Fenced JSON blocks take precedence."""
    text = 'Sure!\n```json\n{"cards": []}\n```\nEnjoy.'
    assert extract_json(text) == '{"cards": []}'


def test_extract_raw_json():
    """A bare JSON object is found inside prose."""
    text = 'Result: {"cards": [{"question": "Q", "answer": "A"}]} done'
    assert json.loads(extract_json(text))["cards"][0]["question"] == "Q"


def test_parse_valid_response():
    """Well-formed cards are parsed with their optional fields."""
    response = json.dumps(
        {
            "cards": [
                {
                    "question": "What is ATP?",
                    "answer": "The cell's energy currency",
                    "sourceSection": "Energy",
                    "tags": ["biology"],
                }
            ]
        }
    )

    result = parse_flashcard_response(response)

    assert isinstance(result, ParsedCards)
    [card] = result.cards
    assert card.question == "What is ATP?"
    assert card.source_section == "Energy"
    assert card.tags == ["biology"]


def test_optional_fields_are_repaired():
    """Missing or malformed tags and section get defaults."""
    response = json.dumps(
        {
            "cards": [
                {"question": " Q1 ", "answer": " A1 "},
                {"question": "Q2", "answer": "A2", "tags": "oops", "sourceSection": "  "},
            ]
        }
    )

    result = parse_flashcard_response(response)

    assert isinstance(result, ParsedCards)
    first, second = result.cards
    assert (first.question, first.answer) == ("Q1", "A1")
    assert first.tags == [] and first.source_section is None
    assert second.tags == [] and second.source_section is None


def test_missing_cards_array_is_failure():
    """A response without a cards list is rejected."""
    for response in ['{"flashcards": []}', '{"cards": "none"}']:
        result = parse_flashcard_response(response)
        assert isinstance(result, ParseFailure)
        assert "cards" in result.reason


def test_card_missing_answer_is_failure():
    """One card without its answer invalidates the whole response."""
    response = json.dumps({"cards": [{"question": "Q1", "answer": "A1"}, {"question": "Q2"}]})

    result = parse_flashcard_response(response)

    assert isinstance(result, ParseFailure)
    assert "card 2" in result.reason


def test_non_object_card_is_failure():
    """Cards must be objects."""
    assert isinstance(parse_flashcard_response('{"cards": ["just text"]}'), ParseFailure)


def test_no_json_or_invalid_json():
    """Prose and broken JSON are failures that keep the raw text."""
    prose = parse_flashcard_response("I cannot help with that.")
    assert isinstance(prose, ParseFailure)
    assert prose.raw == "I cannot help with that."

    broken = parse_flashcard_response('{"cards": [}')
    assert isinstance(broken, ParseFailure)
    assert broken.reason.startswith("invalid JSON")
