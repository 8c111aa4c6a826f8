"""Validate AI responses into generated cards."""

import json
import re
from dataclasses import dataclass, field
from typing import Union

from pydantic import ValidationError

from ..models import GeneratedCard

FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
RAW_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass
class ParsedCards:
    """A response that matched the expected shape."""

    cards: list[GeneratedCard] = field(default_factory=list)


@dataclass
class ParseFailure:
    """A response that did not match the expected shape."""

    reason: str
    raw: str = ""


ParseResult = Union[ParsedCards, ParseFailure]


def extract_json(response_text: str) -> str | None:
    """Pull the JSON payload out of a response, handling markdown code blocks."""
    fenced = FENCED_JSON.search(response_text)
    if fenced:
        return fenced.group(1)
    raw = RAW_OBJECT.search(response_text)
    if raw:
        return raw.group(0)
    return None


def parse_flashcard_response(response_text: str) -> ParseResult:
    """
    Parse a ``{"cards": [...]}`` response.

    Missing tags or sourceSection are repaired with defaults. A missing cards
    array or a card without question/answer makes the whole response invalid.

    Returns:
        ParsedCards on success, ParseFailure describing the problem otherwise
    """
    payload = extract_json(response_text or "")
    if payload is None:
        return ParseFailure("no JSON object found in response", raw=response_text)

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        return ParseFailure(f"invalid JSON: {e}", raw=response_text)

    if not isinstance(data, dict) or not isinstance(data.get("cards"), list):
        return ParseFailure("response is missing the cards array", raw=response_text)

    cards: list[GeneratedCard] = []
    for position, raw_card in enumerate(data["cards"], start=1):
        if not isinstance(raw_card, dict):
            return ParseFailure(f"card {position} is not an object", raw=response_text)
        try:
            cards.append(GeneratedCard.model_validate(raw_card))
        except ValidationError:
            return ParseFailure(f"card {position} is missing question or answer", raw=response_text)

    return ParsedCards(cards=cards)
