"""Flashcard generation."""

from .card_generator import FlashcardGenerator, LearningPathGeneration
from .client import AnthropicTextGenerator, TextGenerator
from .pipeline import ChunkedGenerationPipeline
from .response_parser import ParsedCards, ParseFailure, parse_flashcard_response

__all__ = [
    "AnthropicTextGenerator",
    "ChunkedGenerationPipeline",
    "FlashcardGenerator",
    "LearningPathGeneration",
    "ParseFailure",
    "ParsedCards",
    "TextGenerator",
    "parse_flashcard_response",
]
