"""Spaced-repetition scheduling."""

from .sm2 import (
    SM2Result,
    calculate_next_review,
    calculate_next_review_time,
    determine_card_status,
    initialize_learning_state,
    is_due,
    review_learning_state,
)

__all__ = [
    "SM2Result",
    "calculate_next_review",
    "calculate_next_review_time",
    "determine_card_status",
    "initialize_learning_state",
    "is_due",
    "review_learning_state",
]
