"""
SM-2 (SuperMemo 2) spaced-repetition scheduling.

All functions are pure: the only time dependency is the ``now`` argument.
"""

import math
from datetime import datetime, timedelta
from typing import NamedTuple, Union

from ..models import CardStatus, LearningState, Rating

MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 2.5
INITIAL_EASE_FACTOR = 2.5
MASTERED_INTERVAL_DAYS = 21

RatingLike = Union[Rating, int]


class SM2Result(NamedTuple):
    """New scheduling parameters after a review."""

    ease_factor: float
    interval: int
    repetitions: int


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def clamp_ease_factor(ease_factor: float) -> float:
    return max(MIN_EASE_FACTOR, min(MAX_EASE_FACTOR, ease_factor))


def calculate_next_review(
    ease_factor: float,
    repetitions: int,
    interval: int,
    rating: RatingLike,
) -> SM2Result:
    """
    Compute the next ease factor, interval and repetition count.

    Args:
        ease_factor: Current ease factor
        repetitions: Current consecutive-correct count
        interval: Current interval in days
        rating: 0=forgot, 1=hard, 2=good, 3=easy

    Returns:
        SM2Result with the new parameters
    """
    rating = Rating(rating)

    if rating >= Rating.GOOD:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = _round_half_up(interval * ease_factor)

        # Good leaves the ease unchanged, easy raises it by 0.1
        distance = 3 - rating
        new_ease = ease_factor + (0.1 - distance * (0.08 + distance * 0.02))
    else:
        new_repetitions = 0
        new_interval = 1
        penalty = 0.15 if rating == Rating.HARD else 0.2
        new_ease = max(MIN_EASE_FACTOR, ease_factor - penalty)

    return SM2Result(
        ease_factor=clamp_ease_factor(new_ease),
        interval=new_interval,
        repetitions=new_repetitions,
    )


def calculate_next_review_time(interval_days: int, now: datetime) -> datetime:
    """Timestamp at which a card with this interval is next due."""
    return now + timedelta(days=interval_days)


def is_due(next_review: datetime, now: datetime) -> bool:
    return now >= next_review


def determine_card_status(repetitions: int, interval: int) -> CardStatus:
    """Derive the learning status from the scheduling state."""
    if repetitions == 0 and interval == 0:
        return CardStatus.NEW
    if repetitions < 3:
        return CardStatus.LEARNING
    if interval < MASTERED_INTERVAL_DAYS:
        return CardStatus.REVIEW
    return CardStatus.MASTERED


def initialize_learning_state(now: datetime) -> LearningState:
    """State of a freshly created card: due immediately."""
    return LearningState(
        ease_factor=INITIAL_EASE_FACTOR,
        interval=0,
        repetitions=0,
        next_review=now,
        status=CardStatus.NEW,
    )


def review_learning_state(state: LearningState, rating: RatingLike, now: datetime) -> LearningState:
    """
    Apply a review rating to a learning state.

    Returns a new state; ``state`` is not modified.
    """
    result = calculate_next_review(state.ease_factor, state.repetitions, state.interval, rating)
    return LearningState(
        ease_factor=result.ease_factor,
        interval=result.interval,
        repetitions=result.repetitions,
        next_review=calculate_next_review_time(result.interval, now),
        last_review=now,
        status=determine_card_status(result.repetitions, result.interval),
    )
