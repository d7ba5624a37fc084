"""
Item progress tracker.

Updates one item's attempt history, mastery level, streak and next review
time from an attempt outcome. This is a pure computation module with no I/O.
"""

from dataclasses import replace
from datetime import datetime, timedelta

from kioku.domain.constants import (
    FAMILIAR_BASE_HOURS,
    FAMILIAR_MIN_ACCURACY,
    FAMILIAR_MIN_ATTEMPTS,
    LEARNING_BASE_HOURS,
    MASTERED_BASE_HOURS,
    MASTERED_MIN_ACCURACY,
    MASTERED_MIN_ATTEMPTS,
    NEW_INTERVAL_HOURS,
)
from kioku.domain.progress.models import ItemProgress, MasteryLevel


def classify_mastery(total_attempts: int, correct_attempts: int) -> MasteryLevel:
    """
    Derive the mastery level from attempt counts.

    Rules are checked in order and the first match wins.
    """
    if total_attempts <= 0:
        return MasteryLevel.NEW

    accuracy = correct_attempts / total_attempts
    if total_attempts >= MASTERED_MIN_ATTEMPTS and accuracy >= MASTERED_MIN_ACCURACY:
        return MasteryLevel.MASTERED
    if total_attempts >= FAMILIAR_MIN_ATTEMPTS and accuracy >= FAMILIAR_MIN_ACCURACY:
        return MasteryLevel.FAMILIAR
    return MasteryLevel.LEARNING


def interval_hours(level: MasteryLevel, streak_count: int) -> int:
    """Hours until the next review for a mastery level and current streak."""
    if level == MasteryLevel.NEW:
        return NEW_INTERVAL_HOURS
    if level == MasteryLevel.LEARNING:
        return LEARNING_BASE_HOURS * (streak_count + 1)
    if level == MasteryLevel.FAMILIAR:
        return FAMILIAR_BASE_HOURS * (streak_count + 1)
    return MASTERED_BASE_HOURS * (streak_count + 1)


def record_attempt(
    current: ItemProgress | None,
    correct: bool,
    now: datetime,
    *,
    section_index: int | None = None,
    item_index: int | None = None,
) -> ItemProgress:
    """
    Apply one attempt to an item record and return the new record.

    Args:
        current: Existing record, or None for the item's first attempt.
        correct: Whether the attempt was answered correctly.
        now: Time of the attempt.
        section_index: Item key, required when ``current`` is None.
        item_index: Item key, required when ``current`` is None.

    Returns:
        A new ItemProgress; ``current`` is left untouched.
    """
    if current is None:
        if section_index is None or item_index is None:
            raise ValueError("section_index and item_index are required for a first attempt")
        current = ItemProgress(section_index=section_index, item_index=item_index)

    correct_attempts = current.correct_attempts + (1 if correct else 0)
    incorrect_attempts = current.incorrect_attempts + (0 if correct else 1)
    total_attempts = current.total_attempts + 1

    streak = current.streak_count + 1 if correct else 0
    best_streak = max(current.best_streak, streak)

    level = classify_mastery(total_attempts, correct_attempts)
    next_review = now + timedelta(hours=interval_hours(level, streak))

    return replace(
        current,
        correct_attempts=correct_attempts,
        incorrect_attempts=incorrect_attempts,
        total_attempts=total_attempts,
        mastery_level=level,
        last_attempt_at=now,
        last_correct_at=now if correct else current.last_correct_at,
        next_review_at=next_review,
        streak_count=streak,
        best_streak=best_streak,
    )


def is_mastered(item: ItemProgress) -> bool:
    """Display badge predicate (3+ attempts, 80%+ accuracy)."""
    return item.is_mastered
