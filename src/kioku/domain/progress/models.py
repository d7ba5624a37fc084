"""
Domain models for vocabulary progress.

These are pure data structures with no I/O or external dependencies.
Records are immutable; every update produces a new instance.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import NamedTuple

from kioku.domain.constants import BADGE_MIN_ACCURACY, BADGE_MIN_ATTEMPTS


class MasteryLevel(IntEnum):
    """
    Learned state of a vocabulary item, ordered NEW < LEARNING < FAMILIAR < MASTERED.
    """

    NEW = 0  # Never practiced
    LEARNING = 1  # At least one attempt
    FAMILIAR = 2  # 3+ attempts, 70%+ accuracy
    MASTERED = 3  # 5+ attempts, 90%+ accuracy


class ItemKey(NamedTuple):
    """Identifies a vocabulary item inside a deck."""

    section_index: int
    item_index: int


class DueItem(NamedTuple):
    """An item due for review, located across all of a learner's decks."""

    deck_id: str
    section_index: int
    item_index: int
    next_review_at: datetime


@dataclass(frozen=True)
class ItemProgress:
    """
    Progress for a single vocabulary item.

    Attributes:
        section_index: Section the item belongs to.
        item_index: Position of the item inside its section.
        correct_attempts: Number of correct answers.
        incorrect_attempts: Number of incorrect answers.
        total_attempts: Always correct_attempts + incorrect_attempts.
        mastery_level: Derived from (total_attempts, correct_attempts).
        last_attempt_at: Time of the most recent attempt.
        last_correct_at: Time of the most recent correct attempt.
        next_review_at: Time after which the item is due; None until first attempt.
        streak_count: Consecutive correct answers.
        best_streak: Highest streak_count ever observed.
    """

    section_index: int
    item_index: int
    correct_attempts: int = 0
    incorrect_attempts: int = 0
    total_attempts: int = 0
    mastery_level: MasteryLevel = MasteryLevel.NEW
    last_attempt_at: datetime | None = None
    last_correct_at: datetime | None = None
    next_review_at: datetime | None = None
    streak_count: int = 0
    best_streak: int = 0

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.section_index, self.item_index)

    @property
    def accuracy(self) -> float:
        """Ratio of correct attempts (0.0-1.0)."""
        if self.total_attempts == 0:
            return 0.0
        return self.correct_attempts / self.total_attempts

    @property
    def accuracy_percentage(self) -> float:
        return self.accuracy * 100

    @property
    def is_mastered(self) -> bool:
        """
        Display badge predicate: at least 3 attempts with 80%+ accuracy.

        Not the same bar as ``mastery_level == MasteryLevel.MASTERED``,
        which drives scheduling and completion.
        """
        return self.total_attempts >= BADGE_MIN_ATTEMPTS and self.accuracy >= BADGE_MIN_ACCURACY


@dataclass(frozen=True)
class SectionProgressSummary:
    """Summary of a learner's progress within one deck section."""

    section_index: int
    total_items: int
    practiced_items: int = 0
    mastered_items: int = 0
    average_accuracy: float = 0.0  # Mean of per-item accuracy (0.0-1.0)
    last_studied_at: datetime | None = None

    @property
    def completion_percentage(self) -> float:
        if self.total_items == 0:
            return 0.0
        return self.mastered_items / self.total_items * 100


@dataclass(frozen=True)
class ProgressStats:
    """Deck-wide statistics derived from all item records."""

    total_items_practiced: int = 0
    total_correct_attempts: int = 0
    total_incorrect_attempts: int = 0
    total_attempts: int = 0
    items_mastered: int = 0
    items_learning: int = 0
    average_accuracy: float = 0.0  # total_correct / total_attempts (0.0-1.0)
    total_study_time_minutes: int = 0
    sessions_completed: int = 0


@dataclass(frozen=True)
class VocabularyProgress:
    """
    Aggregate root: one learner's progress on one deck.

    Item and section records only exist inside their owning aggregate.
    ``version`` is the optimistic-concurrency token managed by the store;
    0 means the aggregate has never been persisted.
    """

    user_id: str
    deck_id: str
    id: str | None = None
    item_progress: dict[ItemKey, ItemProgress] = field(default_factory=dict)
    section_progress: dict[int, SectionProgressSummary] = field(default_factory=dict)
    overall_stats: ProgressStats = field(default_factory=ProgressStats)
    last_studied_at: datetime | None = None
    study_streak: int = 0  # Consecutive days studied
    longest_streak: int = 0
    last_streak_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int = 0

    def get_item(self, section_index: int, item_index: int) -> ItemProgress | None:
        return self.item_progress.get(ItemKey(section_index, item_index))

    def has_item_been_practiced(self, section_index: int, item_index: int) -> bool:
        return ItemKey(section_index, item_index) in self.item_progress

    def items_in_section(self, section_index: int) -> list[ItemProgress]:
        return [p for k, p in self.item_progress.items() if k.section_index == section_index]


@dataclass(frozen=True)
class SubmitAttempt:
    """
    A single practice attempt submitted by a caller.

    When ``correct`` is None the outcome is derived from ``answer`` (a typed
    fill-in answer compared with the item's expected answer), or failing
    that from ``score`` (a 0-100 evaluation result).
    """

    user_id: str
    deck_id: str
    section_index: int
    item_index: int
    correct: bool | None
    occurred_at: datetime | None = None
    score: float | None = None
    answer: str | None = None


@dataclass(frozen=True)
class AttemptResult:
    """Everything touched by one attempt, returned together."""

    item: ItemProgress
    section: SectionProgressSummary
    stats: ProgressStats
    progress: VocabularyProgress


@dataclass(frozen=True)
class UserVocabularyStats:
    """Statistics for one learner across every deck they studied."""

    user_id: str
    total_decks_studied: int = 0
    total_items_practiced: int = 0
    total_items_mastered: int = 0
    overall_accuracy: float = 0.0
    current_streak: int = 0
    longest_streak: int = 0
    total_study_time_minutes: int = 0
    items_to_review: int = 0
