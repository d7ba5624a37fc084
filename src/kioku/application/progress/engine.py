"""
Progress engine: pure transforms over a VocabularyProgress aggregate.

Each method takes an aggregate and returns a new one. Nothing here performs
I/O, so a conflicting save is retried simply by re-running the transform
against a freshly loaded aggregate.
"""

from dataclasses import replace
from datetime import datetime

from ulid import ULID

from kioku.domain.progress.models import (
    AttemptResult,
    ItemKey,
    VocabularyProgress,
)

from .aggregator import DeckProgressAggregator, SectionAggregator
from .tracker import record_attempt


def generate_progress_id() -> str:
    """Generate a stable aggregate ID using ULID."""
    return f"progress_{ULID()}"


def new_progress(user_id: str, deck_id: str, now: datetime) -> VocabularyProgress:
    """An empty, never-persisted aggregate."""
    return VocabularyProgress(
        user_id=user_id,
        deck_id=deck_id,
        id=generate_progress_id(),
        created_at=now,
        updated_at=now,
    )


class ProgressEngine:
    """Composes the tracker and aggregators into aggregate-level transforms."""

    def __init__(
        self,
        sections: SectionAggregator | None = None,
        deck: DeckProgressAggregator | None = None,
    ):
        self.sections = sections or SectionAggregator()
        self.deck = deck or DeckProgressAggregator()

    def apply_attempt(
        self,
        progress: VocabularyProgress,
        section_index: int,
        item_index: int,
        correct: bool,
        section_total_items: int,
        now: datetime,
    ) -> AttemptResult:
        """
        Record one attempt and recompute the touched section and deck stats.

        Args:
            progress: Current aggregate (left untouched).
            section_index: Section of the attempted item.
            item_index: Item inside the section.
            correct: Attempt outcome.
            section_total_items: Number of items in the section, from deck content.
            now: Time of the attempt.
        """
        key = ItemKey(section_index, item_index)
        item = record_attempt(
            progress.item_progress.get(key),
            correct,
            now,
            section_index=section_index,
            item_index=item_index,
        )

        items = dict(progress.item_progress)
        items[key] = item

        section = self.sections.summarize(section_index, section_total_items, items.values())
        sections = dict(progress.section_progress)
        sections[section_index] = section

        stats = self.deck.aggregate(items.values(), previous=progress.overall_stats)

        updated = replace(
            progress,
            item_progress=items,
            section_progress=sections,
            overall_stats=stats,
            last_studied_at=now,
            updated_at=now,
        )
        return AttemptResult(item=item, section=section, stats=stats, progress=updated)

    def complete_session(
        self,
        progress: VocabularyProgress,
        study_minutes: int,
        now: datetime,
    ) -> VocabularyProgress:
        """Count a finished practice session and evaluate the study streak."""
        if study_minutes < 0:
            raise ValueError("study_minutes must not be negative")

        streak, longest, streak_date = self.deck.update_study_streak(progress, now)
        stats = replace(
            progress.overall_stats,
            total_study_time_minutes=progress.overall_stats.total_study_time_minutes
            + study_minutes,
            sessions_completed=progress.overall_stats.sessions_completed + 1,
        )
        return replace(
            progress,
            overall_stats=stats,
            study_streak=streak,
            longest_streak=longest,
            last_streak_date=streak_date,
            last_studied_at=now,
            updated_at=now,
        )

    def reset_section(
        self,
        progress: VocabularyProgress,
        section_index: int,
        now: datetime,
    ) -> VocabularyProgress:
        """Drop every item record of a section and recompute deck stats."""
        items = {
            k: v for k, v in progress.item_progress.items() if k.section_index != section_index
        }
        sections = {k: v for k, v in progress.section_progress.items() if k != section_index}
        return replace(
            progress,
            item_progress=items,
            section_progress=sections,
            overall_stats=self.deck.aggregate(items.values(), previous=progress.overall_stats),
            updated_at=now,
        )

    def reset_deck(self, progress: VocabularyProgress, now: datetime) -> VocabularyProgress:
        """
        Clear all item progress. Session counters and the study streak are kept;
        the aggregate itself stays in the store.
        """
        return replace(
            progress,
            item_progress={},
            section_progress={},
            overall_stats=self.deck.aggregate([], previous=progress.overall_stats),
            updated_at=now,
        )
