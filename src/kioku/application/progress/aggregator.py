"""
Section and deck level aggregation of item progress.

This is a pure computation module with no I/O. Summaries are always
recomputed from item records, never patched incrementally.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from kioku.domain.progress.models import (
    ItemProgress,
    MasteryLevel,
    ProgressStats,
    SectionProgressSummary,
    VocabularyProgress,
)


class SectionAggregator:
    """Builds a SectionProgressSummary from the items of one section."""

    def summarize(
        self,
        section_index: int,
        total_items: int,
        items: Iterable[ItemProgress],
    ) -> SectionProgressSummary:
        """
        Summarize a section.

        ``average_accuracy`` is the mean of per-item accuracy over practiced
        items only. Items belonging to other sections are ignored.
        """
        section_items = [i for i in items if i.section_index == section_index]
        practiced = [i for i in section_items if i.total_attempts > 0]
        mastered = sum(1 for i in section_items if i.mastery_level == MasteryLevel.MASTERED)

        average = sum(i.accuracy for i in practiced) / len(practiced) if practiced else 0.0

        attempt_times = [i.last_attempt_at for i in section_items if i.last_attempt_at]
        last_studied = max(attempt_times) if attempt_times else None

        return SectionProgressSummary(
            section_index=section_index,
            total_items=total_items,
            practiced_items=len(practiced),
            mastered_items=mastered,
            average_accuracy=average,
            last_studied_at=last_studied,
        )


class DeckProgressAggregator:
    """
    Deck-wide statistics, completion and study streak.

    Stateless and side-effect free.
    """

    def aggregate(
        self,
        items: Iterable[ItemProgress],
        previous: ProgressStats | None = None,
    ) -> ProgressStats:
        """
        Sum counters across every item of the deck.

        ``average_accuracy`` is total correct / total attempts, unlike the
        per-section mean. Session counters are carried over from ``previous``.
        """
        items = list(items)
        total_correct = sum(i.correct_attempts for i in items)
        total_incorrect = sum(i.incorrect_attempts for i in items)
        total_attempts = sum(i.total_attempts for i in items)

        return ProgressStats(
            total_items_practiced=sum(1 for i in items if i.total_attempts > 0),
            total_correct_attempts=total_correct,
            total_incorrect_attempts=total_incorrect,
            total_attempts=total_attempts,
            items_mastered=sum(1 for i in items if i.mastery_level == MasteryLevel.MASTERED),
            items_learning=sum(1 for i in items if i.mastery_level <= MasteryLevel.LEARNING),
            average_accuracy=total_correct / total_attempts if total_attempts else 0.0,
            total_study_time_minutes=previous.total_study_time_minutes if previous else 0,
            sessions_completed=previous.sessions_completed if previous else 0,
        )

    def completion_percentage(self, progress: VocabularyProgress, total_items: int) -> float:
        """Share of the deck's items at MASTERED level, as a percentage."""
        if total_items <= 0:
            return 0.0
        mastered = sum(
            1 for i in progress.item_progress.values() if i.mastery_level == MasteryLevel.MASTERED
        )
        return mastered / total_items * 100

    def update_study_streak(
        self,
        progress: VocabularyProgress,
        now: datetime,
    ) -> tuple[int, int, datetime]:
        """
        Evaluate the consecutive-days study streak for a new session.

        Calendar days are compared in UTC.

        Returns:
            (study_streak, longest_streak, last_streak_date)
        """
        today = now.astimezone(timezone.utc).date()
        last = progress.last_streak_date

        if last is None:
            streak, last_date = 1, now
        else:
            last_day = last.astimezone(timezone.utc).date()
            if last_day == today:
                streak, last_date = progress.study_streak, last
            elif last_day == today - timedelta(days=1):
                streak, last_date = progress.study_streak + 1, now
            else:
                # Streak broken
                streak, last_date = 1, now

        return streak, max(progress.longest_streak, streak), last_date
