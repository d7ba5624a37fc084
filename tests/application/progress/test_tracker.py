from datetime import timedelta

import pytest

from kioku.application.progress.tracker import (
    classify_mastery,
    interval_hours,
    is_mastered,
    record_attempt,
)
from kioku.domain.progress.models import ItemProgress, MasteryLevel


def replay(outcomes, start, step=timedelta(hours=1)):
    """Apply a sequence of outcomes to a fresh item, returning every intermediate record."""
    records = []
    item = None
    now = start
    for correct in outcomes:
        item = record_attempt(item, correct, now, section_index=0, item_index=0)
        records.append(item)
        now += step
    return records


class TestRecordAttempt:
    def test_first_correct_attempt(self, t0):
        item = record_attempt(None, True, t0, section_index=2, item_index=7)

        assert item.section_index == 2
        assert item.item_index == 7
        assert item.total_attempts == 1
        assert item.correct_attempts == 1
        assert item.incorrect_attempts == 0
        assert item.mastery_level == MasteryLevel.LEARNING
        assert item.streak_count == 1
        assert item.best_streak == 1
        assert item.last_attempt_at == t0
        assert item.last_correct_at == t0
        # LEARNING: 4 * (1 + 1)
        assert item.next_review_at == t0 + timedelta(hours=8)

    def test_first_incorrect_attempt(self, t0):
        item = record_attempt(None, False, t0, section_index=0, item_index=0)

        assert item.incorrect_attempts == 1
        assert item.streak_count == 0
        assert item.last_correct_at is None
        assert item.mastery_level == MasteryLevel.LEARNING
        assert item.next_review_at == t0 + timedelta(hours=4)

    def test_first_attempt_requires_key(self, t0):
        with pytest.raises(ValueError):
            record_attempt(None, True, t0)

    def test_input_record_is_not_mutated(self, t0):
        before = ItemProgress(section_index=0, item_index=1)
        after = record_attempt(before, True, t0)

        assert before.total_attempts == 0
        assert after is not before

    def test_five_correct_reaches_mastered(self, t0):
        item = replay([True] * 5, t0)[-1]

        assert item.total_attempts == 5
        assert item.correct_attempts == 5
        assert item.accuracy == 1.0
        assert item.mastery_level == MasteryLevel.MASTERED
        assert item.streak_count == 5
        # MASTERED: 72 * (5 + 1)
        assert item.next_review_at == item.last_attempt_at + timedelta(hours=432)

    def test_three_correct_then_incorrect_stays_familiar(self, t0):
        records = replay([True, True, True, False], t0)

        assert records[2].mastery_level == MasteryLevel.FAMILIAR
        item = records[-1]
        assert item.total_attempts == 4
        assert item.accuracy == 0.75
        assert item.mastery_level == MasteryLevel.FAMILIAR
        assert item.streak_count == 0
        assert item.best_streak == 3
        # FAMILIAR with streak 0: 24 * 1
        assert item.next_review_at == item.last_attempt_at + timedelta(hours=24)

    def test_incorrect_keeps_last_correct_at(self, t0):
        first = record_attempt(None, True, t0, section_index=0, item_index=0)
        later = t0 + timedelta(hours=3)
        second = record_attempt(first, False, later)

        assert second.last_correct_at == t0
        assert second.last_attempt_at == later

    def test_incorrect_always_resets_streak(self, t0):
        records = replay([True] * 7 + [False], t0)
        assert records[-2].streak_count == 7
        assert records[-1].streak_count == 0
        assert records[-1].best_streak == 7

    def test_mastered_drops_with_accuracy(self, t0):
        records = replay([True] * 5 + [False], t0)

        assert records[4].mastery_level == MasteryLevel.MASTERED
        # 5/6 = 0.83 -> below 0.90, still above 0.70
        assert records[5].mastery_level == MasteryLevel.FAMILIAR


class TestInvariants:
    SEQUENCES = [
        [True, False, True, True, False, False, True, True, True, True, True],
        [False] * 6,
        [True, True, False] * 4,
        [False, True] * 5,
    ]

    @pytest.mark.parametrize("outcomes", SEQUENCES)
    def test_counters_add_up(self, t0, outcomes):
        for item in replay(outcomes, t0):
            assert item.total_attempts == item.correct_attempts + item.incorrect_attempts

    @pytest.mark.parametrize("outcomes", SEQUENCES)
    def test_best_streak_never_decreases(self, t0, outcomes):
        best = 0
        for item in replay(outcomes, t0):
            assert item.best_streak >= best
            assert item.best_streak >= item.streak_count
            best = item.best_streak

    @pytest.mark.parametrize("outcomes", SEQUENCES)
    def test_replay_is_deterministic(self, t0, outcomes):
        assert replay(outcomes, t0)[-1] == replay(outcomes, t0)[-1]

    @pytest.mark.parametrize("outcomes", SEQUENCES)
    def test_mastery_depends_only_on_counts(self, t0, outcomes):
        for item in replay(outcomes, t0):
            assert item.mastery_level == classify_mastery(
                item.total_attempts, item.correct_attempts
            )


class TestClassification:
    @pytest.mark.parametrize(
        "total,correct,expected",
        [
            (0, 0, MasteryLevel.NEW),
            (1, 0, MasteryLevel.LEARNING),
            (2, 2, MasteryLevel.LEARNING),
            (3, 3, MasteryLevel.FAMILIAR),
            (3, 2, MasteryLevel.LEARNING),  # 0.67 < 0.70
            (10, 7, MasteryLevel.FAMILIAR),
            (4, 4, MasteryLevel.FAMILIAR),  # too few attempts for MASTERED
            (10, 9, MasteryLevel.MASTERED),
            (10, 8, MasteryLevel.FAMILIAR),
        ],
    )
    def test_thresholds(self, total, correct, expected):
        assert classify_mastery(total, correct) == expected

    def test_intervals(self):
        assert interval_hours(MasteryLevel.NEW, 9) == 1
        assert interval_hours(MasteryLevel.LEARNING, 0) == 4
        assert interval_hours(MasteryLevel.FAMILIAR, 2) == 72
        assert interval_hours(MasteryLevel.MASTERED, 5) == 432

    def test_levels_are_ordered(self):
        assert MasteryLevel.NEW < MasteryLevel.LEARNING < MasteryLevel.FAMILIAR
        assert MasteryLevel.FAMILIAR < MasteryLevel.MASTERED


class TestMasteredPredicates:
    def test_badge_and_level_are_distinct(self, t0):
        # 3 of 3 correct earns the badge but only reaches FAMILIAR
        item = replay([True, True, True], t0)[-1]
        assert is_mastered(item) is True
        assert item.mastery_level != MasteryLevel.MASTERED

    def test_badge_needs_eighty_percent(self, t0):
        item = replay([True, True, True, False], t0)[-1]
        assert item.is_mastered is False

    def test_badge_on_new_item(self):
        assert ItemProgress(section_index=0, item_index=0).is_mastered is False
