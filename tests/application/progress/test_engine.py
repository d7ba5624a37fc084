from datetime import timedelta

import pytest

from kioku.application.progress.engine import ProgressEngine, new_progress
from kioku.domain.progress.models import ItemKey, MasteryLevel


@pytest.fixture
def engine():
    return ProgressEngine()


def test_new_progress_gets_an_id(t0):
    progress = new_progress("u1", "n5", t0)

    assert progress.id.startswith("progress_")
    assert progress.version == 0
    assert progress.created_at == t0
    assert progress.item_progress == {}


def test_apply_attempt_returns_item_section_and_stats(engine, t0):
    base = new_progress("u1", "n5", t0)
    result = engine.apply_attempt(base, 1, 2, True, 4, t0)

    assert result.item.key == ItemKey(1, 2)
    assert result.section.section_index == 1
    assert result.section.total_items == 4
    assert result.section.practiced_items == 1
    assert result.stats.total_attempts == 1
    assert result.progress.item_progress[ItemKey(1, 2)] == result.item
    assert result.progress.section_progress[1] == result.section
    assert result.progress.overall_stats == result.stats
    assert result.progress.last_studied_at == t0


def test_apply_attempt_leaves_input_untouched(engine, t0):
    base = new_progress("u1", "n5", t0)
    engine.apply_attempt(base, 0, 0, True, 10, t0)

    assert base.item_progress == {}
    assert base.section_progress == {}


def test_only_touched_section_is_recomputed(engine, t0):
    progress = new_progress("u1", "n5", t0)
    progress = engine.apply_attempt(progress, 0, 0, True, 10, t0).progress
    progress = engine.apply_attempt(progress, 1, 0, False, 4, t0).progress

    assert set(progress.section_progress) == {0, 1}
    assert progress.section_progress[0].practiced_items == 1
    assert progress.overall_stats.total_items_practiced == 2


def test_complete_session(engine, t0):
    progress = new_progress("u1", "n5", t0)
    progress = engine.complete_session(progress, 15, t0)
    progress = engine.complete_session(progress, 10, t0 + timedelta(days=1))

    assert progress.overall_stats.sessions_completed == 2
    assert progress.overall_stats.total_study_time_minutes == 25
    assert progress.study_streak == 2
    assert progress.longest_streak == 2


def test_complete_session_rejects_negative_minutes(engine, t0):
    with pytest.raises(ValueError):
        engine.complete_session(new_progress("u1", "n5", t0), -1, t0)


def test_session_counters_survive_attempts(engine, t0):
    progress = engine.complete_session(new_progress("u1", "n5", t0), 20, t0)
    progress = engine.apply_attempt(progress, 0, 0, True, 10, t0).progress

    assert progress.overall_stats.sessions_completed == 1
    assert progress.overall_stats.total_study_time_minutes == 20


def test_reset_section(engine, t0):
    progress = new_progress("u1", "n5", t0)
    for i in range(5):
        progress = engine.apply_attempt(progress, 0, 0, True, 10, t0).progress
    progress = engine.apply_attempt(progress, 1, 3, False, 4, t0).progress

    reset = engine.reset_section(progress, 0, t0)

    assert list(reset.item_progress) == [ItemKey(1, 3)]
    assert 0 not in reset.section_progress
    assert reset.overall_stats.total_attempts == 1
    assert reset.overall_stats.items_mastered == 0
    assert progress.item_progress[ItemKey(0, 0)].mastery_level == MasteryLevel.MASTERED


def test_reset_deck_keeps_sessions_and_streak(engine, t0):
    progress = engine.complete_session(new_progress("u1", "n5", t0), 30, t0)
    progress = engine.apply_attempt(progress, 0, 0, True, 10, t0).progress

    reset = engine.reset_deck(progress, t0)

    assert reset.item_progress == {}
    assert reset.section_progress == {}
    assert reset.overall_stats.total_attempts == 0
    assert reset.overall_stats.sessions_completed == 1
    assert reset.study_streak == 1
    assert reset.id == progress.id
