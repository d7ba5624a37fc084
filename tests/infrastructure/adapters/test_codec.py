from datetime import timedelta

from kioku.application.progress.engine import ProgressEngine, new_progress
from kioku.domain.progress.models import DueItem, ItemKey, MasteryLevel, VocabularyProgress
from kioku.infrastructure.adapters.stores.codec import (
    deck_summary_to_dict,
    due_item_to_dict,
    item_to_dict,
    progress_from_dict,
    progress_to_dict,
)


def test_progress_survives_serialization(t0):
    engine = ProgressEngine()
    progress = new_progress("u1", "n5", t0)
    for i in range(5):
        progress = engine.apply_attempt(progress, 1, 2, True, 4, t0 + timedelta(hours=i)).progress
    progress = engine.complete_session(progress, 7, t0)

    data = progress_to_dict(progress)
    restored = progress_from_dict(data)

    assert restored == progress
    assert restored.item_progress[ItemKey(1, 2)].mastery_level == MasteryLevel.MASTERED


def test_item_dict_layout(t0):
    engine = ProgressEngine()
    item = engine.apply_attempt(new_progress("u1", "n5", t0), 0, 4, True, 10, t0).item

    data = item_to_dict(item)

    assert data["section_index"] == 0
    assert data["item_index"] == 4
    assert data["mastery_level"] == "LEARNING"
    assert data["next_review_at"] == (t0 + timedelta(hours=8)).isoformat()
    assert data["last_correct_at"] == t0.isoformat()
    assert data["accuracy"] == 1.0
    assert data["is_mastered"] is False


def test_missing_optional_fields_use_defaults():
    restored = progress_from_dict({"user_id": "u1", "deck_id": "n5"})

    assert restored.item_progress == {}
    assert restored.version == 0
    assert restored.last_streak_date is None


def test_listing_dicts(t0):
    assert due_item_to_dict(DueItem("n5", 1, 2, t0)) == {
        "deck_id": "n5",
        "section_index": 1,
        "item_index": 2,
        "next_review_at": t0.isoformat(),
    }

    progress = VocabularyProgress("u1", "n5", last_studied_at=t0, study_streak=3)
    summary = deck_summary_to_dict(progress)
    assert summary["deck_id"] == "n5"
    assert summary["study_streak"] == 3
    assert summary["items_practiced"] == 0
