from datetime import timedelta

from kioku.application.progress.scheduler import ReviewScheduler
from kioku.domain.progress.models import ItemKey, ItemProgress, VocabularyProgress


def make_progress(items):
    return VocabularyProgress(
        user_id="u1",
        deck_id="n5",
        item_progress={i.key: i for i in items},
    )


def test_items_past_due_are_returned(t0):
    scheduler = ReviewScheduler()
    progress = make_progress(
        [
            ItemProgress(0, 0, total_attempts=1, next_review_at=t0 - timedelta(hours=1)),
            ItemProgress(0, 1, total_attempts=1, next_review_at=t0 + timedelta(hours=1)),
        ]
    )

    assert scheduler.items_needing_review(progress, t0) == {ItemKey(0, 0)}


def test_due_is_strictly_before_now(t0):
    scheduler = ReviewScheduler()
    item = ItemProgress(0, 0, total_attempts=1, next_review_at=t0)

    assert scheduler.is_due(item, t0) is False
    assert scheduler.is_due(item, t0 + timedelta(seconds=1)) is True


def test_never_attempted_items_are_never_due(t0):
    scheduler = ReviewScheduler()
    progress = make_progress([ItemProgress(1, 3)])

    assert scheduler.items_needing_review(progress, t0 + timedelta(days=365)) == set()


def test_due_items_ordered_by_review_time(t0):
    scheduler = ReviewScheduler()
    progress = make_progress(
        [
            ItemProgress(0, 2, total_attempts=1, next_review_at=t0 - timedelta(hours=1)),
            ItemProgress(1, 0, total_attempts=1, next_review_at=t0 - timedelta(hours=5)),
            ItemProgress(0, 1, total_attempts=1, next_review_at=t0 - timedelta(hours=1)),
            ItemProgress(0, 0, total_attempts=1, next_review_at=t0 + timedelta(hours=5)),
        ]
    )

    due = scheduler.due_items(progress, t0)
    assert [i.key for i in due] == [ItemKey(1, 0), ItemKey(0, 1), ItemKey(0, 2)]

    limited = scheduler.due_items(progress, t0, limit=1)
    assert [i.key for i in limited] == [ItemKey(1, 0)]


def test_empty_aggregate(t0):
    assert ReviewScheduler().items_needing_review(make_progress([]), t0) == set()
