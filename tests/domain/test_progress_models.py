from dataclasses import FrozenInstanceError

import pytest

from kioku.domain.progress.errors import ConcurrencyConflict, InvalidItemReference, ProgressError
from kioku.domain.progress.models import (
    ItemKey,
    ItemProgress,
    SectionProgressSummary,
    VocabularyProgress,
)


def test_item_accuracy():
    item = ItemProgress(0, 1, correct_attempts=3, incorrect_attempts=1, total_attempts=4)

    assert item.key == ItemKey(0, 1)
    assert item.accuracy == 0.75
    assert item.accuracy_percentage == 75.0
    assert ItemProgress(0, 2).accuracy == 0.0


def test_records_are_frozen():
    item = ItemProgress(0, 0)
    with pytest.raises(FrozenInstanceError):
        item.total_attempts = 3


def test_section_completion():
    assert SectionProgressSummary(0, 8, mastered_items=2).completion_percentage == 25.0
    assert SectionProgressSummary(0, 0).completion_percentage == 0.0


def test_aggregate_lookups():
    items = [ItemProgress(0, 0), ItemProgress(0, 3), ItemProgress(2, 1)]
    progress = VocabularyProgress("u1", "n5", item_progress={i.key: i for i in items})

    assert progress.get_item(0, 3) is items[1]
    assert progress.get_item(1, 0) is None
    assert progress.has_item_been_practiced(2, 1)
    assert not progress.has_item_been_practiced(2, 2)
    assert progress.items_in_section(0) == items[:2]


def test_error_messages():
    assert "Deck not found" in str(InvalidItemReference("n9"))
    assert "Section 4" in str(InvalidItemReference("n5", 4))
    assert "Item 1/7" in str(InvalidItemReference("n5", 1, 7))

    conflict = ConcurrencyConflict("u1", "n5", 2, 3)
    assert isinstance(conflict, ProgressError)
    assert (conflict.expected, conflict.actual) == (2, 3)
