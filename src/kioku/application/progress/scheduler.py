"""Review scheduling queries over a progress aggregate."""

from datetime import datetime

from kioku.domain.progress.models import ItemKey, ItemProgress, VocabularyProgress


class ReviewScheduler:
    """
    Answers "what is due?" for an aggregate at a given time.

    Stateless and side-effect free.
    """

    def is_due(self, item: ItemProgress, now: datetime) -> bool:
        # Never-attempted items have no schedule and are never due.
        return item.next_review_at is not None and item.next_review_at < now

    def items_needing_review(self, progress: VocabularyProgress, now: datetime) -> set[ItemKey]:
        return {key for key, item in progress.item_progress.items() if self.is_due(item, now)}

    def due_items(
        self,
        progress: VocabularyProgress,
        now: datetime,
        limit: int | None = None,
    ) -> list[ItemProgress]:
        """
        Due items, most overdue first (ties broken by item key).
        """
        due = [item for item in progress.item_progress.values() if self.is_due(item, now)]
        due.sort(key=lambda item: (item.next_review_at, item.key))
        if limit is not None:
            return due[: max(limit, 0)]
        return due
