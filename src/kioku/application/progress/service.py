"""
Progress Service: Application layer orchestrator.

Loads a learner's deck aggregate, runs the pure engine, and saves the result
under optimistic concurrency, retrying with a fresh load on conflict.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from kioku.application.clock import SystemClock, ensure_utc
from kioku.domain.constants import (
    CROSS_DECK_REVIEW_LIMIT,
    DEFAULT_MAX_SAVE_RETRIES,
    RECENT_DECKS_LIMIT,
)
from kioku.domain.progress.errors import ConcurrencyConflict, InvalidItemReference
from kioku.domain.progress.models import (
    AttemptResult,
    DueItem,
    ItemKey,
    ItemProgress,
    SubmitAttempt,
    UserVocabularyStats,
    VocabularyProgress,
)
from kioku.domain.progress.ports import Clock, DeckContentProvider, ProgressStore

from .engine import ProgressEngine, new_progress
from .outcomes import outcome_from_answer, outcome_from_score
from .scheduler import ReviewScheduler

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Application service for recording practice attempts and querying progress.

    Follows Dependency Inversion: depends on the ProgressStore and
    DeckContentProvider abstractions, not concrete adapters.
    """

    def __init__(
        self,
        store: ProgressStore,
        content: DeckContentProvider,
        clock: Clock | None = None,
        engine: ProgressEngine | None = None,
        scheduler: ReviewScheduler | None = None,
        max_save_retries: int = DEFAULT_MAX_SAVE_RETRIES,
    ):
        """
        Args:
            store: The repository (port) holding one aggregate per (user, deck).
            content: Deck content used to validate item references.
            clock: Source of "now" when an attempt carries no timestamp.
            engine: Optional custom engine; uses default if not provided.
            scheduler: Optional custom scheduler; uses default if not provided.
            max_save_retries: Total save attempts before a conflict is surfaced.
        """
        if max_save_retries < 1:
            raise ValueError("max_save_retries must be at least 1")
        self._store = store
        self._content = content
        self._clock = clock or SystemClock()
        self._engine = engine or ProgressEngine()
        self._scheduler = scheduler or ReviewScheduler()
        self._max_retries = max_save_retries

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def submit_attempt(self, attempt: SubmitAttempt) -> AttemptResult:
        """
        Record one practice attempt.

        Returns:
            The updated item, its section summary and the deck stats,
            together with the persisted aggregate.

        Raises:
            InvalidItemReference: The item does not exist in the deck content.
            ConcurrencyConflict: The aggregate kept changing across every retry.
            ValueError: No outcome could be derived (no ``correct``, usable
                ``answer`` or valid ``score``).
        """
        if attempt.correct is None and attempt.answer is None and attempt.score is None:
            raise ValueError("An attempt needs 'correct', 'answer' or 'score'")

        section_total = await self._section_size(
            attempt.deck_id, attempt.section_index, attempt.item_index
        )
        correct = await self._resolve_outcome(attempt)
        now = self._resolve_now(attempt.occurred_at)

        outcome: dict[str, AttemptResult] = {}

        def transform(progress: VocabularyProgress) -> VocabularyProgress:
            result = self._engine.apply_attempt(
                progress,
                attempt.section_index,
                attempt.item_index,
                correct,
                section_total,
                now,
            )
            outcome["result"] = result
            return result.progress

        saved = await self._update(attempt.user_id, attempt.deck_id, now, transform)
        result = outcome["result"]

        logger.info(
            f"Attempt recorded: user={attempt.user_id} deck={attempt.deck_id} "
            f"item={attempt.section_index}/{attempt.item_index} correct={correct} "
            f"mastery={result.item.mastery_level.name}"
        )
        return AttemptResult(
            item=result.item,
            section=result.section,
            stats=result.stats,
            progress=saved,
        )

    async def complete_session(
        self,
        user_id: str,
        deck_id: str,
        study_minutes: int = 0,
        now: datetime | None = None,
    ) -> VocabularyProgress:
        """
        Count a finished practice session and update the daily study streak.

        Raises:
            InvalidItemReference: The deck does not exist in the deck content.
        """
        if await self._content.get_section_sizes(deck_id) is None:
            raise InvalidItemReference(deck_id)

        now = self._resolve_now(now)
        saved = await self._update(
            user_id,
            deck_id,
            now,
            lambda p: self._engine.complete_session(p, study_minutes, now),
        )
        logger.info(
            f"Session completed: user={user_id} deck={deck_id} "
            f"minutes={study_minutes} streak={saved.study_streak}"
        )
        return saved

    async def reset_deck_progress(
        self, user_id: str, deck_id: str, now: datetime | None = None
    ) -> VocabularyProgress:
        """Clear every item record of the deck. The aggregate itself is kept."""
        now = self._resolve_now(now)
        if await self._store.load(user_id, deck_id) is None:
            return new_progress(user_id, deck_id, now)

        saved = await self._update(
            user_id, deck_id, now, lambda p: self._engine.reset_deck(p, now)
        )
        logger.info(f"Progress reset for deck {deck_id} by user {user_id}")
        return saved

    async def reset_section_progress(
        self,
        user_id: str,
        deck_id: str,
        section_index: int,
        now: datetime | None = None,
    ) -> VocabularyProgress:
        """Clear every item record of one section and recompute deck stats."""
        now = self._resolve_now(now)
        if await self._store.load(user_id, deck_id) is None:
            return new_progress(user_id, deck_id, now)

        saved = await self._update(
            user_id, deck_id, now, lambda p: self._engine.reset_section(p, section_index, now)
        )
        logger.info(f"Section {section_index} progress reset for deck {deck_id} by user {user_id}")
        return saved

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def get_deck_progress(self, user_id: str, deck_id: str) -> VocabularyProgress:
        """
        Fetch a learner's deck aggregate. Unknown pairs yield an empty,
        unsaved aggregate.
        """
        progress = await self._store.load(user_id, deck_id)
        if progress is None:
            return new_progress(user_id, deck_id, self._clock.now())
        return progress

    async def get_item_progress(
        self, user_id: str, deck_id: str, section_index: int, item_index: int
    ) -> ItemProgress | None:
        progress = await self._store.load(user_id, deck_id)
        if progress is None:
            return None
        return progress.get_item(section_index, item_index)

    async def get_items_needing_review(
        self,
        user_id: str,
        deck_id: str,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> list[ItemKey]:
        """
        Keys of due items, most overdue first.
        """
        progress = await self._store.load(user_id, deck_id)
        if progress is None:
            return []
        due = self._scheduler.due_items(progress, self._resolve_now(now), limit)
        return [item.key for item in due]

    async def get_review_count(
        self, user_id: str, deck_id: str, now: datetime | None = None
    ) -> int:
        progress = await self._store.load(user_id, deck_id)
        if progress is None:
            return 0
        return len(self._scheduler.items_needing_review(progress, self._resolve_now(now)))

    async def get_completion_percentage(
        self, user_id: str, deck_id: str, total_items: int
    ) -> float:
        progress = await self._store.load(user_id, deck_id)
        if progress is None:
            return 0.0
        return self._engine.deck.completion_percentage(progress, total_items)

    async def get_all_items_needing_review(
        self,
        user_id: str,
        now: datetime | None = None,
        limit: int | None = CROSS_DECK_REVIEW_LIMIT,
    ) -> list[DueItem]:
        """
        Due items across every deck of a learner, most overdue first.
        """
        now = self._resolve_now(now)
        due = [
            DueItem(p.deck_id, item.section_index, item.item_index, item.next_review_at)
            for p in await self._store.list_for_user(user_id)
            for item in self._scheduler.due_items(p, now)
        ]
        due.sort(key=lambda d: (d.next_review_at, d.deck_id, d.section_index, d.item_index))
        if limit is not None:
            return due[: max(limit, 0)]
        return due

    async def get_recent_decks(
        self, user_id: str, limit: int = RECENT_DECKS_LIMIT
    ) -> list[VocabularyProgress]:
        """A learner's deck aggregates, most recently studied first."""
        return (await self._store.list_for_user(user_id))[: max(limit, 0)]

    async def get_user_stats(
        self, user_id: str, now: datetime | None = None
    ) -> UserVocabularyStats:
        """
        Combine every deck aggregate of a learner.

        The current streak comes from the most recently studied deck.
        """
        now = self._resolve_now(now)
        all_progress = await self._store.list_for_user(user_id)
        if not all_progress:
            return UserVocabularyStats(user_id=user_id)

        total_correct = sum(p.overall_stats.total_correct_attempts for p in all_progress)
        total_attempts = sum(p.overall_stats.total_attempts for p in all_progress)

        return UserVocabularyStats(
            user_id=user_id,
            total_decks_studied=len(all_progress),
            total_items_practiced=sum(p.overall_stats.total_items_practiced for p in all_progress),
            total_items_mastered=sum(p.overall_stats.items_mastered for p in all_progress),
            overall_accuracy=total_correct / total_attempts if total_attempts else 0.0,
            current_streak=all_progress[0].study_streak,
            longest_streak=max(max(p.longest_streak, p.study_streak) for p in all_progress),
            total_study_time_minutes=sum(
                p.overall_stats.total_study_time_minutes for p in all_progress
            ),
            items_to_review=sum(
                len(self._scheduler.items_needing_review(p, now)) for p in all_progress
            ),
        )

    async def close(self) -> None:
        await self._store.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_now(self, value: datetime | None) -> datetime:
        return ensure_utc(value) if value is not None else self._clock.now()

    async def _resolve_outcome(self, attempt: SubmitAttempt) -> bool:
        # Precedence: explicit outcome, typed answer, evaluation score.
        if attempt.correct is not None:
            return attempt.correct
        if attempt.answer is not None:
            expected = await self._content.get_expected_answer(
                attempt.deck_id, attempt.section_index, attempt.item_index
            )
            if expected is None:
                raise ValueError(
                    f"Item {attempt.section_index}/{attempt.item_index} of deck "
                    f"{attempt.deck_id} has no expected answer"
                )
            return outcome_from_answer(attempt.answer, expected)
        return outcome_from_score(attempt.score)

    async def _section_size(self, deck_id: str, section_index: int, item_index: int) -> int:
        sizes = await self._content.get_section_sizes(deck_id)
        if sizes is None:
            raise InvalidItemReference(deck_id)
        if not 0 <= section_index < len(sizes):
            raise InvalidItemReference(deck_id, section_index)
        if not 0 <= item_index < sizes[section_index]:
            raise InvalidItemReference(deck_id, section_index, item_index)
        return sizes[section_index]

    async def _update(
        self,
        user_id: str,
        deck_id: str,
        now: datetime,
        transform: Callable[[VocabularyProgress], VocabularyProgress],
    ) -> VocabularyProgress:
        """
        Optimistic read-modify-write. On conflict the transform is re-run
        against a freshly loaded aggregate, up to max_save_retries times.
        """
        for attempt in range(1, self._max_retries + 1):
            current = await self._store.load(user_id, deck_id)
            if current is None:
                current = new_progress(user_id, deck_id, now)

            try:
                return await self._store.save(transform(current))
            except ConcurrencyConflict as e:
                if attempt == self._max_retries:
                    logger.error(
                        f"Giving up after {attempt} conflicting saves for "
                        f"user={user_id} deck={deck_id}"
                    )
                    raise
                logger.warning(f"Retrying save ({attempt}/{self._max_retries}): {e}")

        raise AssertionError("unreachable")
