# Domain Progress Package
from .errors import ConcurrencyConflict, InvalidItemReference, ProgressError
from .models import (
    AttemptResult,
    DueItem,
    ItemKey,
    ItemProgress,
    MasteryLevel,
    ProgressStats,
    SectionProgressSummary,
    SubmitAttempt,
    UserVocabularyStats,
    VocabularyProgress,
)
from .ports import Clock, DeckContentProvider, ProgressStore

__all__ = [
    "AttemptResult",
    "Clock",
    "ConcurrencyConflict",
    "DeckContentProvider",
    "DueItem",
    "InvalidItemReference",
    "ItemKey",
    "ItemProgress",
    "MasteryLevel",
    "ProgressError",
    "ProgressStats",
    "ProgressStore",
    "SectionProgressSummary",
    "SubmitAttempt",
    "UserVocabularyStats",
    "VocabularyProgress",
]
