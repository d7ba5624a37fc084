"""
Serialization of VocabularyProgress aggregates to plain dicts.

Timestamps are ISO-8601 strings; item records are stored as a list so no
composite key ever has to be encoded into a string.
"""

from datetime import datetime
from typing import Any

from kioku.domain.progress.models import (
    DueItem,
    ItemKey,
    ItemProgress,
    MasteryLevel,
    ProgressStats,
    SectionProgressSummary,
    VocabularyProgress,
)


def _ts(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def item_to_dict(item: ItemProgress) -> dict[str, Any]:
    return {
        "section_index": item.section_index,
        "item_index": item.item_index,
        "correct_attempts": item.correct_attempts,
        "incorrect_attempts": item.incorrect_attempts,
        "total_attempts": item.total_attempts,
        "mastery_level": item.mastery_level.name,
        "last_attempt_at": _ts(item.last_attempt_at),
        "last_correct_at": _ts(item.last_correct_at),
        "next_review_at": _ts(item.next_review_at),
        "streak_count": item.streak_count,
        "best_streak": item.best_streak,
        "accuracy": item.accuracy,
        "is_mastered": item.is_mastered,
    }


def item_from_dict(data: dict[str, Any]) -> ItemProgress:
    return ItemProgress(
        section_index=int(data["section_index"]),
        item_index=int(data["item_index"]),
        correct_attempts=int(data.get("correct_attempts", 0)),
        incorrect_attempts=int(data.get("incorrect_attempts", 0)),
        total_attempts=int(data.get("total_attempts", 0)),
        mastery_level=MasteryLevel[data.get("mastery_level", "NEW")],
        last_attempt_at=_parse_ts(data.get("last_attempt_at")),
        last_correct_at=_parse_ts(data.get("last_correct_at")),
        next_review_at=_parse_ts(data.get("next_review_at")),
        streak_count=int(data.get("streak_count", 0)),
        best_streak=int(data.get("best_streak", 0)),
    )


def section_to_dict(section: SectionProgressSummary) -> dict[str, Any]:
    return {
        "section_index": section.section_index,
        "total_items": section.total_items,
        "practiced_items": section.practiced_items,
        "mastered_items": section.mastered_items,
        "average_accuracy": section.average_accuracy,
        "last_studied_at": _ts(section.last_studied_at),
        "completion_percentage": section.completion_percentage,
    }


def section_from_dict(data: dict[str, Any]) -> SectionProgressSummary:
    return SectionProgressSummary(
        section_index=int(data["section_index"]),
        total_items=int(data["total_items"]),
        practiced_items=int(data.get("practiced_items", 0)),
        mastered_items=int(data.get("mastered_items", 0)),
        average_accuracy=float(data.get("average_accuracy", 0.0)),
        last_studied_at=_parse_ts(data.get("last_studied_at")),
    )


def stats_to_dict(stats: ProgressStats) -> dict[str, Any]:
    return {
        "total_items_practiced": stats.total_items_practiced,
        "total_correct_attempts": stats.total_correct_attempts,
        "total_incorrect_attempts": stats.total_incorrect_attempts,
        "total_attempts": stats.total_attempts,
        "items_mastered": stats.items_mastered,
        "items_learning": stats.items_learning,
        "average_accuracy": stats.average_accuracy,
        "total_study_time_minutes": stats.total_study_time_minutes,
        "sessions_completed": stats.sessions_completed,
    }


def stats_from_dict(data: dict[str, Any]) -> ProgressStats:
    return ProgressStats(
        total_items_practiced=int(data.get("total_items_practiced", 0)),
        total_correct_attempts=int(data.get("total_correct_attempts", 0)),
        total_incorrect_attempts=int(data.get("total_incorrect_attempts", 0)),
        total_attempts=int(data.get("total_attempts", 0)),
        items_mastered=int(data.get("items_mastered", 0)),
        items_learning=int(data.get("items_learning", 0)),
        average_accuracy=float(data.get("average_accuracy", 0.0)),
        total_study_time_minutes=int(data.get("total_study_time_minutes", 0)),
        sessions_completed=int(data.get("sessions_completed", 0)),
    )


def progress_to_dict(progress: VocabularyProgress) -> dict[str, Any]:
    return {
        "id": progress.id,
        "user_id": progress.user_id,
        "deck_id": progress.deck_id,
        "version": progress.version,
        "items": [item_to_dict(i) for _, i in sorted(progress.item_progress.items())],
        "sections": [section_to_dict(s) for _, s in sorted(progress.section_progress.items())],
        "overall_stats": stats_to_dict(progress.overall_stats),
        "last_studied_at": _ts(progress.last_studied_at),
        "study_streak": progress.study_streak,
        "longest_streak": progress.longest_streak,
        "last_streak_date": _ts(progress.last_streak_date),
        "created_at": _ts(progress.created_at),
        "updated_at": _ts(progress.updated_at),
    }


def progress_from_dict(data: dict[str, Any]) -> VocabularyProgress:
    items = [item_from_dict(d) for d in data.get("items", [])]
    sections = [section_from_dict(d) for d in data.get("sections", [])]
    return VocabularyProgress(
        user_id=data["user_id"],
        deck_id=data["deck_id"],
        id=data.get("id"),
        item_progress={ItemKey(i.section_index, i.item_index): i for i in items},
        section_progress={s.section_index: s for s in sections},
        overall_stats=stats_from_dict(data.get("overall_stats", {})),
        last_studied_at=_parse_ts(data.get("last_studied_at")),
        study_streak=int(data.get("study_streak", 0)),
        longest_streak=int(data.get("longest_streak", 0)),
        last_streak_date=_parse_ts(data.get("last_streak_date")),
        created_at=_parse_ts(data.get("created_at")),
        updated_at=_parse_ts(data.get("updated_at")),
        version=int(data.get("version", 0)),
    )


def due_item_to_dict(item: DueItem) -> dict[str, Any]:
    return {
        "deck_id": item.deck_id,
        "section_index": item.section_index,
        "item_index": item.item_index,
        "next_review_at": _ts(item.next_review_at),
    }


def deck_summary_to_dict(progress: VocabularyProgress) -> dict[str, Any]:
    """Short listing entry for a learner's deck, without item records."""
    return {
        "deck_id": progress.deck_id,
        "last_studied_at": _ts(progress.last_studied_at),
        "study_streak": progress.study_streak,
        "items_practiced": progress.overall_stats.total_items_practiced,
        "items_mastered": progress.overall_stats.items_mastered,
        "average_accuracy": progress.overall_stats.average_accuracy,
    }
