"""
In-memory progress store.

Keeps serialized snapshots so callers never share mutable state with the store.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

from kioku.domain.progress.errors import ConcurrencyConflict
from kioku.domain.progress.models import VocabularyProgress
from kioku.domain.progress.ports import ProgressStore

from .codec import progress_from_dict, progress_to_dict

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryProgressStore(ProgressStore):
    """
    Process-local ProgressStore with version-checked saves.
    """

    def __init__(self):
        self._rows: dict[tuple[str, str], dict] = {}
        self._lock = threading.Lock()

    async def load(self, user_id: str, deck_id: str) -> VocabularyProgress | None:
        row = self._rows.get((user_id, deck_id))
        return progress_from_dict(row) if row else None

    async def save(self, progress: VocabularyProgress) -> VocabularyProgress:
        key = (progress.user_id, progress.deck_id)
        with self._lock:
            row = self._rows.get(key)
            actual = row["version"] if row else None
            if actual != (progress.version or None):
                raise ConcurrencyConflict(
                    progress.user_id, progress.deck_id, progress.version, actual
                )

            saved = replace(progress, version=progress.version + 1)
            self._rows[key] = progress_to_dict(saved)

        logger.debug(f"Saved progress {key} at version {saved.version}")
        return saved

    async def list_for_user(self, user_id: str) -> list[VocabularyProgress]:
        found = [progress_from_dict(r) for (uid, _), r in self._rows.items() if uid == user_id]
        found.sort(key=lambda p: p.last_studied_at or _EPOCH, reverse=True)
        return found
