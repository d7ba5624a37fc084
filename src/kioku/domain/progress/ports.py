"""
Ports (interfaces) for the progress engine.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import VocabularyProgress


class Clock(ABC):
    """Source of the current time (timezone-aware, UTC)."""

    @abstractmethod
    def now(self) -> datetime:
        pass


class ProgressStore(ABC):
    """
    Port for durable storage of one VocabularyProgress per (user, deck).

    Implementations:
        - InMemoryProgressStore: Process-local dict, used by tests and the memory backend.
        - SqliteProgressStore: Single-file SQLite database through SQLAlchemy's async engine.
    """

    @abstractmethod
    async def load(self, user_id: str, deck_id: str) -> VocabularyProgress | None:
        """
        Fetch the stored aggregate.

        Returns:
            The aggregate with its current version, or None if never saved.
        """
        pass

    @abstractmethod
    async def save(self, progress: VocabularyProgress) -> VocabularyProgress:
        """
        Persist the aggregate if nobody else saved it since it was loaded.

        Args:
            progress: Aggregate whose ``version`` is the version it was loaded at
                (0 for a brand-new aggregate).

        Returns:
            The stored aggregate with ``version`` incremented.

        Raises:
            ConcurrencyConflict: The stored version differs from ``progress.version``.
        """
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[VocabularyProgress]:
        """
        Fetch every aggregate of a user, most recently studied first.
        """
        pass

    async def close(self) -> None:
        """Release connections held by the store. No-op by default."""
        return None


class DeckContentProvider(ABC):
    """
    Port for read-only deck content (section sizes and expected answers).

    Implementations:
        - InMemoryDeckContentProvider: Static mapping, used by tests.
        - YamlDeckContentProvider: Reads deck files from a directory.
    """

    @abstractmethod
    async def get_section_sizes(self, deck_id: str) -> list[int] | None:
        """
        Fetch the number of items in each section, indexed by section index.

        Returns:
            List of section sizes, or None if the deck is unknown.
        """
        pass

    @abstractmethod
    async def get_expected_answer(
        self, deck_id: str, section_index: int, item_index: int
    ) -> str | None:
        """
        Fetch the answer a typed fill-in attempt is compared against.

        Returns:
            The expected answer, or None if the item has none.
        """
        pass
