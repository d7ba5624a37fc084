"""
Progress Service Factory
Centralizes the logic for selecting store and content adapters.
"""

import logging
from functools import lru_cache

from kioku.application.config import AppConfig
from kioku.application.progress.service import ProgressService
from kioku.domain.progress.ports import Clock, DeckContentProvider, ProgressStore
from kioku.infrastructure.adapters.content import (
    InMemoryDeckContentProvider,
    YamlDeckContentProvider,
)
from kioku.infrastructure.adapters.stores import InMemoryProgressStore, SqliteProgressStore

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _shared_memory_store() -> InMemoryProgressStore:
    # One per process so every request sees the same data.
    return InMemoryProgressStore()


def get_progress_store(config: AppConfig) -> ProgressStore:
    """
    Returns the ProgressStore implementation selected by config.backend.
    """
    if config.backend == "memory":
        return _shared_memory_store()

    logger.debug(f"Using SQLite progress store at {config.database_path}")
    return SqliteProgressStore(config.database_path)


def get_content_provider(config: AppConfig) -> DeckContentProvider:
    """
    Returns the deck content provider. Without a decks_dir no deck is known,
    so every attempt is rejected as an invalid item reference.
    """
    if config.decks_dir is None:
        logger.warning("No decks_dir configured; deck content is empty")
        return InMemoryDeckContentProvider()
    return YamlDeckContentProvider(config.decks_dir)


def get_progress_service(config: AppConfig, clock: Clock | None = None) -> ProgressService:
    return ProgressService(
        store=get_progress_store(config),
        content=get_content_provider(config),
        clock=clock,
        max_save_retries=config.max_save_retries,
    )
