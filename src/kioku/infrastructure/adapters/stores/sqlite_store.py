"""
SQLite progress store: Infrastructure adapter on SQLAlchemy's async engine.

Implements ProgressStore with a compare-and-set on the row version.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from kioku.domain.progress.errors import ConcurrencyConflict
from kioku.domain.progress.models import VocabularyProgress
from kioku.domain.progress.ports import ProgressStore

from .codec import progress_from_dict, progress_to_dict

logger = logging.getLogger(__name__)

metadata = MetaData()

vocabulary_progress = Table(
    "vocabulary_progress",
    metadata,
    Column("user_id", String, primary_key=True),
    Column("deck_id", String, primary_key=True),
    Column("version", Integer, nullable=False),
    Column("last_studied_at", DateTime, index=True),
    Column("data", JSON, nullable=False),
)


def sqlite_url(path: Path | str) -> str:
    return f"sqlite+aiosqlite:///{path}"


class SqliteProgressStore(ProgressStore):
    """
    Stores one JSON-encoded aggregate per (user, deck) row.

    A save only succeeds when the row still has the version the aggregate
    was loaded at; new aggregates rely on the primary key to detect races.
    The schema is created on first use.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.engine: AsyncEngine = create_async_engine(sqlite_url(self.path))
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def close(self) -> None:
        await self.engine.dispose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def load(self, user_id: str, deck_id: str) -> VocabularyProgress | None:
        await self._ensure_schema()
        stmt = select(vocabulary_progress.c.version, vocabulary_progress.c.data).where(
            vocabulary_progress.c.user_id == user_id,
            vocabulary_progress.c.deck_id == deck_id,
        )
        async with self.engine.connect() as conn:
            row = (await conn.execute(stmt)).first()
        if row is None:
            return None
        return self._decode(row.version, row.data)

    async def save(self, progress: VocabularyProgress) -> VocabularyProgress:
        await self._ensure_schema()
        saved = replace(progress, version=progress.version + 1)
        values = {
            "version": saved.version,
            "last_studied_at": self._naive_utc(saved.last_studied_at),
            "data": progress_to_dict(saved),
        }

        if progress.version == 0:
            try:
                async with self.engine.begin() as conn:
                    await conn.execute(
                        insert(vocabulary_progress).values(
                            user_id=saved.user_id, deck_id=saved.deck_id, **values
                        )
                    )
            except IntegrityError:
                raise ConcurrencyConflict(
                    progress.user_id, progress.deck_id, 0, await self._current_version(progress)
                ) from None
        else:
            async with self.engine.begin() as conn:
                result = await conn.execute(
                    update(vocabulary_progress)
                    .where(
                        vocabulary_progress.c.user_id == saved.user_id,
                        vocabulary_progress.c.deck_id == saved.deck_id,
                        vocabulary_progress.c.version == progress.version,
                    )
                    .values(**values)
                )
                updated = result.rowcount
            if updated != 1:
                raise ConcurrencyConflict(
                    progress.user_id,
                    progress.deck_id,
                    progress.version,
                    await self._current_version(progress),
                )

        logger.debug(f"Saved progress ({saved.user_id}, {saved.deck_id}) v{saved.version}")
        return saved

    async def list_for_user(self, user_id: str) -> list[VocabularyProgress]:
        await self._ensure_schema()
        stmt = (
            select(vocabulary_progress.c.version, vocabulary_progress.c.data)
            .where(vocabulary_progress.c.user_id == user_id)
            .order_by(vocabulary_progress.c.last_studied_at.desc().nulls_last())
        )
        async with self.engine.connect() as conn:
            rows = (await conn.execute(stmt)).all()
        return [self._decode(row.version, row.data) for row in rows]

    async def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if not self._schema_ready:
                async with self.engine.begin() as conn:
                    await conn.run_sync(metadata.create_all)
                self._schema_ready = True

    async def _current_version(self, progress: VocabularyProgress) -> int | None:
        stmt = select(vocabulary_progress.c.version).where(
            vocabulary_progress.c.user_id == progress.user_id,
            vocabulary_progress.c.deck_id == progress.deck_id,
        )
        async with self.engine.connect() as conn:
            return (await conn.execute(stmt)).scalar_one_or_none()

    @staticmethod
    def _naive_utc(value: datetime | None) -> datetime | None:
        # SQLite DATETIME has no offset; store UTC wall time.
        if value is None:
            return None
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    @staticmethod
    def _decode(version: int, data: dict) -> VocabularyProgress:
        progress = progress_from_dict(data)
        # The column is authoritative for concurrency checks.
        return replace(progress, version=version)
