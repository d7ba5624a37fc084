"""
Deck content providers.

The progress engine only needs to know how many items each section holds,
and, for typed fill-in attempts, the answer an item expects. These adapters
read that from static data or deck files.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import yaml

from kioku.domain.progress.models import ItemKey
from kioku.domain.progress.ports import DeckContentProvider

logger = logging.getLogger(__name__)


class InMemoryDeckContentProvider(DeckContentProvider):
    """
    Section sizes from a static mapping of deck_id -> [size of section 0, size of section 1, ...].

    Expected answers are optional: deck_id -> {(section_index, item_index): answer}.
    """

    def __init__(
        self,
        decks: dict[str, list[int]] | None = None,
        answers: dict[str, dict[tuple[int, int], str]] | None = None,
    ):
        self._decks = {k: list(v) for k, v in (decks or {}).items()}
        self._answers: dict[str, dict[ItemKey, str]] = {}
        for deck_id, deck_answers in (answers or {}).items():
            self._answers[deck_id] = {ItemKey(*k): v for k, v in deck_answers.items()}

    def add_deck(
        self,
        deck_id: str,
        section_sizes: list[int],
        answers: dict[tuple[int, int], str] | None = None,
    ) -> None:
        self._decks[deck_id] = list(section_sizes)
        self._answers[deck_id] = {ItemKey(*k): v for k, v in (answers or {}).items()}

    async def get_section_sizes(self, deck_id: str) -> list[int] | None:
        sizes = self._decks.get(deck_id)
        return list(sizes) if sizes is not None else None

    async def get_expected_answer(
        self, deck_id: str, section_index: int, item_index: int
    ) -> str | None:
        return self._answers.get(deck_id, {}).get(ItemKey(section_index, item_index))


class YamlDeckContentProvider(DeckContentProvider):
    """
    Reads decks from ``<decks_dir>/<deck_id>.yaml`` (or ``.yml``).

    Expected layout::

        title: JLPT N5 Basics
        sections:
          - title: Food & Drinks
            items:
              - word: 水
                reading: みず
                meaning: water
                answer: mizu   # optional, defaults to word
              - お茶           # plain strings are their own answer

    Section index is the position in ``sections``; its size is the number of items.
    """

    def __init__(self, decks_dir: Path):
        self.decks_dir = Path(decks_dir)

    async def get_section_sizes(self, deck_id: str) -> list[int] | None:
        data = await self._load(deck_id)
        if data is None:
            return None
        return parse_section_sizes(data, source=deck_id)

    async def get_expected_answer(
        self, deck_id: str, section_index: int, item_index: int
    ) -> str | None:
        data = await self._load(deck_id)
        if data is None:
            return None
        return parse_expected_answer(data, section_index, item_index, source=deck_id)

    async def _load(self, deck_id: str) -> Any | None:
        path = self._find_deck_file(deck_id)
        if path is None:
            logger.debug(f"No deck file for {deck_id} in {self.decks_dir}")
            return None
        text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return yaml.safe_load(text) or {}

    def _find_deck_file(self, deck_id: str) -> Path | None:
        # Deck IDs are file stems; refuse anything that could escape the directory.
        if not deck_id or Path(deck_id).name != deck_id:
            return None
        for suffix in (".yaml", ".yml"):
            candidate = self.decks_dir / f"{deck_id}{suffix}"
            if candidate.is_file():
                return candidate
        return None


def _sections(data: Any, source: str) -> list[Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{source}: deck file must be a mapping")

    sections = data.get("sections") or []
    if not isinstance(sections, list):
        raise ValueError(f"{source}: 'sections' must be a list")
    return sections


def _items(section: Any) -> list[Any]:
    items = section.get("items") if isinstance(section, dict) else None
    return items if isinstance(items, list) else []


def parse_section_sizes(data: Any, source: str = "<deck>") -> list[int]:
    """
    Extract section sizes from a parsed deck document.

    Raises:
        ValueError: The document does not have a list of sections.
    """
    return [len(_items(section)) for section in _sections(data, source)]


def parse_expected_answer(
    data: Any, section_index: int, item_index: int, source: str = "<deck>"
) -> str | None:
    """
    Expected answer of one item: its ``answer`` field, else its ``word``.
    A plain string item is its own answer.
    """
    sections = _sections(data, source)
    if not 0 <= section_index < len(sections):
        return None
    items = _items(sections[section_index])
    if not 0 <= item_index < len(items):
        return None

    item = items[item_index]
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        value = item.get("answer", item.get("word"))
        return str(value) if value is not None else None
    return None
