"""Errors raised by the progress engine and its store boundary."""


class ProgressError(Exception):
    """Base class for progress engine errors."""


class InvalidItemReference(ProgressError):
    """The referenced deck, section or item does not exist in the deck content."""

    def __init__(
        self, deck_id: str, section_index: int | None = None, item_index: int | None = None
    ):
        self.deck_id = deck_id
        self.section_index = section_index
        self.item_index = item_index
        if section_index is None:
            msg = f"Deck not found: {deck_id}"
        elif item_index is None:
            msg = f"Section {section_index} not found in deck {deck_id}"
        else:
            msg = f"Item {section_index}/{item_index} not found in deck {deck_id}"
        super().__init__(msg)


class ConcurrencyConflict(ProgressError):
    """The stored aggregate changed since it was loaded."""

    def __init__(self, user_id: str, deck_id: str, expected: int, actual: int | None):
        self.user_id = user_id
        self.deck_id = deck_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Progress for user={user_id} deck={deck_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
