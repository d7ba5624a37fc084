"""Clock implementations for the Clock port."""

from datetime import datetime, timedelta, timezone

from kioku.domain.progress.ports import Clock


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Clock pinned to a given instant. Naive datetimes are taken as UTC.
    """

    def __init__(self, at: datetime):
        self._at = ensure_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta) -> datetime:
        """Move the clock forward by timedelta keyword arguments (hours=1, days=2...)."""
        self._at = self._at + timedelta(**delta)
        return self._at


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
