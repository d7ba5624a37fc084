from datetime import datetime, timezone

import pytest

from kioku.application.clock import FixedClock
from kioku.application.progress.service import ProgressService
from kioku.infrastructure.adapters.content import InMemoryDeckContentProvider
from kioku.infrastructure.adapters.stores import InMemoryProgressStore

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def clock():
    return FixedClock(T0)


@pytest.fixture
def content():
    """Deck 'n5' has three sections of 10, 4 and 0 items."""
    return InMemoryDeckContentProvider(
        {"n5": [10, 4, 0], "n4": [6]},
        answers={"n5": {(0, 0): "mizu", (0, 1): "ocha"}},
    )


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def service(store, content, clock):
    return ProgressService(store=store, content=content, clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config and the database
    monkeypatch.setenv("HOME", str(home))
    for var in ("KIOKU_BACKEND", "KIOKU_DATABASE_PATH", "KIOKU_DECKS_DIR"):
        monkeypatch.delenv(var, raising=False)
    return home
