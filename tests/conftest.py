from datetime import datetime, timedelta

import pytest

from fidel.domain.models import Card
from fidel.infrastructure.adapters.card_sources import InMemoryCardSource
from fidel.infrastructure.adapters.memory_store import InMemoryStateStore


class FixedClock:
    """Controllable replacement for datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 4, 9, 0))


@pytest.fixture
def deck():
    return [
        Card("c1", "ሰላም", "Hello/Peace", "greetings", "beginner", pronunciation="selam"),
        Card("c2", "ይህ ስንት ነው?", "How much is this?", "shopping", "intermediate"),
        Card("c3", "ሐኪም ያስፈልገኛል", "I need a doctor", "emergency", "advanced"),
    ]


@pytest.fixture
def card_source(deck):
    return InMemoryCardSource(deck)


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config and data from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for var in ("FIDEL_DATA_DIR", "FIDEL_CARDS_FILE", "FIDEL_LEARNER_ID", "FIDEL_STUDY_MODE"):
        monkeypatch.delenv(var, raising=False)
    return home
