import os
from datetime import datetime, timezone

import pytest

from repetita.application.session_service import StudySessionService
from repetita.infrastructure.adapters.memory_store import InMemoryFlashcardStore

T0 = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def mock_home(tmp_path, monkeypatch):
    """Points HOME at a temp dir and clears REPETITA_* so no real config leaks in."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for key in list(os.environ):
        if key.startswith("REPETITA_"):
            monkeypatch.delenv(key)
    return home


class FakeClock:
    """Settable clock for deterministic scheduling."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryFlashcardStore()


@pytest.fixture
def service(store, clock):
    return StudySessionService(store=store, clock=clock)
