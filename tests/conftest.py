"""Shared fixtures: an isolated directory layout and fake collaborators."""

from unittest.mock import MagicMock

import pytest

from deskdash.clients.google_calendar import CalendarSession
from deskdash.config import Paths, ensure_dirs
from deskdash.db.notes import NoteRepository
from tests import fake_data


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep developer settings out of the tests."""
    monkeypatch.delenv("DESKDASH_CREDENTIALS_FILE", raising=False)


@pytest.fixture
def paths(tmp_path):
    """Every deskdash directory below a temporary root, already created."""
    paths = Paths.under(tmp_path)
    ensure_dirs(paths)
    return paths


@pytest.fixture
def repo(paths):
    return NoteRepository(paths.notes_dir)


@pytest.fixture
def calendar_session():
    """An authorized calendar session serving fake_data.fake_events."""
    session = MagicMock(spec=CalendarSession)
    session.is_authorized.return_value = True
    session.manual_flow = False
    session.fetch_month_events.side_effect = fake_data.fake_events
    return session
