"""End-to-end runs of the dashboard under Textual's pilot."""

from datetime import date
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import TransportError

from deskdash.app import DeskDash
from deskdash.clients.google_calendar import (
    AuthFlowError,
    AuthRequiredError,
    CalendarError,
    CalendarSession,
)
from deskdash.config import Settings, load_settings
from deskdash.db.calendar_cache import load_cache, month_key
from deskdash.db.notes import NoteRepository
from deskdash.db.tasks import load_tasks, save_tasks
from deskdash.focus import Pane
from deskdash.session import AppMode
from deskdash.widgets.modals import ExitConfirmationModal
from deskdash.widgets.screens import (
    FatalErrorScreen,
    NoteEditorScreen,
    SetupCalendarScreen,
    SetupWeatherScreen,
)
from tests import fake_data

SIZE = (160, 45)


async def settle(app: DeskDash, pilot) -> None:
    """Let workers started by other workers finish too."""
    for _ in range(3):
        await pilot.pause()
        await app.workers.wait_for_complete()
    await pilot.pause()


@pytest.fixture(autouse=True)
def browser():
    with (
        patch(
            "deskdash.clients.weather.get_weather",
            return_value=fake_data.fake_weather(),
        ),
        patch("deskdash.app.webbrowser.open", return_value=True) as mock_open,
    ):
        yield mock_open


@pytest.fixture
def make_app(paths, calendar_session):
    save_tasks(paths.todo_file, fake_data.fake_tasks())

    def make(first_run: bool = False) -> DeskDash:
        settings = Settings(default_notes_created=True)
        return DeskDash(paths, settings, first_run=first_run, calendar=calendar_session)

    return make


async def test_dashboard_loads_tasks_and_current_month(make_app, paths, calendar_session):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await settle(app, pilot)

        assert app.screen is app.dashboard
        assert app.session.mode is AppMode.DASHBOARD
        assert [t.title for t in app.todo.tasks] == [
            t.title for t in fake_data.fake_tasks()
        ]
        key = month_key(date.today())
        calendar_session.fetch_month_events.assert_called_once_with(
            date.today().replace(day=1)
        )
        assert key in app.calendar.cache
        assert app.calendar.weather == fake_data.fake_weather()

    assert key in load_cache(paths.calendar_cache_file)


async def test_add_task(make_app, paths):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("o")
        assert app.router.capturing

        # Keys bound on the dashboard are typed while a task is being entered
        await pilot.press("o", "i", "l", "space", "b", "i", "k", "e", "enter")
        await pilot.pause()

        assert not app.router.capturing
        assert app.todo.tasks[-1].title == "oil bike"

    assert load_tasks(paths.todo_file)[-1].title == "oil bike"


async def test_tab_cycles_focus(make_app):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("tab")
        assert app.router.focus is Pane.NOTES
        await pilot.press("tab")
        assert app.router.focus is Pane.CALENDAR
        await pilot.press("tab")
        assert app.router.focus is Pane.TASKS


async def test_tab_ignored_while_typing(make_app):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("o", "tab")
        assert app.router.focus is Pane.TASKS
        await pilot.press("escape")
        assert not app.router.capturing


async def test_click_focuses_pane(make_app):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.pause()
        _ = await pilot.click(offset=(SIZE[0] - 10, 5))
        assert app.router.focus is Pane.NOTES


async def test_help_overlay(make_app):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("ctrl+k")
        assert app.dashboard.help_visible
        await pilot.press("escape")
        assert not app.dashboard.help_visible


async def test_small_terminal(make_app):
    app = make_app()
    async with app.run_test(size=(80, 24)) as pilot:
        await pilot.pause()
        assert app.dashboard.has_class("-too-small")


async def test_first_run_asks_for_city(make_app, paths):
    app = make_app(first_run=True)
    async with app.run_test(size=SIZE) as pilot:
        await pilot.pause()
        assert isinstance(app.screen, SetupWeatherScreen)

        await pilot.press(*"lisbon", "enter")
        await pilot.pause()

        assert app.screen is app.dashboard
        assert app.settings.location == "lisbon"

    assert load_settings(paths.settings_file).location == "lisbon"


async def test_unauthorized_shows_calendar_setup(make_app, calendar_session):
    calendar_session.is_authorized.return_value = False
    calendar_session.start_auth.return_value = "https://accounts.google.com/o/oauth2/auth"
    calendar_session.wait_for_auth.side_effect = AuthFlowError("authentication timeout")
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await settle(app, pilot)

        assert isinstance(app.screen, SetupCalendarScreen)
        assert app.session.mode is AppMode.SETUP_CALENDAR
        calendar_session.fetch_month_events.assert_not_called()


async def test_authorization_opens_dashboard(make_app, calendar_session):
    calendar_session.is_authorized.return_value = False
    calendar_session.start_auth.return_value = "https://accounts.google.com/o/oauth2/auth"
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await settle(app, pilot)

        assert app.screen is app.dashboard
        assert app.session.mode is AppMode.DASHBOARD
        calendar_session.fetch_month_events.assert_called()


async def test_calendar_failure_is_fatal(make_app, calendar_session):
    calendar_session.fetch_month_events.side_effect = CalendarError(
        "unable to retrieve events"
    )
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await settle(app, pilot)

        assert isinstance(app.screen, FatalErrorScreen)
        await pilot.press("q")

    assert app.return_code == 1


async def test_quit(make_app):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("ctrl+q")
    assert app.return_code == 0


async def test_edit_and_save_note(make_app, paths):
    repo = NoteRepository(paths.notes_dir)
    ref = repo.create("Ideas")
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("tab", "enter")
        await pilot.pause()
        assert isinstance(app.screen, NoteEditorScreen)

        await pilot.press("i")
        await pilot.pause()
        await pilot.press("x")
        await pilot.pause()
        await pilot.press("ctrl+s")
        await pilot.pause()

        assert repo.read(ref).startswith("x")

        await pilot.press("escape")
        await pilot.press("escape")
        await pilot.pause()
        assert app.screen is app.dashboard
        assert app.session.mode is AppMode.DASHBOARD


async def test_discard_unsaved_note(make_app, paths):
    repo = NoteRepository(paths.notes_dir)
    ref = repo.create("Ideas")
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("tab", "enter")
        await pilot.pause()
        await pilot.press("i")
        await pilot.pause()
        await pilot.press("x")
        await pilot.pause()

        # Quitting is not possible while a note is open
        await pilot.press("ctrl+q")
        assert app.is_running

        await pilot.press("escape")
        await pilot.pause()
        assert isinstance(app.screen, ExitConfirmationModal)

        # y only moves the selection; enter confirms it
        await pilot.press("y")
        await pilot.pause()
        assert isinstance(app.screen, ExitConfirmationModal)
        assert app.screen.discard_selected

        await pilot.press("enter")
        await pilot.pause()
        assert isinstance(app.screen, NoteEditorScreen)
        assert app.session.editor is not None
        assert not app.session.editor.modified

        await pilot.press("escape")
        await pilot.pause()
        assert app.screen is app.dashboard

    assert repo.read(ref) == "# Ideas\n\n"


async def test_expired_token_offline_is_fatal(paths):
    save_tasks(paths.todo_file, fake_data.fake_tasks())
    stored = MagicMock(valid=False, refresh_token="refresh")
    stored.refresh.side_effect = TransportError("offline")
    session = CalendarSession(paths.credentials_file, paths.token_file, ports=(0,))
    app = DeskDash(paths, Settings(default_notes_created=True), calendar=session)
    with patch(
        "deskdash.clients.google_calendar.Credentials.from_authorized_user_file",
        return_value=stored,
    ):
        async with app.run_test(size=SIZE) as pilot:
            await settle(app, pilot)

            assert isinstance(app.screen, FatalErrorScreen)
            assert app.calendar.in_flight == set()


async def test_rejected_token_opens_calendar_setup(make_app, calendar_session):
    calendar_session.fetch_month_events.side_effect = AuthRequiredError(
        "authentication required"
    )
    calendar_session.start_auth.return_value = "https://accounts.google.com/o/oauth2/auth"
    calendar_session.wait_for_auth.side_effect = AuthFlowError("authentication timeout")
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await settle(app, pilot)

        assert isinstance(app.screen, SetupCalendarScreen)
        assert app.session.mode is AppMode.SETUP_CALENDAR
        assert app.calendar.in_flight == set()


async def test_filter_tasks(make_app, paths):
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        await pilot.press("slash", "r", "e", "n")
        assert app.router.capturing
        assert len(app.todo.visible) == 1

        await pilot.press("enter", "space")
        await pilot.pause()

        assert not app.router.capturing
        assert app.todo.query == "ren"

    assert load_tasks(paths.todo_file)[3].done is True


async def test_failed_note_delete_notifies(make_app, paths):
    repo = NoteRepository(paths.notes_dir)
    _ = repo.create("Ideas")
    app = make_app()
    async with app.run_test(size=SIZE) as pilot:
        with (
            patch.object(app.notes_repo, "delete", side_effect=PermissionError("read-only")),
            patch.object(app, "notify") as notify,
        ):
            await pilot.press("tab", "ctrl+d")
            await pilot.pause()

        assert [n.title for n in app.notes.notes] == ["Ideas"]
        notify.assert_called_once()
        assert notify.call_args.kwargs["severity"] == "error"
