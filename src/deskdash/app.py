import asyncio
import logging
import logging.handlers
import os
import sys
import webbrowser
from datetime import date, datetime
from pathlib import Path
from typing import ClassVar, cast, override

from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.containers import Container, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Static

from deskdash import keymap, render
from deskdash.clients import weather as weather_client
from deskdash.clients.google_calendar import (
    AuthRequiredError,
    CalendarError,
    CalendarSession,
)
from deskdash.config import (
    Paths,
    Settings,
    SettingsError,
    ensure_dirs,
    load_environment,
    load_settings,
    save_settings,
)
from deskdash.db.calendar_cache import EventCache, load_cache, month_key, save_cache
from deskdash.db.notes import NoteRepository
from deskdash.focus import FocusRouter, Pane, PaneGeometry, dashboard_geometry
from deskdash.panels.base import (
    Command,
    EditNoteRequested,
    FetchMonthRequested,
    NoticeRequested,
    OpenUrlRequested,
    Signal,
)
from deskdash.panels.calendar import CalendarPanel
from deskdash.panels.notes import NotesPanel
from deskdash.panels.todo import TodoPanel
from deskdash.session import AppMode, Session
from deskdash.widgets.panes import HelpOverlay, PaneBox
from deskdash.widgets.screens import (
    FatalErrorScreen,
    NoteEditorScreen,
    SetupCalendarScreen,
    SetupWeatherScreen,
)

logger = logging.getLogger(__name__)

TICK_INTERVAL = 0.25
WEATHER_REFRESH_INTERVAL = 30 * 60


def _setup_logging(log_file: Path) -> None:
    """Configure logging to a rotating log file; the terminal belongs to the TUI."""
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(os.environ.get("DESKDASH_LOG_LEVEL", "WARNING").upper())

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=1_000_000, backupCount=3
    )
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Silence noisy third-party libraries
    for name in ("httpx", "httpcore", "googleapiclient.discovery_cache"):
        logging.getLogger(name).setLevel(logging.WARNING)


class DashboardScreen(Screen[None]):
    """Tasks and calendar on the left, notes on the right."""

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("tab", "cycle_focus", "Next Pane", priority=True),
        Binding("ctrl+k", "toggle_help", "Help"),
        Binding("escape", "close_help", "Close Help"),
        Binding("o", "command('add_task')", "Add"),
        Binding("i", "command('edit_task')", "Edit"),
        Binding("space", "command('toggle_task')", "Toggle"),
        Binding("ctrl+d", "command('delete_task')", "Delete"),
        Binding("o", "command('new_note')", "New Note"),
        Binding("enter", "command('open_note')", "Open"),
        Binding("e", "command('open_note')", "Open", show=False),
        Binding("ctrl+d", "command('delete_note')", "Delete"),
        Binding("slash", "command('filter')", "Filter"),
        Binding("up", "command('cursor_up')", "Up", show=False),
        Binding("k", "command('cursor_up')", "Up", show=False),
        Binding("down", "command('cursor_down')", "Down", show=False),
        Binding("j", "command('cursor_down')", "Down", show=False),
        Binding("left", "command('previous_day')", "Prev Day"),
        Binding("right", "command('next_day')", "Next Day"),
        Binding("up", "command('previous_week')", "Prev Week", show=False),
        Binding("down", "command('next_week')", "Next Week", show=False),
        Binding("pageup", "command('previous_month')", "Prev Month"),
        Binding("pagedown", "command('next_month')", "Next Month"),
        Binding("enter", "command('open_calendar')", "Open in Browser"),
        # Text capture consumes these keys in on_key; listed for the footer
        Binding("enter", "command('confirm')", "Confirm"),
        Binding("escape", "command('cancel')", "Cancel"),
    ]

    CSS: ClassVar[str] = """
    DashboardScreen {
        layers: base overlay;
    }

    #dashboard {
        layout: horizontal;
        height: 1fr;
    }

    #left-column {
        width: 1fr;
    }

    #tasks {
        height: 3fr;
    }

    #calendar {
        height: 4fr;
    }

    #notes {
        width: 1fr;
    }

    #too-small {
        display: none;
        height: 1fr;
        content-align: center middle;
    }

    DashboardScreen.-too-small #dashboard {
        display: none;
    }

    DashboardScreen.-too-small #too-small {
        display: block;
    }

    #status-line {
        height: 1;
        background: $panel;
    }
    """

    def __init__(self):
        super().__init__()
        self.help_visible = False

    @property
    def dash(self) -> "DeskDash":
        return cast("DeskDash", self.app)

    @override
    def compose(self) -> ComposeResult:
        with Container(id="dashboard"):
            with Vertical(id="left-column"):
                yield PaneBox("Tasks", Pane.TASKS.value)
                yield PaneBox("Calendar", Pane.CALENDAR.value)
            yield PaneBox("Notes", Pane.NOTES.value)
        yield Static("", id="too-small")
        yield HelpOverlay("", id="help")
        yield Static("", id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        self._update_size(self.app.size.width, self.app.size.height)
        self.refresh_panes()
        _ = self.set_interval(TICK_INTERVAL, self._tick)

    def on_resize(self, event: events.Resize) -> None:
        self._update_size(event.size.width, event.size.height)

    def _update_size(self, width: int, height: int) -> None:
        _ = self.set_class(render.too_small(width, height), "-too-small")
        self.query_one("#too-small", Static).update(render.render_too_small(width, height))

    def context(self) -> keymap.Context:
        router = self.dash.router
        return keymap.Context(
            mode=self.dash.session.mode,
            focus=router.focus,
            capturing=router.capturing,
            help_visible=self.help_visible,
        )

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        name = str(parameters[0]) if action == "command" and parameters else action
        return keymap.is_enabled(name, self.context())

    def _tick(self) -> None:
        self.dash.router.tick(datetime.now())
        self.refresh_panes()

    def refresh_panes(self) -> None:
        if not self.is_mounted:
            return
        dash = self.dash
        focus = dash.router.focus
        for pane in Pane:
            self.query_one(f"#{pane.value}", PaneBox).set_focused(pane is focus)
        self.query_one("#tasks", PaneBox).update(
            render.render_tasks(dash.todo, focus is Pane.TASKS)
        )
        self.query_one("#notes", PaneBox).update(
            render.render_notes(dash.notes, focus is Pane.NOTES)
        )
        self.query_one("#calendar", PaneBox).update(render.render_calendar(dash.calendar))
        self.query_one("#status-line", Static).update(render.render_status(focus))
        if self.help_visible:
            self.query_one("#help", HelpOverlay).update(render.render_help(self.context()))

    def after_input(self) -> None:
        self.refresh_panes()
        self.refresh_bindings()

    def action_command(self, name: str) -> None:
        signal = self.dash.router.dispatch(Command(name))
        self.dash.handle_signal(signal)
        self.after_input()

    def action_cycle_focus(self) -> None:
        _ = self.dash.router.cycle()
        self.after_input()

    def action_toggle_help(self) -> None:
        self.help_visible = not self.help_visible
        overlay = self.query_one("#help", HelpOverlay)
        if self.help_visible:
            overlay.show()
        else:
            overlay.hide()
        self.after_input()

    def action_close_help(self) -> None:
        self.help_visible = False
        self.query_one("#help", HelpOverlay).hide()
        self.after_input()

    def on_key(self, event: events.Key) -> None:
        if not self.dash.router.capturing:
            return
        event.stop()
        event.prevent_default()
        signal = self.dash.router.feed(event.key, event.character)
        self.dash.handle_signal(signal)
        self.after_input()

    def _geometry(self) -> PaneGeometry:
        notes = self.query_one("#notes", PaneBox).region
        calendar = self.query_one("#calendar", PaneBox).region
        if notes.width == 0 or calendar.height == 0:
            return dashboard_geometry(self.size.width, self.size.height)
        return PaneGeometry(right_x=notes.x, calendar_y=calendar.y)

    def on_click(self, event: events.Click) -> None:
        if self.help_visible:
            return
        _ = self.dash.router.click(event.screen_x, event.screen_y, self._geometry())
        self.after_input()


class DeskDash(App[None]):
    """Terminal dashboard for tasks, notes, Google Calendar and weather."""

    TITLE = "DeskDash"

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
    ]

    def __init__(
        self,
        paths: Paths,
        settings: Settings,
        first_run: bool = False,
        calendar: CalendarSession | None = None,
    ):
        super().__init__()
        self.paths = paths
        self.settings = settings
        self.first_run = first_run
        self.session = Session()
        self.calendar_session = calendar or CalendarSession(
            paths.credentials_file, paths.token_file
        )
        self.notes_repo = NoteRepository(paths.notes_dir)
        self.todo = TodoPanel(paths.todo_file)
        self.notes = NotesPanel(self.notes_repo)
        self.calendar = CalendarPanel(load_cache(paths.calendar_cache_file))
        self.router = FocusRouter(
            {
                Pane.TASKS: self.todo,
                Pane.NOTES: self.notes,
                Pane.CALENDAR: self.calendar,
            }
        )
        self.notes.load(settings.default_notes_created, self._mark_notes_seeded)
        self.dashboard = DashboardScreen()

    @override
    def get_default_screen(self) -> Screen:
        return self.dashboard

    def on_mount(self) -> None:
        mode = self.session.start(self.first_run, self.calendar_session.is_authorized())
        self._enter(mode)
        _ = self._fetch_weather()
        _ = self.set_interval(WEATHER_REFRESH_INTERVAL, self._fetch_weather)

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action == "quit":
            if self.session.fatal_error is not None:
                return True
            return keymap.is_enabled("quit", keymap.Context(mode=self.session.mode))
        return True

    @override
    async def action_quit(self) -> None:
        self.exit(return_code=1 if self.session.fatal_error is not None else 0)

    def _save_settings(self) -> None:
        try:
            save_settings(self.paths.settings_file, self.settings)
        except OSError as e:
            logger.error("Failed to save settings to %s: %s", self.paths.settings_file, e)

    def _mark_notes_seeded(self) -> None:
        self.settings.default_notes_created = True
        self._save_settings()

    def _enter(self, mode: AppMode) -> None:
        if mode is AppMode.SETUP_WEATHER:
            _ = self.push_screen(SetupWeatherScreen(), self._weather_chosen)
        elif mode is AppMode.SETUP_CALENDAR:
            _ = self.push_screen(
                SetupCalendarScreen(self.calendar_session), self._calendar_authorized
            )
        elif mode is AppMode.DASHBOARD:
            self._enter_dashboard()

    def _weather_chosen(self, city: str | None) -> None:
        if city:
            self.settings.location = city
            self._save_settings()
            _ = self._fetch_weather()
        self._enter(self.session.weather_done(self.calendar_session.is_authorized()))

    def _calendar_authorized(self, authorized: bool | None) -> None:
        if not authorized:
            return
        self.notify("Google Calendar connected")
        self._enter(self.session.calendar_authorized())

    def _enter_dashboard(self) -> None:
        self.handle_signal(self.calendar.start())
        self.dashboard.after_input()

    def handle_signal(self, signal: Signal | None) -> None:
        if isinstance(signal, FetchMonthRequested):
            _ = self._fetch_month(signal.month)
        elif isinstance(signal, EditNoteRequested):
            self._open_note(signal)
        elif isinstance(signal, OpenUrlRequested):
            self._open_url(signal.url)
        elif isinstance(signal, NoticeRequested):
            self.notify(signal.message, severity=signal.severity)

    def _open_note(self, request: EditNoteRequested) -> None:
        mode = self.session.open_note(request.path, request.content)
        if mode is not AppMode.EDITING_NOTE:
            return
        _ = self.push_screen(
            NoteEditorScreen(self.session, self.notes_repo, on_saved=self.notes.reload),
            self._editor_closed,
        )

    def _editor_closed(self, mode: AppMode | None) -> None:
        self.notes.reload()
        if mode is AppMode.SETUP_CALENDAR:
            self._enter(mode)
        self.dashboard.after_input()

    def _open_url(self, url: str) -> None:
        if not webbrowser.open(url):
            self.notify(f"Could not open browser: {url}", severity="warning")

    def _handle_auth_required(self) -> None:
        if self.session.auth_required():
            self.notify("Google Calendar needs to be authorized again", severity="warning")
            self._enter(AppMode.SETUP_CALENDAR)

    def _show_fatal(self, message: str) -> None:
        if self.session.fatal_error is not None:
            return
        self.session.fail(message)
        _ = self.push_screen(FatalErrorScreen(message))

    @work(exclusive=False)
    async def _fetch_month(self, month: date) -> None:
        key = month_key(month)
        try:
            events = await asyncio.to_thread(
                self.calendar_session.fetch_month_events, month
            )
        except AuthRequiredError as e:
            logger.warning("Calendar authorization required for %s: %s", key, e)
            self.calendar.apply_auth_required(key)
            self._handle_auth_required()
            return
        except CalendarError as e:
            logger.error("Calendar fetch failed for %s: %s", key, e)
            self.calendar.apply_failure(key, str(e))
            self._show_fatal(str(e))
            return

        self.calendar.apply_events(key, events)
        _ = self._persist_calendar_cache(dict(self.calendar.cache))
        self.dashboard.after_input()

    @work(exclusive=False)
    async def _persist_calendar_cache(self, snapshot: EventCache) -> None:
        try:
            await asyncio.to_thread(save_cache, self.paths.calendar_cache_file, snapshot)
        except OSError as e:
            logger.warning("Could not write calendar cache: %s", e)

    @work(exclusive=True, group="weather")
    async def _fetch_weather(self) -> None:
        self.calendar.begin_weather()
        try:
            weather = await asyncio.to_thread(
                weather_client.get_weather, self.settings.location
            )
        except weather_client.WeatherError as e:
            self.calendar.apply_weather_error(str(e))
        else:
            self.calendar.apply_weather(weather)
        self.dashboard.refresh_panes()


def main():
    paths = Paths.from_environment()
    try:
        ensure_dirs(paths)
        first_run = not paths.settings_file.exists()
        settings = load_settings(paths.settings_file)
    except (OSError, SettingsError) as e:
        print(f"deskdash: {e}", file=sys.stderr)
        sys.exit(1)

    load_environment(paths)
    _setup_logging(paths.log_file)

    app = DeskDash(paths, settings, first_run=first_run)
    app.run()
    sys.exit(app.return_code or 0)


if __name__ == "__main__":
    main()
