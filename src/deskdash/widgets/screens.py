"""Full-screen views that supersede the dashboard: note editor, setup and fatal error."""

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from typing import ClassVar, override

from textual import work
from textual.app import ComposeResult
from textual.binding import Binding, BindingType
from textual.containers import Container, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Input, Markdown, Static, TextArea

from deskdash import keymap
from deskdash.clients.google_calendar import AuthFlowError, CalendarSession
from deskdash.db.notes import NoteRef, NoteRepository, display_title
from deskdash.session import AppMode, EditorMode, Session
from deskdash.widgets.modals import ExitConfirmationModal

logger = logging.getLogger(__name__)

SAVED_MESSAGE = "✅ Note saved!"


class NoteEditorScreen(Screen[AppMode]):
    """Markdown preview with a source editor behind ``i``.

    Dismisses with the mode the session moved to once the editor is left.
    """

    AUTO_FOCUS = None

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("i", "edit_source", "Edit"),
        Binding("ctrl+s", "save_note", "Save", priority=True),
        Binding("escape", "leave_editor", "Back", priority=True),
    ]

    CSS: ClassVar[str] = """
    #editor-title {
        background: $accent;
        color: $text;
        text-style: bold;
        padding: 0 1;
    }

    #note-preview {
        height: 1fr;
        padding: 0 1;
    }

    #note-source {
        height: 1fr;
    }

    #editor-status {
        color: $text-muted;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        session: Session,
        repo: NoteRepository,
        on_saved: Callable[[], None] | None = None,
    ):
        super().__init__()
        self.session = session
        self.repo = repo
        self._on_saved = on_saved

    @override
    def compose(self) -> ComposeResult:
        editor = self.session.editor
        content = editor.content if editor else ""
        title = display_title(editor.path.name) if editor else ""
        yield Static(title, id="editor-title")
        yield Markdown(content, id="note-preview")
        yield TextArea(content, id="note-source")
        yield Static("", id="editor-status")
        yield Footer()

    def on_mount(self) -> None:
        self._show_mode()

    def _keymap_context(self) -> keymap.Context:
        editor = self.session.editor
        return keymap.Context(
            mode=self.session.mode,
            editor_mode=editor.mode if editor else None,
        )

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in ("edit_source", "save_note", "leave_editor"):
            return keymap.is_enabled(action, self._keymap_context())
        return True

    def _show_mode(self) -> None:
        editor = self.session.editor
        if editor is None:
            return
        preview = self.query_one("#note-preview", Markdown)
        source = self.query_one("#note-source", TextArea)
        in_source = editor.mode is EditorMode.SOURCE
        preview.display = not in_source
        source.display = in_source
        if in_source:
            _ = source.focus()
        else:
            self.set_focus(None)
            _ = preview.update(editor.content)
        self._update_status()
        self.refresh_bindings()

    def _update_status(self) -> None:
        editor = self.session.editor
        if editor is None:
            return
        label = "SOURCE" if editor.mode is EditorMode.SOURCE else "PREVIEW"
        if editor.modified:
            label += " • modified"
        self.query_one("#editor-status", Static).update(label)

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        self.session.update_content(event.text_area.text)
        self._update_status()

    def action_edit_source(self) -> None:
        self.session.enter_source()
        self._show_mode()

    def action_save_note(self) -> None:
        editor = self.session.editor
        if editor is None:
            return
        ref = NoteRef(title=display_title(editor.path.name), path=editor.path)
        try:
            self.repo.write(ref, editor.content)
        except OSError as e:
            logger.error("Failed to save note %s: %s", editor.path, e)
            self.notify(f"Could not save note: {e}", severity="error")
            return
        self.session.saved()
        self._update_status()
        self.notify(SAVED_MESSAGE, timeout=3)
        if self._on_saved is not None:
            self._on_saved()

    def action_leave_editor(self) -> None:
        source = self.query_one("#note-source", TextArea)
        if self.session.editor and self.session.editor.mode is EditorMode.SOURCE:
            self.session.update_content(source.text)

        mode = self.session.leave_editor()
        if mode is AppMode.EXIT_CONFIRMATION:
            _ = self.app.push_screen(ExitConfirmationModal(), self._resolve_exit)
        elif mode is AppMode.EDITING_NOTE:
            self._show_mode()
        else:
            _ = self.dismiss(mode)

    def _resolve_exit(self, discard: bool | None) -> None:
        _ = self.session.resolve_exit(bool(discard))
        editor = self.session.editor
        if discard and editor is not None:
            self.query_one("#note-source", TextArea).load_text(editor.content)
        self._show_mode()


class SetupWeatherScreen(Screen[str | None]):
    """Asks for the weather location. Dismisses with the city, or None when skipped."""

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("enter", "submit_city", "Continue"),
        Binding("escape", "skip_setup", "Skip"),
    ]

    CSS: ClassVar[str] = """
    SetupWeatherScreen {
        align: center middle;
    }

    #setup-dialog {
        width: 70;
        height: auto;
        border: thick $accent;
        padding: 1 2;
    }

    .setup-title {
        text-style: bold;
        margin-bottom: 1;
    }

    .setup-hint {
        color: $text-muted;
        margin-top: 1;
    }
    """

    @override
    def compose(self) -> ComposeResult:
        with Vertical(id="setup-dialog"):
            yield Static("Welcome to DeskDash", classes="setup-title")
            yield Static("Which city should the weather readout use?")
            yield Input(placeholder="City, e.g. Athens", id="city-input")
            yield Static("[Enter] Continue  [Esc] Skip", classes="setup-hint")
        yield Footer()

    def on_mount(self) -> None:
        _ = self.query_one("#city-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit(event.value)

    def action_submit_city(self) -> None:
        self._submit(self.query_one("#city-input", Input).value)

    def _submit(self, value: str) -> None:
        city = value.strip()
        if not city:
            return
        _ = self.dismiss(city)

    def action_skip_setup(self) -> None:
        _ = self.dismiss(None)


class SetupCalendarScreen(Screen[bool]):
    """Walks the user through Google authorization. Dismisses with True once a token is saved."""

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("ctrl+o", "open_auth_url", "Open in browser"),
        Binding("enter", "submit_code", "Submit code"),
    ]

    CSS: ClassVar[str] = """
    SetupCalendarScreen {
        align: center middle;
    }

    #setup-dialog {
        width: 90;
        height: auto;
        border: thick $accent;
        padding: 1 2;
    }

    .setup-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #auth-url {
        color: $accent;
        margin: 1 0;
    }

    #auth-code {
        display: none;
    }

    #auth-code.-manual {
        display: block;
    }

    #auth-error {
        color: $error;
    }
    """

    def __init__(self, calendar: CalendarSession):
        super().__init__()
        self.calendar = calendar
        self._auth_url: str | None = None

    @override
    def compose(self) -> ComposeResult:
        with Container(id="setup-dialog"):
            yield Static("Connect Google Calendar", classes="setup-title")
            yield Static("", id="auth-instructions")
            yield Static("", id="auth-url")
            yield Input(placeholder="Paste the authorization code here", id="auth-code")
            yield Static("", id="auth-error")
        yield Footer()

    def on_mount(self) -> None:
        self._start()

    def on_unmount(self) -> None:
        self.calendar.close()

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action in ("open_auth_url", "submit_code"):
            ctx = keymap.Context(
                mode=AppMode.SETUP_CALENDAR, manual_flow=self.calendar.manual_flow
            )
            return keymap.is_enabled(action, ctx)
        return True

    def _show_error(self, message: str) -> None:
        self.query_one("#auth-error", Static).update(message)

    def _start(self) -> None:
        self._show_error("")
        try:
            self._auth_url = self.calendar.start_auth()
        except AuthFlowError as e:
            self._auth_url = None
            self._show_error(f"{e}\nPress ctrl+o to try again.")
            return

        code_input = self.query_one("#auth-code", Input)
        instructions = self.query_one("#auth-instructions", Static)
        self.query_one("#auth-url", Static).update(self._auth_url)
        if self.calendar.manual_flow:
            instructions.update(
                "Press ctrl+o to open this URL, approve access, then paste the code below:"
            )
            _ = code_input.add_class("-manual")
            _ = code_input.focus()
        else:
            instructions.update(
                "Press ctrl+o to open this URL and approve access. "
                "DeskDash continues automatically once you are done."
            )
            _ = self._await_authorization()
        self.refresh_bindings()

    def action_open_auth_url(self) -> None:
        if self._auth_url is None:
            self._start()
        if self._auth_url is None:
            return
        if not webbrowser.open(self._auth_url):
            self.notify("Could not open a browser, copy the URL instead", severity="warning")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.action_submit_code()

    def action_submit_code(self) -> None:
        code = self.query_one("#auth-code", Input).value.strip()
        if not code:
            return
        _ = self._submit_code(code)

    @work(exclusive=True, group="calendar-auth")
    async def _submit_code(self, code: str) -> None:
        try:
            await asyncio.to_thread(self.calendar.complete_auth, code)
        except AuthFlowError as e:
            self.query_one("#auth-code", Input).value = ""
            self._show_error(f"{e}\nCheck the code and try again.")
            return
        _ = self.dismiss(True)

    @work(exclusive=True, group="calendar-auth")
    async def _await_authorization(self) -> None:
        try:
            await asyncio.to_thread(self.calendar.wait_for_auth)
        except AuthFlowError as e:
            self._auth_url = None
            self._show_error(f"Authorization failed: {e}\nPress ctrl+o to try again.")
            return
        _ = self.dismiss(True)


class FatalErrorScreen(Screen[None]):
    """Unrecoverable calendar failure. Only quitting is possible from here."""

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("q", "app.quit", "Quit"),
    ]

    CSS: ClassVar[str] = """
    FatalErrorScreen {
        align: center middle;
    }

    #fatal-dialog {
        width: 80;
        height: auto;
        border: thick $error;
        padding: 1 2;
    }

    #fatal-title {
        color: $error;
        text-style: bold;
        margin-bottom: 1;
    }
    """

    def __init__(self, message: str):
        super().__init__()
        self.message = message

    @override
    def compose(self) -> ComposeResult:
        with Container(id="fatal-dialog"):
            yield Static("Calendar Error", id="fatal-title")
            yield Static(self.message, id="fatal-message")
            yield Static("Press q or ctrl+q to quit.", classes="setup-hint")
        yield Footer()
