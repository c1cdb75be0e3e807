"""Top-level application modes and the transitions between them."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class AppMode(Enum):
    DASHBOARD = "dashboard"
    EDITING_NOTE = "editing_note"
    SETUP_WEATHER = "setup_weather"
    SETUP_CALENDAR = "setup_calendar"
    EXIT_CONFIRMATION = "exit_confirmation"


class EditorMode(Enum):
    PREVIEW = "preview"
    SOURCE = "source"


@dataclass
class NoteEditorState:
    """Working copy of an open note plus the snapshot used to detect changes."""

    path: Path
    content: str
    original: str
    mode: EditorMode = EditorMode.PREVIEW

    @property
    def modified(self) -> bool:
        return self.content != self.original


class Session:
    """Owns the cross-cutting mode that supersedes panel-level routing.

    Every transition returns the resulting mode so the UI layer can mirror it.
    """

    def __init__(self):
        self.mode = AppMode.DASHBOARD
        self.editor: NoteEditorState | None = None
        self.fatal_error: str | None = None
        self.auth_pending = False

    @property
    def can_quit(self) -> bool:
        return self.mode is not AppMode.EDITING_NOTE

    def _set(self, mode: AppMode) -> AppMode:
        if mode is not self.mode:
            logger.debug("Mode %s -> %s", self.mode.value, mode.value)
        self.mode = mode
        return mode

    def start(self, first_run: bool, authorized: bool) -> AppMode:
        if first_run:
            return self._set(AppMode.SETUP_WEATHER)
        if not authorized:
            return self._set(AppMode.SETUP_CALENDAR)
        return self._set(AppMode.DASHBOARD)

    def weather_done(self, authorized: bool) -> AppMode:
        """Leave the weather prompt, whether a city was entered or skipped."""
        if not authorized:
            return self._set(AppMode.SETUP_CALENDAR)
        return self._set(AppMode.DASHBOARD)

    def calendar_authorized(self) -> AppMode:
        self.auth_pending = False
        return self._set(AppMode.DASHBOARD)

    def auth_required(self) -> bool:
        """Route back to calendar setup. Returns True when the mode changed.

        While a note is open the switch waits until the editor is closed.
        """
        if self.mode is AppMode.DASHBOARD:
            _ = self._set(AppMode.SETUP_CALENDAR)
            return True
        if self.mode in (AppMode.EDITING_NOTE, AppMode.EXIT_CONFIRMATION):
            self.auth_pending = True
        return False

    def fail(self, message: str) -> None:
        self.fatal_error = message

    def open_note(self, path: Path, content: str) -> AppMode:
        if self.mode is not AppMode.DASHBOARD:
            return self.mode
        self.editor = NoteEditorState(path=path, content=content, original=content)
        return self._set(AppMode.EDITING_NOTE)

    def enter_source(self) -> None:
        if self.editor is not None:
            self.editor.mode = EditorMode.SOURCE

    def update_content(self, content: str) -> None:
        if self.editor is not None:
            self.editor.content = content

    def saved(self) -> None:
        """The working copy was written to disk and becomes the new snapshot."""
        if self.editor is not None:
            self.editor.original = self.editor.content

    def leave_editor(self) -> AppMode:
        editor = self.editor
        if editor is None:
            return self.mode
        if editor.mode is EditorMode.SOURCE:
            if editor.modified:
                return self._set(AppMode.EXIT_CONFIRMATION)
            editor.mode = EditorMode.PREVIEW
            return self.mode

        self.editor = None
        if self.auth_pending:
            self.auth_pending = False
            return self._set(AppMode.SETUP_CALENDAR)
        return self._set(AppMode.DASHBOARD)

    def resolve_exit(self, discard: bool) -> AppMode:
        """Answer the unsaved-changes prompt.

        Discarding restores the snapshot and shows the preview; otherwise the
        source editor is resumed with the edits intact.
        """
        if self.mode is not AppMode.EXIT_CONFIRMATION or self.editor is None:
            return self.mode
        if discard:
            self.editor.content = self.editor.original
            self.editor.mode = EditorMode.PREVIEW
        return self._set(AppMode.EDITING_NOTE)
