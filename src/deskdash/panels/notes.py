"""Notes panel: list markdown notes, create, delete, filter and open them."""

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from deskdash.db.notes import NoteRef, NoteRepository, seed_default_notes
from deskdash.panels.base import (
    Command,
    EditNoteRequested,
    NoticeRequested,
    Signal,
    TextBuffer,
    clamp_cursor,
    feed_buffer,
    matching_indices,
)

logger = logging.getLogger(__name__)

TITLE_LIMIT = 100


class NotesState(Enum):
    LIST = "list"
    CREATE = "create"
    FILTER = "filter"


class NotesPanel:
    def __init__(self, repo: NoteRepository):
        self.repo = repo
        self.notes: list[NoteRef] = []
        self.cursor = 0
        self.state = NotesState.LIST
        self.buffer = TextBuffer(limit=TITLE_LIMIT)
        self.query = ""

    def load(
        self,
        default_notes_created: bool = True,
        mark_seeded: Callable[[], None] | None = None,
    ) -> None:
        """Populate the list, seeding the default notes on a first run."""
        if seed_default_notes(self.repo, default_notes_created) and mark_seeded:
            mark_seeded()
        self.reload()

    def reload(self) -> None:
        try:
            self.notes = self.repo.list()
        except OSError as e:
            logger.error("Could not list notes in %s: %s", self.repo.notes_dir, e)
            return
        self.cursor = clamp_cursor(self.cursor, len(self.visible))

    @property
    def capturing(self) -> bool:
        return self.state is not NotesState.LIST

    @property
    def visible(self) -> list[int]:
        if not self.query:
            return list(range(len(self.notes)))
        return matching_indices(self.notes, self.query)

    @property
    def selected(self) -> NoteRef | None:
        visible = self.visible
        if not visible:
            return None
        return self.notes[visible[self.cursor]]

    def handle(self, command: Command) -> Signal | None:
        if self.capturing:
            if command is Command.CONFIRM:
                self.confirm()
            elif command is Command.CANCEL:
                self.cancel()
            return None

        if command is Command.NEW_NOTE:
            self.query = ""
            self.buffer.reset()
            self.state = NotesState.CREATE
        elif command is Command.FILTER:
            self.buffer.reset(self.query)
            self.state = NotesState.FILTER
        elif command is Command.DELETE_NOTE:
            return self.delete()
        elif command is Command.OPEN_NOTE:
            return self.open()
        elif command is Command.CURSOR_UP:
            self.cursor = clamp_cursor(self.cursor - 1, len(self.visible))
        elif command is Command.CURSOR_DOWN:
            self.cursor = clamp_cursor(self.cursor + 1, len(self.visible))
        return None

    def feed(self, key: str, character: str | None) -> Signal | None:
        if not self.capturing:
            return None
        outcome = feed_buffer(self.buffer, key, character)
        if outcome is not None:
            return self.handle(outcome)
        if self.state is NotesState.FILTER:
            self.query = self.buffer.value
            self.cursor = 0
        return None

    def tick(self, now: datetime) -> None:
        pass

    def confirm(self) -> None:
        """Create the note or keep the filter; an empty title keeps the panel in create mode."""
        if self.state is NotesState.FILTER:
            self.buffer.reset()
            self.state = NotesState.LIST
            return

        title = self.buffer.value.strip()
        if not title:
            return
        try:
            ref = self.repo.create(title)
        except OSError as e:
            logger.error("Failed to create note %r: %s", title, e)
        else:
            self.notes.append(ref)
            self.cursor = len(self.notes) - 1
        self.buffer.reset()
        self.state = NotesState.LIST

    def cancel(self) -> None:
        if self.state is NotesState.FILTER:
            self.query = ""
            self.cursor = clamp_cursor(self.cursor, len(self.notes))
        self.buffer.reset()
        self.state = NotesState.LIST

    def delete(self) -> NoticeRequested | None:
        visible = self.visible
        if not visible:
            return None
        ref = self.notes[visible[self.cursor]]
        try:
            self.repo.delete(ref)
        except OSError as e:
            logger.error("Failed to delete note %s: %s", ref.path, e)
            return NoticeRequested(f"Could not delete {ref.title}: {e}", severity="error")
        del self.notes[visible[self.cursor]]
        self.cursor = clamp_cursor(self.cursor, len(self.visible))
        return None

    def open(self) -> EditNoteRequested | None:
        ref = self.selected
        if ref is None:
            return None
        try:
            content = self.repo.read(ref)
        except OSError as e:
            content = f"Could not read file: {e}"
        return EditNoteRequested(path=ref.path, content=content)
