"""Commands, signals and protocols shared by the dashboard panels."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Protocol


class Command(str, Enum):
    """Inputs the focus router forwards to the focused panel."""

    ADD_TASK = "add_task"
    EDIT_TASK = "edit_task"
    TOGGLE_TASK = "toggle_task"
    DELETE_TASK = "delete_task"
    NEW_NOTE = "new_note"
    DELETE_NOTE = "delete_note"
    OPEN_NOTE = "open_note"
    OPEN_CALENDAR = "open_calendar"
    FILTER = "filter"
    CURSOR_UP = "cursor_up"
    CURSOR_DOWN = "cursor_down"
    PREVIOUS_DAY = "previous_day"
    NEXT_DAY = "next_day"
    PREVIOUS_WEEK = "previous_week"
    NEXT_WEEK = "next_week"
    PREVIOUS_MONTH = "previous_month"
    NEXT_MONTH = "next_month"
    CONFIRM = "confirm"
    CANCEL = "cancel"


@dataclass(frozen=True)
class EditNoteRequested:
    path: Path
    content: str


@dataclass(frozen=True)
class FetchMonthRequested:
    month: date


@dataclass(frozen=True)
class OpenUrlRequested:
    url: str


@dataclass(frozen=True)
class NoticeRequested:
    message: str
    severity: str = "information"


Signal = EditNoteRequested | FetchMonthRequested | OpenUrlRequested | NoticeRequested


class ListEntry(Protocol):
    """Anything shown as one line of a selectable list."""

    def display_text(self) -> str: ...

    def filter_text(self) -> str: ...


def matching_indices(entries: Sequence[ListEntry], query: str) -> list[int]:
    """Positions of the entries whose filter text contains the query, ignoring case."""
    needle = query.casefold()
    return [i for i, entry in enumerate(entries) if needle in entry.filter_text().casefold()]


class Panel(Protocol):
    @property
    def capturing(self) -> bool: ...

    def handle(self, command: Command) -> Signal | None: ...

    def feed(self, key: str, character: str | None) -> Signal | None: ...

    def tick(self, now: datetime) -> None: ...


@dataclass
class TextBuffer:
    """Single-line text entry used by the add/edit/create sub-modes."""

    limit: int
    value: str = field(default="")

    def insert(self, character: str) -> None:
        if len(self.value) + len(character) <= self.limit:
            self.value += character

    def backspace(self) -> None:
        self.value = self.value[:-1]

    def reset(self, value: str = "") -> None:
        self.value = value[: self.limit]


def feed_buffer(buffer: TextBuffer, key: str, character: str | None) -> Command | None:
    """Apply a raw key to a text buffer.

    Returns CONFIRM or CANCEL when the key ends text capture.
    """
    if key in ("enter", "ctrl+s"):
        return Command.CONFIRM
    if key == "escape":
        return Command.CANCEL
    if key == "backspace":
        buffer.backspace()
    elif character is not None and character.isprintable() and len(character) == 1:
        buffer.insert(character)
    return None


def clamp_cursor(cursor: int, length: int) -> int:
    if length == 0:
        return 0
    return max(0, min(cursor, length - 1))
