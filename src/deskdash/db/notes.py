"""Markdown notes stored as individual files in the notes directory."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9-]+")
_NUMERIC_PREFIX = re.compile(r"^\d+\s")


def sanitize_filename(title: str) -> str:
    """Turn a note title into a filesystem-safe stem.

    Spaces become hyphens and anything that is not an ASCII letter, digit or
    hyphen is dropped. A title with nothing usable left maps to
    ``untitled-note``.
    """
    stem = _UNSAFE_CHARS.sub("", title.replace(" ", "-"))
    return stem or "untitled-note"


def display_title(filename: str) -> str:
    """Title shown in the list: hyphens back to spaces, numeric sort prefix removed."""
    stem = filename[: -len(NOTE_SUFFIX)] if filename.endswith(NOTE_SUFFIX) else filename
    return _NUMERIC_PREFIX.sub("", stem.replace("-", " "))


@dataclass(frozen=True)
class NoteRef:
    title: str
    path: Path

    def display_text(self) -> str:
        return self.title

    def filter_text(self) -> str:
        return self.title


class NoteRepository:
    """Directory of markdown files; the files are the source of truth."""

    def __init__(self, notes_dir: Path):
        self.notes_dir = notes_dir

    def _ref(self, path: Path) -> NoteRef:
        return NoteRef(title=display_title(path.name), path=path)

    def list(self) -> list[NoteRef]:
        if not self.notes_dir.is_dir():
            return []
        files = sorted(
            p for p in self.notes_dir.iterdir() if p.is_file() and p.suffix == NOTE_SUFFIX
        )
        return [self._ref(p) for p in files]

    def read(self, ref: NoteRef) -> str:
        return ref.path.read_text()

    def write(self, ref: NoteRef, content: str) -> None:
        _ = ref.path.write_text(content)

    def create(self, title: str, content: str | None = None) -> NoteRef:
        """Write a new note, never overwriting an existing file."""
        stem = sanitize_filename(title)
        path = self.notes_dir / f"{stem}{NOTE_SUFFIX}"
        counter = 2
        while path.exists():
            path = self.notes_dir / f"{stem}-{counter}{NOTE_SUFFIX}"
            counter += 1
        body = content if content is not None else f"# {title}\n\n"
        _ = path.write_text(body)
        logger.debug("Created note %s", path)
        return self._ref(path)

    def delete(self, ref: NoteRef) -> None:
        ref.path.unlink(missing_ok=True)


WELCOME_TITLE = "01 Welcome to DeskDash"
WELCOME_CONTENT = """# Welcome to DeskDash

> Your terminal productivity dashboard

DeskDash brings a task list, markdown notes, your Google Calendar and the
weather into one terminal window.

## What you can do

### Tasks
- Create, edit, delete and complete tasks
- Everything is saved as soon as you change it

### Notes
- Markdown notes with a rendered preview
- A source editor with unsaved-changes protection

### Calendar
- Browse your Google Calendar day by day
- Months you have already visited load instantly from the cache

### Weather and time
- Current conditions from wttr.in, no API key needed
- A clock that is always running

## Getting started

- **Tab** cycles between the panels, or click a panel with the mouse
- **Ctrl+K** shows the key bindings of the focused panel
- **Ctrl+Q** quits

On first start you pick a city for the weather and connect your calendar.
"""

KEYBINDINGS_TITLE = "02 Keybindings for DeskDash"
KEYBINDINGS_CONTENT = """# DeskDash Keyboard Reference

Each panel has its own key bindings, active while it has focus. Press
**Ctrl+K** at any time to see the bindings of the focused panel.

## Global

| Key | Action |
|-----|--------|
| **Tab** | Cycle focus between Tasks, Notes and Calendar |
| **Ctrl+K** | Show key bindings |
| **Ctrl+Q** | Quit |

## Tasks

| Key | Action |
|-----|--------|
| **o** | Add a task |
| **i** | Edit the selected task |
| **Space** | Toggle done |
| **Ctrl+D** | Delete the selected task |
| **Enter** / **Ctrl+S** | Confirm while typing |
| **Esc** | Cancel while typing |

## Notes

| Key | Action |
|-----|--------|
| **o** | New note |
| **Enter** / **e** | Open the selected note |
| **Ctrl+D** | Delete the selected note |

### Note editor

| Key | Action |
|-----|--------|
| **i** | Switch from preview to source |
| **Ctrl+S** | Save (source mode) |
| **Esc** | Back to preview, then back to the dashboard |

## Calendar

| Key | Action |
|-----|--------|
| **Left / Right** | Previous / next day |
| **Up / Down** | Previous / next week |
| **PageUp / PageDown** | Previous / next month |
| **Enter** | Open Google Calendar in the browser |
"""

SEED_NOTES = [
    (WELCOME_TITLE, WELCOME_CONTENT),
    (KEYBINDINGS_TITLE, KEYBINDINGS_CONTENT),
]


def seed_default_notes(repo: NoteRepository, already_created: bool) -> bool:
    """Write the seed notes into an empty store, at most once per installation.

    Returns True when the seed notes were written, in which case the caller
    must persist the ``default_notes_created`` flag.
    """
    if already_created or repo.list():
        return False
    for title, content in SEED_NOTES:
        _ = repo.create(title, content)
    logger.info("Created default notes in %s", repo.notes_dir)
    return True
