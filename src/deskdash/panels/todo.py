"""Task list panel: browse, add, edit, toggle, delete and filter tasks."""

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

from deskdash.db.tasks import Task, load_tasks, save_tasks
from deskdash.panels.base import (
    Command,
    Signal,
    TextBuffer,
    clamp_cursor,
    feed_buffer,
    matching_indices,
)

logger = logging.getLogger(__name__)

TITLE_LIMIT = 156


class TodoState(Enum):
    DEFAULT = "default"
    ADDING = "adding"
    EDITING = "editing"
    FILTERING = "filtering"


class TodoPanel:
    def __init__(self, path: Path, tasks: list[Task] | None = None):
        self.path = path
        self.tasks: list[Task] = tasks if tasks is not None else load_tasks(path)
        self.cursor = 0
        self.state = TodoState.DEFAULT
        self.buffer = TextBuffer(limit=TITLE_LIMIT)
        self.query = ""

    @property
    def capturing(self) -> bool:
        return self.state is not TodoState.DEFAULT

    @property
    def visible(self) -> list[int]:
        """Indices into ``tasks`` shown under the current filter; the cursor walks these."""
        if not self.query:
            return list(range(len(self.tasks)))
        return matching_indices(self.tasks, self.query)

    @property
    def selected(self) -> Task | None:
        visible = self.visible
        if not visible:
            return None
        return self.tasks[visible[self.cursor]]

    def _save(self) -> None:
        try:
            save_tasks(self.path, self.tasks)
        except OSError as e:
            logger.error("Failed to save tasks to %s: %s", self.path, e)

    def handle(self, command: Command) -> Signal | None:
        if self.capturing:
            if command is Command.CONFIRM:
                self.confirm()
            elif command is Command.CANCEL:
                self.cancel()
            return None

        if command is Command.ADD_TASK:
            self.start_adding()
        elif command is Command.EDIT_TASK:
            self.start_editing()
        elif command is Command.TOGGLE_TASK:
            self.toggle()
        elif command is Command.DELETE_TASK:
            self.delete()
        elif command is Command.FILTER:
            self.start_filtering()
        elif command is Command.CURSOR_UP:
            self.move(-1)
        elif command is Command.CURSOR_DOWN:
            self.move(1)
        return None

    def feed(self, key: str, character: str | None) -> Signal | None:
        if not self.capturing:
            return None
        outcome = feed_buffer(self.buffer, key, character)
        if outcome is not None:
            return self.handle(outcome)
        if self.state is TodoState.FILTERING:
            self.query = self.buffer.value
            self.cursor = 0
        return None

    def tick(self, now: datetime) -> None:
        pass

    def move(self, delta: int) -> None:
        self.cursor = clamp_cursor(self.cursor + delta, len(self.visible))

    def start_adding(self) -> None:
        # The new task goes to the end of the full list, so show all of it
        self.query = ""
        self.buffer.reset()
        self.state = TodoState.ADDING

    def start_editing(self) -> None:
        task = self.selected
        if task is None:
            return
        self.buffer.reset(task.title)
        self.state = TodoState.EDITING

    def start_filtering(self) -> None:
        self.buffer.reset(self.query)
        self.state = TodoState.FILTERING

    def confirm(self) -> None:
        if self.state is TodoState.FILTERING:
            self.buffer.reset()
            self.state = TodoState.DEFAULT
            return

        text = self.buffer.value
        if self.state is TodoState.ADDING:
            if text:
                self.tasks.append(Task(title=text))
                self.cursor = len(self.tasks) - 1
        elif self.state is TodoState.EDITING:
            task = self.selected
            if task is not None:
                task.title = text
        self.buffer.reset()
        self.state = TodoState.DEFAULT
        self.cursor = clamp_cursor(self.cursor, len(self.visible))
        self._save()

    def cancel(self) -> None:
        if self.state is TodoState.FILTERING:
            self.query = ""
            self.cursor = clamp_cursor(self.cursor, len(self.tasks))
        self.buffer.reset()
        self.state = TodoState.DEFAULT

    def toggle(self) -> None:
        task = self.selected
        if task is None:
            return
        task.done = not task.done
        self._save()

    def delete(self) -> None:
        visible = self.visible
        if not visible:
            return
        del self.tasks[visible[self.cursor]]
        self.cursor = clamp_cursor(self.cursor, len(self.visible))
        self._save()
