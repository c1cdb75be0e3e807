"""Routes dashboard input to exactly one panel and tracks the focus cycle."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from deskdash.panels.base import Command, Panel, Signal

logger = logging.getLogger(__name__)


class Pane(Enum):
    TASKS = "tasks"
    NOTES = "notes"
    CALENDAR = "calendar"

    @property
    def label(self) -> str:
        return self.value.capitalize()


FOCUS_ORDER = (Pane.TASKS, Pane.NOTES, Pane.CALENDAR)


@dataclass(frozen=True)
class PaneGeometry:
    """Where the dashboard splits: x of the right column, y of the calendar pane."""

    right_x: int
    calendar_y: int


def dashboard_geometry(width: int, height: int) -> PaneGeometry:
    """Split used when the real widget regions are not known yet."""
    return PaneGeometry(right_x=width // 2, calendar_y=height * 3 // 7)


class FocusRouter:
    def __init__(self, panels: dict[Pane, Panel], focus: Pane = Pane.TASKS):
        missing = [pane for pane in FOCUS_ORDER if pane not in panels]
        if missing:
            raise ValueError(f"no panel registered for {missing}")
        self.panels = panels
        self.focus = focus

    @property
    def focused_panel(self) -> Panel:
        return self.panels[self.focus]

    @property
    def capturing(self) -> bool:
        return self.focused_panel.capturing

    def cycle(self) -> Pane:
        """Advance focus unless the focused panel is capturing text."""
        if self.capturing:
            return self.focus
        index = FOCUS_ORDER.index(self.focus)
        self.focus = FOCUS_ORDER[(index + 1) % len(FOCUS_ORDER)]
        return self.focus

    def click(self, x: int, y: int, geometry: PaneGeometry) -> Pane:
        if self.capturing:
            return self.focus
        if x >= geometry.right_x:
            self.focus = Pane.NOTES
        elif y >= geometry.calendar_y:
            self.focus = Pane.CALENDAR
        else:
            self.focus = Pane.TASKS
        return self.focus

    def dispatch(self, command: Command) -> Signal | None:
        return self.focused_panel.handle(command)

    def feed(self, key: str, character: str | None) -> Signal | None:
        return self.focused_panel.feed(key, character)

    def tick(self, now: datetime) -> None:
        for panel in self.panels.values():
            panel.tick(now)
