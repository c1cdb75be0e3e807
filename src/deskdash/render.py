"""Pure functions from panel state to rich renderables."""

import calendar
from datetime import date, datetime

from rich.console import Group, RenderableType
from rich.text import Text

from deskdash.clients.weather import WEATHER_ART
from deskdash.focus import Pane
from deskdash.keymap import Context, enabled_keys
from deskdash.panels.base import TextBuffer
from deskdash.panels.calendar import CalendarPanel
from deskdash.panels.notes import NotesPanel, NotesState
from deskdash.panels.todo import TodoPanel, TodoState

MIN_WIDTH = 100
MIN_HEIGHT = 30

CURSOR_STYLE = "bold reverse"
ACCENT = "#61afef"


def _input_line(label: str, buffer: TextBuffer) -> Text:
    line = Text(f"{label}: ", style="bold")
    line.append(buffer.value)
    line.append("█", style="blink")
    return line


def _filter_line(query: str, active: bool, buffer: TextBuffer) -> Text:
    if active:
        line = _input_line("Filter", buffer)
    else:
        line = Text(f"Filter: {query}", style="dim")
    line.append("\n")
    return line


def render_tasks(panel: TodoPanel, focused: bool) -> Text:
    text = Text()
    filtering = panel.state is TodoState.FILTERING
    if filtering or panel.query:
        text.append_text(_filter_line(panel.query, filtering, panel.buffer))
    visible = panel.visible
    if not panel.tasks:
        text.append("No tasks. Press o to add one.", style="dim")
    elif not visible:
        text.append("No matching tasks.", style="dim")
    for row, index in enumerate(visible):
        task = panel.tasks[index]
        if row:
            text.append("\n")
        style = "dim strike" if task.done else ""
        if focused and row == panel.cursor and panel.state in (
            TodoState.DEFAULT,
            TodoState.FILTERING,
        ):
            style = f"{style} {CURSOR_STYLE}".strip()
        text.append(task.display_text(), style=style)

    if panel.state is TodoState.ADDING:
        text.append("\n\n")
        text.append_text(_input_line("New task", panel.buffer))
    elif panel.state is TodoState.EDITING:
        text.append("\n\n")
        text.append_text(_input_line("Edit task", panel.buffer))
    return text


def render_notes(panel: NotesPanel, focused: bool) -> Text:
    text = Text()
    filtering = panel.state is NotesState.FILTER
    if filtering or panel.query:
        text.append_text(_filter_line(panel.query, filtering, panel.buffer))
    visible = panel.visible
    if not panel.notes:
        text.append("No notes. Press o to create one.", style="dim")
    elif not visible:
        text.append("No matching notes.", style="dim")
    for row, index in enumerate(visible):
        if row:
            text.append("\n")
        style = CURSOR_STYLE if focused and row == panel.cursor else ""
        text.append(panel.notes[index].display_text(), style=style)

    if panel.state is NotesState.CREATE:
        text.append("\n\n")
        text.append_text(_input_line("Note title", panel.buffer))
    return text


def render_month(selected: date, today: date) -> Text:
    text = Text(f"{calendar.month_name[selected.month]} {selected.year}\n", style="bold")
    text.append("Mo Tu We Th Fr Sa Su\n", style=ACCENT)
    weeks = calendar.Calendar(firstweekday=0).monthdayscalendar(
        selected.year, selected.month
    )
    for row, week in enumerate(weeks):
        if row:
            text.append("\n")
        for column, day in enumerate(week):
            if column:
                text.append(" ")
            if day == 0:
                text.append("  ")
                continue
            style = ""
            if day == selected.day:
                style = CURSOR_STYLE
            elif date(selected.year, selected.month, day) == today:
                style = "bold underline"
            text.append(f"{day:2d}", style=style)
    return text


def _event_time(event: dict) -> str:
    start = event.get("start") or {}
    raw = start.get("dateTime") if isinstance(start, dict) else None
    if not raw:
        return "All day"
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).strftime("%H:%M")
    except ValueError:
        return "--:--"


def render_events(panel: CalendarPanel) -> Text:
    text = Text(f"{panel.selected.strftime('%A, %d %B')}\n", style="bold")
    if panel.error is not None:
        text.append(f"Error: {panel.error}", style="red")
        return text
    if panel.loading:
        text.append(f"{panel.spinner} Loading events...", style="dim")
        return text
    if not panel.events:
        text.append("No events", style="dim")
        return text
    for index, event in enumerate(panel.events):
        if index:
            text.append("\n")
        text.append(f"{_event_time(event):>7}  ", style=ACCENT)
        text.append(str(event.get("summary") or "(no title)"))
    return text


def render_clock(now: datetime) -> Text:
    text = Text(now.strftime("%H:%M:%S"), style="bold")
    text.append(f"\n{now.strftime('%A, %d %B %Y')}", style="dim")
    return text


def render_weather(panel: CalendarPanel) -> Text:
    if panel.weather_loading and panel.weather is None:
        return Text(f"{panel.spinner} Loading weather...", style="dim")
    weather = panel.weather
    if weather is None or panel.weather_error is not None:
        return Text("Weather Unavailable", style="dim")
    art, color = WEATHER_ART.get(weather.icon, WEATHER_ART["clear"])
    text = Text(art, style=color)
    text.append(f"\n{weather.name}", style="bold")
    text.append(f"\n{weather.temp:.0f}°C {weather.description}")
    return text


def render_calendar(panel: CalendarPanel) -> RenderableType:
    return Group(
        render_clock(panel.now),
        Text(""),
        render_weather(panel),
        Text(""),
        render_month(panel.selected, panel.now.date()),
        Text(""),
        render_events(panel),
    )


def render_help(ctx: Context) -> Text:
    rules = enabled_keys(ctx)
    width = max((len(rule.keys) for rule in rules), default=0)
    text = Text("Key bindings\n\n", style="bold")
    for index, rule in enumerate(rules):
        if index:
            text.append("\n")
        text.append(f"{rule.keys:<{width}}  ", style=ACCENT)
        text.append(rule.description)
    return text


def render_status(focus: Pane) -> Text:
    text = Text(" Focus: ", style="dim")
    text.append(focus.label, style="bold")
    text.append("  │  ctrl+k help  │  tab next pane  │  ctrl+q quit", style="dim")
    return text


def too_small(width: int, height: int) -> bool:
    return width < MIN_WIDTH or height < MIN_HEIGHT


def render_too_small(width: int, height: int) -> Text:
    return Text(
        f"Terminal too small ({width}x{height}).\n"
        f"DeskDash needs at least {MIN_WIDTH}x{MIN_HEIGHT}.",
        justify="center",
    )
