"""Which key bindings are live in which state.

One table drives both ``check_action`` on every screen and the help overlay,
so what the help lists is exactly what responds.
"""

from collections.abc import Callable
from dataclasses import dataclass

from deskdash.focus import Pane
from deskdash.session import AppMode, EditorMode


@dataclass(frozen=True)
class Context:
    mode: AppMode = AppMode.DASHBOARD
    focus: Pane = Pane.TASKS
    capturing: bool = False
    editor_mode: EditorMode | None = None
    manual_flow: bool = False
    help_visible: bool = False


@dataclass(frozen=True)
class KeyRule:
    name: str
    keys: str
    description: str
    modes: frozenset[AppMode]
    when: Callable[[Context], bool] = lambda ctx: True


def _on(pane: Pane) -> Callable[[Context], bool]:
    return lambda ctx: ctx.focus is pane and not ctx.capturing


def _on_lists(ctx: Context) -> bool:
    return ctx.focus in (Pane.TASKS, Pane.NOTES) and not ctx.capturing


def _idle(ctx: Context) -> bool:
    return not ctx.capturing and not ctx.help_visible


_DASHBOARD = frozenset({AppMode.DASHBOARD})
_EDITOR = frozenset({AppMode.EDITING_NOTE})
_QUITTABLE = frozenset(mode for mode in AppMode if mode is not AppMode.EDITING_NOTE)

KEYMAP: tuple[KeyRule, ...] = (
    KeyRule("add_task", "o", "Add task", _DASHBOARD, _on(Pane.TASKS)),
    KeyRule("edit_task", "i", "Edit task", _DASHBOARD, _on(Pane.TASKS)),
    KeyRule("toggle_task", "space", "Toggle done", _DASHBOARD, _on(Pane.TASKS)),
    KeyRule("delete_task", "ctrl+d", "Delete task", _DASHBOARD, _on(Pane.TASKS)),
    KeyRule("new_note", "o", "New note", _DASHBOARD, _on(Pane.NOTES)),
    KeyRule("open_note", "enter/e", "Open note", _DASHBOARD, _on(Pane.NOTES)),
    KeyRule("delete_note", "ctrl+d", "Delete note", _DASHBOARD, _on(Pane.NOTES)),
    KeyRule("filter", "/", "Filter", _DASHBOARD, _on_lists),
    KeyRule("cursor_up", "↑/k", "Up", _DASHBOARD, _on_lists),
    KeyRule("cursor_down", "↓/j", "Down", _DASHBOARD, _on_lists),
    KeyRule("previous_day", "←", "Previous day", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("next_day", "→", "Next day", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("previous_week", "↑", "Previous week", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("next_week", "↓", "Next week", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("previous_month", "pgup", "Previous month", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("next_month", "pgdn", "Next month", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("open_calendar", "enter", "Open Google Calendar", _DASHBOARD, _on(Pane.CALENDAR)),
    KeyRule("confirm", "enter", "Confirm", _DASHBOARD, lambda ctx: ctx.capturing),
    KeyRule("cancel", "esc", "Cancel", _DASHBOARD, lambda ctx: ctx.capturing),
    KeyRule("cycle_focus", "tab", "Next pane", _DASHBOARD, _idle),
    KeyRule("toggle_help", "ctrl+k", "Help", _DASHBOARD, lambda ctx: not ctx.capturing),
    KeyRule("close_help", "esc", "Close help", _DASHBOARD, lambda ctx: ctx.help_visible),
    KeyRule(
        "edit_source",
        "i",
        "Edit",
        _EDITOR,
        lambda ctx: ctx.editor_mode is EditorMode.PREVIEW,
    ),
    KeyRule(
        "save_note",
        "ctrl+s",
        "Save",
        _EDITOR,
        lambda ctx: ctx.editor_mode is EditorMode.SOURCE,
    ),
    KeyRule("leave_editor", "esc", "Back", _EDITOR),
    KeyRule("submit_city", "enter", "Continue", frozenset({AppMode.SETUP_WEATHER})),
    KeyRule("skip_setup", "esc", "Skip", frozenset({AppMode.SETUP_WEATHER})),
    KeyRule(
        "open_auth_url",
        "ctrl+o",
        "Open in browser",
        frozenset({AppMode.SETUP_CALENDAR}),
    ),
    KeyRule(
        "submit_code",
        "enter",
        "Submit code",
        frozenset({AppMode.SETUP_CALENDAR}),
        lambda ctx: ctx.manual_flow,
    ),
    KeyRule("choose", "←/→ h/l y/n", "Choose", frozenset({AppMode.EXIT_CONFIRMATION})),
    KeyRule("answer", "enter", "Confirm choice", frozenset({AppMode.EXIT_CONFIRMATION})),
    KeyRule("back", "esc", "Back to editor", frozenset({AppMode.EXIT_CONFIRMATION})),
    KeyRule("quit", "ctrl+q", "Quit", _QUITTABLE),
)

_BY_NAME = {rule.name: rule for rule in KEYMAP}


def is_enabled(name: str, ctx: Context) -> bool:
    """Unknown names are not gated."""
    rule = _BY_NAME.get(name)
    if rule is None:
        return True
    return ctx.mode in rule.modes and rule.when(ctx)


def enabled_keys(ctx: Context) -> list[KeyRule]:
    return [rule for rule in KEYMAP if ctx.mode in rule.modes and rule.when(ctx)]
