from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from deskdash import keymap
from deskdash.focus import (
    FOCUS_ORDER,
    FocusRouter,
    Pane,
    PaneGeometry,
    dashboard_geometry,
)
from deskdash.panels.base import Command
from deskdash.panels.calendar import CalendarPanel
from deskdash.panels.notes import NotesPanel
from deskdash.panels.todo import TodoPanel
from deskdash.session import AppMode, EditorMode
from tests import fake_data


@pytest.fixture
def router(tmp_path, repo):
    todo = TodoPanel(tmp_path / "todo.json", tasks=fake_data.fake_tasks())
    notes = NotesPanel(repo)
    calendar = CalendarPanel({}, today=date(2025, 11, 3))
    return FocusRouter({Pane.TASKS: todo, Pane.NOTES: notes, Pane.CALENDAR: calendar})


GEOMETRY = PaneGeometry(right_x=60, calendar_y=20)


class TestFocusRouter:
    def test_requires_every_pane(self, tmp_path):
        with pytest.raises(ValueError):
            _ = FocusRouter({Pane.TASKS: TodoPanel(tmp_path / "t.json", tasks=[])})

    def test_cycle_wraps(self, router):
        seen = [router.cycle() for _ in FOCUS_ORDER]
        assert seen == [Pane.NOTES, Pane.CALENDAR, Pane.TASKS]

    def test_cycle_suppressed_while_capturing(self, router):
        _ = router.dispatch(Command.ADD_TASK)
        assert router.capturing
        assert router.cycle() is Pane.TASKS

    def test_click_resolves_columns(self, router):
        assert router.click(80, 2, GEOMETRY) is Pane.NOTES
        assert router.click(10, 25, GEOMETRY) is Pane.CALENDAR
        assert router.click(10, 5, GEOMETRY) is Pane.TASKS
        assert router.click(60, 39, GEOMETRY) is Pane.NOTES

    def test_click_ignored_while_capturing(self, router):
        _ = router.dispatch(Command.ADD_TASK)
        assert router.click(80, 2, GEOMETRY) is Pane.TASKS

    def test_only_focused_panel_receives_commands(self, router):
        tasks = router.panels[Pane.TASKS]
        _ = router.cycle()
        _ = router.dispatch(Command.CURSOR_DOWN)
        assert tasks.cursor == 0

    def test_feed_goes_to_focused_panel(self, router):
        _ = router.dispatch(Command.ADD_TASK)
        _ = router.feed("a", "a")
        assert router.panels[Pane.TASKS].buffer.value == "a"

    def test_tick_reaches_every_panel(self):
        panels = {pane: MagicMock(capturing=False) for pane in Pane}
        router = FocusRouter(panels)
        now = datetime(2025, 11, 3, 12, 0)

        router.tick(now)

        for panel in panels.values():
            panel.tick.assert_called_once_with(now)

    def test_default_geometry(self):
        assert dashboard_geometry(140, 42) == PaneGeometry(right_x=70, calendar_y=18)


class TestKeymap:
    def test_task_bindings_follow_focus(self):
        tasks = keymap.Context(focus=Pane.TASKS)
        notes = keymap.Context(focus=Pane.NOTES)
        assert keymap.is_enabled("add_task", tasks)
        assert not keymap.is_enabled("add_task", notes)
        assert keymap.is_enabled("new_note", notes)
        assert not keymap.is_enabled("previous_day", tasks)

    def test_capture_disables_everything_but_confirm_cancel_and_quit(self):
        ctx = keymap.Context(focus=Pane.TASKS, capturing=True)
        names = {rule.name for rule in keymap.enabled_keys(ctx)}
        assert names == {"confirm", "cancel", "quit"}

    def test_calendar_bindings(self):
        ctx = keymap.Context(focus=Pane.CALENDAR)
        names = {rule.name for rule in keymap.enabled_keys(ctx)}
        assert {"previous_day", "next_week", "next_month", "open_calendar"} <= names
        assert "cursor_up" not in names

    def test_help_visible(self):
        ctx = keymap.Context(help_visible=True)
        assert keymap.is_enabled("close_help", ctx)
        assert not keymap.is_enabled("cycle_focus", ctx)
        assert not keymap.is_enabled("close_help", keymap.Context())

    def test_quit_disabled_in_editor(self):
        assert not keymap.is_enabled("quit", keymap.Context(mode=AppMode.EDITING_NOTE))
        for mode in AppMode:
            if mode is not AppMode.EDITING_NOTE:
                assert keymap.is_enabled("quit", keymap.Context(mode=mode))

    def test_editor_bindings_depend_on_editor_mode(self):
        preview = keymap.Context(mode=AppMode.EDITING_NOTE, editor_mode=EditorMode.PREVIEW)
        source = keymap.Context(mode=AppMode.EDITING_NOTE, editor_mode=EditorMode.SOURCE)
        assert keymap.is_enabled("edit_source", preview)
        assert not keymap.is_enabled("save_note", preview)
        assert keymap.is_enabled("save_note", source)
        assert not keymap.is_enabled("edit_source", source)
        assert keymap.is_enabled("leave_editor", source)

    def test_manual_code_entry(self):
        auto = keymap.Context(mode=AppMode.SETUP_CALENDAR)
        manual = keymap.Context(mode=AppMode.SETUP_CALENDAR, manual_flow=True)
        assert keymap.is_enabled("open_auth_url", auto)
        assert not keymap.is_enabled("submit_code", auto)
        assert keymap.is_enabled("submit_code", manual)

    def test_dashboard_bindings_disabled_outside_dashboard(self):
        ctx = keymap.Context(mode=AppMode.SETUP_WEATHER, focus=Pane.TASKS)
        assert not keymap.is_enabled("add_task", ctx)
        assert keymap.is_enabled("submit_city", ctx)

    def test_unknown_actions_are_not_gated(self):
        assert keymap.is_enabled("focus_next", keymap.Context(mode=AppMode.EDITING_NOTE))

    def test_filter_only_on_idle_lists(self):
        assert keymap.is_enabled("filter", keymap.Context(focus=Pane.TASKS))
        assert keymap.is_enabled("filter", keymap.Context(focus=Pane.NOTES))
        assert not keymap.is_enabled("filter", keymap.Context(focus=Pane.CALENDAR))
        assert not keymap.is_enabled(
            "filter", keymap.Context(focus=Pane.NOTES, capturing=True)
        )
