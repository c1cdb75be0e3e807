"""Bordered dashboard panes and the help overlay."""

from typing import ClassVar

from textual.widgets import Static


class PaneBox(Static):
    """A titled pane whose border highlights when it holds focus."""

    DEFAULT_CSS: ClassVar[str] = """
    PaneBox {
        border: round $panel-lighten-2;
        padding: 0 1;
        height: 1fr;
        overflow-y: auto;
    }

    PaneBox.-focused {
        border: round $accent;
    }
    """

    def __init__(self, title: str, pane_id: str):
        super().__init__("", id=pane_id)
        self.border_title = title

    def set_focused(self, focused: bool) -> None:
        _ = self.set_class(focused, "-focused")


class HelpOverlay(Static):
    """Key binding reference shown over the dashboard."""

    DEFAULT_CSS: ClassVar[str] = """
    HelpOverlay {
        layer: overlay;
        display: none;
        background: $surface;
        border: thick $accent;
        padding: 1 2;
        width: 60;
        height: auto;
        max-height: 80%;
        offset: 20 3;
    }

    HelpOverlay.-visible {
        display: block;
    }
    """

    def show(self) -> None:
        _ = self.add_class("-visible")

    def hide(self) -> None:
        _ = self.remove_class("-visible")
