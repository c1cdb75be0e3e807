"""Dialog asking whether unsaved note edits should be discarded."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding, BindingType
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label


class ExitConfirmationModal(ModalScreen[bool]):
    """Dismisses with True to discard the edits, False to keep editing."""

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("left", "choose(True)", "Yes", show=False),
        Binding("right", "choose(False)", "No", show=False),
        Binding("h", "choose(True)", "Yes", show=False),
        Binding("l", "choose(False)", "No", show=False),
        Binding("y", "choose(True)", "Yes", show=False),
        Binding("n", "choose(False)", "No", show=False),
        Binding("enter", "answer_selected", "Confirm"),
        Binding("escape", "back", "Back to editor"),
    ]

    CSS: ClassVar[str] = """
    ExitConfirmationModal {
        align: center middle;
    }

    #exit-dialog {
        background: $surface;
        border: thick $warning;
        width: 50;
        height: auto;
        padding: 1 2;
    }

    #exit-title {
        text-style: bold;
        margin-bottom: 1;
    }

    #exit-hint {
        color: $text-muted;
        margin-bottom: 1;
    }

    #exit-buttons {
        layout: horizontal;
        align: center middle;
        height: auto;
        margin-top: 1;
    }

    #exit-buttons Button {
        margin: 0 1;
    }
    """

    _discard: bool

    def __init__(self):
        super().__init__()
        self._discard = False

    @override
    def compose(self) -> ComposeResult:
        with Container(id="exit-dialog"):
            yield Label("Unsaved changes", id="exit-title")
            yield Label("Discard your changes to this note?", id="exit-message")
            yield Label("[←/→ y/n] Choose  [Enter] Confirm  [Esc] Back", id="exit-hint")
            with Horizontal(id="exit-buttons"):
                yield Button("Yes", variant="error", id="yes-btn")
                yield Button("No", variant="primary", id="no-btn")

    def on_mount(self) -> None:
        self._highlight()

    def _highlight(self) -> None:
        selected = "#yes-btn" if self._discard else "#no-btn"
        _ = self.query_one(selected, Button).focus()

    @property
    def discard_selected(self) -> bool:
        return self._discard

    def action_choose(self, discard: bool) -> None:
        self._discard = discard
        self._highlight()

    def action_answer_selected(self) -> None:
        _ = self.dismiss(self._discard)

    def action_back(self) -> None:
        _ = self.dismiss(False)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        _ = self.dismiss(event.button.id == "yes-btn")
