from typing import Dict, Literal, Optional, Tuple

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]
ButtonVariant = Literal["primary", "default", "success", "warning", "error"]

# tone -> (confirm button, cancel button)
TONE_VARIANTS: Dict[str, Tuple[ButtonVariant, ButtonVariant]] = {
    "default": ("primary", "default"),
    "positive": ("success", "default"),
    "warning": ("warning", "default"),
    "error": ("error", "primary"),
}


class DialogModal(ModalScreen[bool]):
    """
    Yes/no confirmation used before destructive register actions
    (clear cart, log out, close the register). Dismisses with True when
    confirmed. y / n / escape work as shortcuts.
    """

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
        detail: Optional[str] = None,
    ):
        super().__init__()
        self.caption = caption
        self.detail = detail
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose(self) -> ComposeResult:
        confirm_variant, cancel_variant = TONE_VARIANTS[self.tone]
        with Container(id="div-dialog"):
            yield Label(self.caption, id="caption")
            if self.detail:
                yield Label(self.detail, id="caption-detail")
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(self.secondary_text, variant=cancel_variant, id="btn-secondary")
                yield Button(self.primary_text, variant=confirm_variant, id="btn-primary")

    def on_mount(self):
        # destructive dialogs focus the safe choice
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.action_answer(event.button.id == "btn-primary")

    def action_answer(self, confirmed: bool) -> None:
        if not confirmed and not self.secondary_text:
            # a single-button notice has nothing to decline
            confirmed = True
        self.dismiss(confirmed)


class QuitDialogModal(DialogModal):
    def __init__(self):
        super().__init__(
            "Close the register?",
            "Yes",
            "No",
            "error",
            detail="Unsaved cart contents are discarded.",
        )

    def action_answer(self, confirmed: bool) -> None:
        if confirmed:
            self.app.post_message(QuitRequestedMessage())
        self.dismiss(confirmed)
