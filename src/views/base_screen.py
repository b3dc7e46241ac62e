from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, Markdown

from utils.messages import UserLogoutMessage
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal
from views.modal_settings import SettingsModal


class Sidebar(Container):
    def compose(self) -> ComposeResult:
        yield Label("Operator", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Settings", id="btn-settings")
        yield Button("Log out", id="btn-logout", variant="error")

    async def on_mount(self):
        employee = self.app.state.employee
        if employee is None:
            return
        table_rows = [
            ["Operator", employee.uid],
            ["Email", employee.email or "-"],
            ["Type", "Anonymous" if employee.anonymous else "Staff"],
        ]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

    @on(Button.Pressed, "#btn-settings")
    @work()
    async def handle_settings(self):
        await self.app.push_screen_wait(SettingsModal())

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if self.app.state.checkout.in_flight:
            self.notify("Wait for the current sale to finish.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "Register",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """
        self.title = "NNE Point of Sale"
        self.sub_title = header_sub_title
        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
