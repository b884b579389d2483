#!/usr/bin/env python3
"""
whawty-admin Textual TUI

Interactive terminal console: login box, main window with the account
directory (admins) or own-account panel (users), and a password dialog
with live strength feedback.

Usage:
    whawty-admin --url https://auth.example.com tui
"""

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, DataTable, Footer, Header, Input, Label, Static

from .alerts import Alert, AlertLevel, Destination
from .config import ConsoleConfig
from .console import AdminConsole
from .directory import UserRow
from .log import setup_logging
from .models import Session, format_timestamp
from .passwords import estimate_strength, passwords_match
from .view import ConsoleView, flag_text, role_text

DEFAULT_TUI_LOG = Path.home() / ".cache" / "whawty-admin" / "tui.log"

BANNER_STYLES = {
    AlertLevel.INFO: "bold cyan",
    AlertLevel.SUCCESS: "bold green",
    AlertLevel.WARNING: "bold yellow",
    AlertLevel.ERROR: "bold red",
}


class AlertBanner(Static):
    """Dismissible banner for one alert destination. Click to close."""

    def __init__(self, dest: Destination, **kwargs):
        super().__init__("", **kwargs)
        self.dest = dest

    def show_alert(self, alert: Optional[Alert]) -> None:
        if alert is None:
            self.update("")
            self.display = False
            return

        text = Text()
        text.append(f"{alert.heading}: ", style=BANNER_STYLES[alert.level])
        text.append(alert.message)
        text.append("  [x]", style="dim")
        self.update(text)
        self.display = True

    def on_click(self) -> None:
        self.app.admin.alerts.dismiss(self.dest)


class UserTable(DataTable):
    """Account directory table with per-row actions."""

    BINDINGS = [
        Binding("r", "toggle_role", "Role", show=True),
        Binding("p", "change_password", "Password", show=True),
        Binding("delete", "remove_user", "Remove", show=True),
    ]

    def __init__(self, **kwargs):
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)
        self.names: List[str] = []

    def on_mount(self) -> None:
        self.add_columns("Username", "Role", "Last changed", "Valid", "Supported", "Format")

    def set_rows(self, rows: Sequence[UserRow]) -> None:
        self.clear()
        self.names = []
        for row in rows:
            self.add_row(
                row.name,
                role_text(row.is_admin),
                row.last_changed,
                flag_text(row.is_valid),
                flag_text(row.is_supported),
                row.format,
                key=row.name,
            )
            self.names.append(row.name)

    def selected_name(self) -> Optional[str]:
        if not self.names or not 0 <= self.cursor_row < len(self.names):
            return None
        return self.names[self.cursor_row]

    def action_toggle_role(self) -> None:
        name = self.selected_name()
        if name:
            self.app.start_action(self.app.admin.directory.toggle_admin(name))

    def action_change_password(self) -> None:
        name = self.selected_name()
        if name:
            self.app.open_password_dialog(name, "Change")

    def action_remove_user(self) -> None:
        name = self.selected_name()
        if name:
            self.app.start_action(self.app.admin.directory.remove_user(name))


class PasswordDialog(ModalScreen[Optional[Tuple[str, str]]]):
    """Password entry with confirmation and strength feedback."""

    DEFAULT_CSS = """
    PasswordDialog {
        align: center middle;
    }

    #changepw-dialog {
        width: 70;
        height: auto;
        border: thick $primary;
        padding: 1 2;
        background: $surface;
    }

    #changepw-buttons {
        height: auto;
        margin-top: 1;
    }
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, username: str, submit_label: str):
        super().__init__()
        self.username = username
        self.submit_label = submit_label

    def compose(self) -> ComposeResult:
        with Vertical(id="changepw-dialog"):
            yield Label(Text.assemble("Password for ", (self.username, "bold")))
            banner = AlertBanner(Destination.MODAL, id="modal-alert")
            banner.display = False
            yield banner
            yield Input(placeholder="Password", password=True, id="changepw-password")
            yield Static(id="pwstrength")
            yield Input(placeholder="Retype password", password=True, id="changepw-password-retype")
            with Horizontal(id="changepw-buttons"):
                yield Button(self.submit_label, id="changepw-btn", variant="primary", disabled=True)
                yield Button("Cancel", id="changepw-cancel")

    def on_mount(self) -> None:
        self._update_strength("")
        self.query_one("#changepw-password", Input).focus()

    def _update_strength(self, password: str) -> None:
        feedback = estimate_strength(password, [self.username])
        text = Text()
        text.append(feedback.stars + "  ", style="yellow")
        text.append(feedback.summary, style=BANNER_STYLES[feedback.level])
        if password:
            text.append(f"\nestimated crack-time: {feedback.crack_time}", style="dim")
        for tip in feedback.suggestions:
            text.append(f"\n{tip}", style="cyan")
        self.query_one("#pwstrength", Static).update(text)

    def _compare(self) -> None:
        password = self.query_one("#changepw-password", Input).value
        retype = self.query_one("#changepw-password-retype", Input)
        ok = passwords_match(password, retype.value)
        self.query_one("#changepw-btn", Button).disabled = not ok
        retype.set_class(not ok and retype.value != "", "-invalid")

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "changepw-password":
            self._update_strength(event.value)
        self._compare()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        if not self.query_one("#changepw-btn", Button).disabled:
            self._submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "changepw-btn":
            self._submit()
        elif event.button.id == "changepw-cancel":
            self.dismiss(None)

    def _submit(self) -> None:
        password = self.query_one("#changepw-password", Input).value
        retype = self.query_one("#changepw-password-retype", Input).value
        self.dismiss((password, retype))

    def action_cancel(self) -> None:
        self.dismiss(None)


class TuiView(ConsoleView):
    """ConsoleView backed by the Textual widgets of AdminTUI."""

    def __init__(self, app: "AdminTUI"):
        self.app = app

    def show_login(self, username: str = "") -> None:
        app = self.app
        app.query_one("#mainwindow").display = False
        app.query_one("#login-box").display = True
        user_input = app.query_one("#login-username", Input)
        user_input.value = username
        app.query_one("#login-password", Input).value = ""
        if username:
            app.query_one("#login-password", Input).focus()
        else:
            user_input.focus()

    def clear_password(self) -> None:
        self.app.query_one("#login-password", Input).value = ""

    def show_main(self, session: Session) -> None:
        app = self.app
        app.query_one("#login-box").display = False
        app.query_one("#mainwindow").display = True
        app.sub_title = f"{session.username} ({session.role_label})"

    def show_admin_view(self) -> None:
        self.app.query_one("#user-view").display = False
        self.app.query_one("#admin-view").display = True
        self.app.query_one("#user-list", UserTable).focus()

    def show_user_view(self, session: Session) -> None:
        self.app.query_one("#admin-view").display = False
        self.app.query_one("#user-view").display = True
        self._update_user_info(session)

    def _update_user_info(self, session: Session) -> None:
        info = Text()
        info.append("Username: ", style="dim")
        info.append(session.username, style="bold")
        info.append("\nLast password change: ", style="dim")
        info.append(format_timestamp(session.last_changed))
        self.app.query_one("#user-info", Static).update(info)

    def render_directory(self, rows: Sequence[UserRow]) -> None:
        self.app.query_one("#user-list", UserTable).set_rows(rows)

    def credentials_changed(self, username: str) -> None:
        session = self.app.admin.session
        if session is not None and not session.is_admin:
            self._update_user_info(session)
        self.app.notify(f"Stored session of {username} updated")

    def reload(self) -> None:
        app = self.app
        app.query_one("#user-list", UserTable).set_rows([])
        app.query_one("#adduser-name", Input).value = ""
        app.query_one("#adduser-admin", Checkbox).value = False
        app.sub_title = ""


class AdminTUI(App):
    """whawty admin console TUI application."""

    CSS = """
    #login-box {
        width: 60;
        height: auto;
        border: solid $primary;
        padding: 1 2;
    }

    #mainwindow {
        height: 1fr;
        padding: 0 1;
    }

    #user-list {
        height: 1fr;
        border: solid $primary;
    }

    #adduser-form {
        height: auto;
    }

    #adduser-name {
        width: 1fr;
    }

    AlertBanner {
        padding: 0 1;
        margin-bottom: 1;
        background: $boost;
    }
    """

    BINDINGS = [
        Binding("ctrl+r", "refresh_list", "Refresh", show=True),
        Binding("ctrl+o", "logout", "Logout", show=True),
        Binding("ctrl+q", "quit", "Quit", show=True),
    ]

    def __init__(self, config: ConsoleConfig):
        super().__init__()
        self.config = config
        self.title = "whawty admin"
        self.admin = AdminConsole(config, TuiView(self))
        self.admin.alerts.subscribe(self.show_alert)

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with Vertical(id="login-box"):
            yield AlertBanner(Destination.LOGIN, id="login-alert")
            yield Input(placeholder="Username", id="login-username")
            yield Input(placeholder="Password", password=True, id="login-password")
            yield Button("Login", id="login-btn", variant="primary")

        with Vertical(id="mainwindow"):
            yield AlertBanner(Destination.MAIN, id="main-alert")
            with Vertical(id="admin-view"):
                yield UserTable(id="user-list")
                with Horizontal(id="adduser-form"):
                    yield Input(placeholder="New username", id="adduser-name")
                    yield Checkbox("Admin", id="adduser-admin")
                    yield Button("Add", id="adduser-btn", variant="success")
            with Vertical(id="user-view"):
                yield Static(id="user-info")
                yield Button("Change password", id="changepw-own", variant="primary")
            yield Button("Logout", id="logout-btn", variant="error")

        yield Footer()

    def on_mount(self) -> None:
        for banner in self.query(AlertBanner):
            banner.display = False
        self.query_one("#login-box").display = False
        self.query_one("#mainwindow").display = False
        self.start_action(self.admin.start())

    async def on_unmount(self) -> None:
        await self.admin.close()

    def start_action(self, coro) -> None:
        """Run a controller coroutine without blocking the UI."""
        self.run_worker(coro, group="api", exit_on_error=False)

    def show_alert(self, dest: Destination, alert: Optional[Alert]) -> None:
        banner: Optional[AlertBanner] = None
        if dest == Destination.MODAL and isinstance(self.screen, PasswordDialog):
            banner = self.screen.query_one("#modal-alert", AlertBanner)
        elif dest == Destination.LOGIN:
            banner = self.query_one("#login-alert", AlertBanner)
        else:
            banner = self.query_one("#main-alert", AlertBanner)
        banner.show_alert(alert)

    def open_password_dialog(self, username: str, submit_label: str, is_new: bool = False, is_admin: bool = False) -> None:
        def submitted(result: Optional[Tuple[str, str]]) -> None:
            if result is None:
                return
            password, confirmation = result
            directory = self.admin.directory
            if is_new:
                self.query_one("#adduser-name", Input).value = ""
                self.start_action(directory.add_user(username, password, confirmation, is_admin))
            else:
                self.start_action(directory.update_password(username, password, confirmation))

        self.push_screen(PasswordDialog(username, submit_label), submitted)

    def _submit_login(self) -> None:
        username = self.query_one("#login-username", Input).value.strip()
        password = self.query_one("#login-password", Input).value
        self.start_action(self.admin.login(username, password))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id in ("login-username", "login-password"):
            self._submit_login()
        elif event.input.id == "adduser-name":
            self._open_add_dialog()

    def _open_add_dialog(self) -> None:
        name = self.query_one("#adduser-name", Input).value.strip()
        if not name:
            self.admin.alerts.warning(Destination.MAIN, "Add User", "please enter a username")
            return
        is_admin = self.query_one("#adduser-admin", Checkbox).value
        self.open_password_dialog(name, "Add", is_new=True, is_admin=is_admin)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "login-btn":
            self._submit_login()
        elif button_id == "adduser-btn":
            self._open_add_dialog()
        elif button_id == "changepw-own":
            session = self.admin.session
            if session is not None:
                self.open_password_dialog(session.username, "Change")
        elif button_id == "logout-btn":
            self.action_logout()

    def action_refresh_list(self) -> None:
        session = self.admin.session
        if session is not None and session.is_admin:
            self.start_action(self.admin.directory.fetch_list())

    def action_logout(self) -> None:
        if self.admin.session is not None:
            self.admin.logout()


def run_tui(config: ConsoleConfig) -> int:
    """Run the TUI until the user quits."""
    setup_logging(config.log_level, config.log_file or DEFAULT_TUI_LOG)
    logger.info(f"Starting TUI against {config.base_url}")
    AdminTUI(config).run()
    return 0
