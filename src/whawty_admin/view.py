"""
View interface and shared rendering helpers.

The controller never touches widgets directly; it drives a ConsoleView.
The Textual app and the command line each implement the hooks they need.
"""

from typing import TYPE_CHECKING, Sequence

from rich.table import Table
from rich.text import Text

from .models import Session

if TYPE_CHECKING:
    from .directory import UserRow


class ConsoleView:
    """
    Display hooks called by the controller.

    Every hook is a no-op here so front ends only override what they
    actually show.
    """

    def show_login(self, username: str = "") -> None:
        """Show the login form, pre-filled with username."""

    def clear_password(self) -> None:
        """Empty the login password input."""

    def show_main(self, session: Session) -> None:
        """Show the main window for a logged-in session."""

    def show_admin_view(self) -> None:
        """Show the account directory."""

    def show_user_view(self, session: Session) -> None:
        """Show the own-account panel for non-admin sessions."""

    def render_directory(self, rows: Sequence["UserRow"]) -> None:
        """Replace the displayed account table."""

    def credentials_changed(self, username: str) -> None:
        """The logged-in user's password was changed."""

    def reload(self) -> None:
        """Reset all view state after logout."""


def role_text(is_admin: bool) -> Text:
    if is_admin:
        return Text("Admin", style="bold blue")
    return Text("User", style="dim")


def flag_text(flag: bool) -> Text:
    if flag:
        return Text("✔", style="bold green")
    return Text("✘", style="bold red")


def build_user_table(rows: Sequence["UserRow"], title: str = "Users") -> Table:
    """Build a rich table with one line per user row."""
    table = Table(title=title, expand=True)
    table.add_column("Username", style="bold")
    table.add_column("Role", justify="center")
    table.add_column("Last changed")
    table.add_column("Valid", justify="center")
    table.add_column("Supported", justify="center")
    table.add_column("Format")

    for row in rows:
        table.add_row(
            row.name,
            role_text(row.is_admin),
            row.last_changed,
            flag_text(row.is_valid),
            flag_text(row.is_supported),
            row.format,
        )
    return table
