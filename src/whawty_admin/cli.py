#!/usr/bin/env python3
"""
whawty-admin command line.

Scriptable front end to the admin console. Each invocation resumes the
persisted session, runs one command and exits.

Usage:
    whawty-admin --url https://auth.example.com login
    whawty-admin list
    whawty-admin add alice --admin
    whawty-admin tui
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pydantic
from loguru import logger
from rich.console import Console

from .alerts import Alert, AlertLevel, Destination
from .config import load_config
from .console import AdminConsole
from .log import setup_logging
from .models import Session, format_timestamp
from .passwords import estimate_strength
from .view import ConsoleView, build_user_table

ALERT_STYLES = {
    AlertLevel.INFO: "cyan",
    AlertLevel.SUCCESS: "green",
    AlertLevel.WARNING: "yellow",
    AlertLevel.ERROR: "bold red",
}


class TerminalView(ConsoleView):
    """ConsoleView that prints to a rich console."""

    def __init__(self, out: Optional[Console] = None):
        self.out = out or Console()

    def on_alert(self, dest: Destination, alert: Optional[Alert]) -> None:
        if alert is None:
            return
        style = ALERT_STYLES[alert.level]
        self.out.print(f"[{style}]{alert.heading}:[/{style}] {alert.message}", highlight=False)

    def show_main(self, session: Session) -> None:
        self.out.print(f"Logged in as [bold]{session.username}[/bold] ({session.role_label})")

    def show_user_view(self, session: Session) -> None:
        self.out.print(f"Last password change: {format_timestamp(session.last_changed)}")

    def render_directory(self, rows) -> None:
        if rows:
            self.out.print(build_user_table(rows))

    def credentials_changed(self, username: str) -> None:
        self.out.print(f"[dim]Stored session of {username} updated[/dim]")


def ask_new_password(out: Console, username: str) -> Tuple[str, str]:
    """Prompt for a new password twice and print its strength."""
    password = getpass.getpass(f"New password for {username}: ")
    feedback = estimate_strength(password, [username])
    style = ALERT_STYLES[feedback.level]
    out.print(
        f"{feedback.stars} [{style}]{feedback.summary}[/{style}]"
        f" (estimated crack-time: {feedback.crack_time})",
        highlight=False,
    )
    for tip in feedback.suggestions:
        out.print(f"  [cyan]{tip}[/cyan]", highlight=False)
    confirmation = getpass.getpass("Retype password: ")
    return password, confirmation


def _require_session(admin: AdminConsole, out: Console) -> bool:
    if admin.sessions.restore():
        return True
    out.print("[bold red]Not logged in.[/bold red] Run 'whawty-admin login' first.")
    return False


async def cmd_login(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    username = args.username or input("Username: ").strip()
    if not username:
        out.print("[bold red]Error:[/bold red] username required")
        return False
    password = getpass.getpass("Password: ")
    return await admin.login(username, password)


async def cmd_logout(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    admin.sessions.restore()
    admin.logout()
    out.print("Logged out.")
    return True


async def cmd_whoami(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    session = admin.session
    admin.view.show_main(session)
    admin.view.show_user_view(session)
    return True


async def cmd_list(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    return await admin.directory.fetch_list(brief=args.brief)


async def cmd_add(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    password, confirmation = ask_new_password(out, args.name)
    return await admin.directory.add_user(args.name, password, confirmation, args.admin)


async def cmd_remove(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    return await admin.directory.remove_user(args.name)


async def cmd_set_admin(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    return await admin.directory.set_admin_role(args.name, args.state == "on")


async def cmd_toggle_admin(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if not _require_session(admin, out):
        return False
    if not await admin.directory.fetch_list():
        return False
    return await admin.directory.toggle_admin(args.name)


async def cmd_passwd(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    if args.old:
        username = args.name or input("Username: ").strip()
        old_password = getpass.getpass(f"Current password for {username}: ")
        password, confirmation = ask_new_password(out, username)
        return await admin.change_password_with_old(username, old_password, password, confirmation)

    if not _require_session(admin, out):
        return False
    username = args.name or admin.session.username
    password, confirmation = ask_new_password(out, username)
    return await admin.directory.update_password(username, password, confirmation)


async def cmd_check(admin: AdminConsole, args: argparse.Namespace, out: Console) -> bool:
    password = getpass.getpass(f"Password for {args.username}: ")
    return bool(await admin.check_credentials(args.username, password))


COMMANDS: Dict[str, Callable] = {
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "list": cmd_list,
    "add": cmd_add,
    "remove": cmd_remove,
    "set-admin": cmd_set_admin,
    "toggle-admin": cmd_toggle_admin,
    "passwd": cmd_passwd,
    "check": cmd_check,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="whawty-admin",
        description="Admin console for the whawty user-account service",
    )
    parser.add_argument("--url", dest="base_url", default=None, help="Server URL (env: WHAWTY_ADMIN_URL)")
    parser.add_argument("--session-file", type=Path, default=None, help="Session file (default: ~/.whawty_admin_session)")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument(
        "--insecure",
        dest="verify_tls",
        action="store_const",
        const=False,
        default=None,
        help="Do not verify TLS certificates",
    )
    parser.add_argument("--log-level", default=None, help="Log level (default: WARNING)")
    parser.add_argument("--log-file", type=Path, default=None, help="Log to file instead of stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and store the session")
    p.add_argument("username", nargs="?", default=None)

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("whoami", help="Show the stored session")
    p = sub.add_parser("list", help="List all users (admin)")
    p.add_argument("--brief", action="store_true", help="Only names, roles and last change")

    p = sub.add_parser("add", help="Add a user (admin)")
    p.add_argument("name")
    p.add_argument("--admin", action="store_true", help="Grant the admin role")

    p = sub.add_parser("remove", help="Remove a user (admin)")
    p.add_argument("name")

    p = sub.add_parser("set-admin", help="Set the admin role of a user (admin)")
    p.add_argument("name")
    p.add_argument("state", choices=("on", "off"))

    p = sub.add_parser("toggle-admin", help="Flip the admin role of a user (admin)")
    p.add_argument("name")

    p = sub.add_parser("passwd", help="Change a password")
    p.add_argument("name", nargs="?", default=None, help="Account (default: logged-in user)")
    p.add_argument("--old", action="store_true", help="Authenticate with the current password instead of the session")

    p = sub.add_parser("check", help="Verify credentials via HTTP Basic auth")
    p.add_argument("username")

    sub.add_parser("tui", help="Start the interactive console")
    return parser


async def run_command(args: argparse.Namespace, admin: AdminConsole, out: Console) -> int:
    """
    Run one parsed command.

    Returns:
        Process exit code (0 success, 1 failure)
    """
    handler = COMMANDS[args.command]
    try:
        ok = await handler(admin, args, out)
    finally:
        await admin.close()
    return 0 if ok else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "base_url": args.base_url,
        "session_file": args.session_file,
        "timeout": args.timeout,
        "verify_tls": args.verify_tls,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    try:
        config = load_config(overrides)
    except pydantic.ValidationError as e:
        parser.print_usage(sys.stderr)
        print(f"whawty-admin: error: invalid configuration:\n{e}", file=sys.stderr)
        return 2

    if args.command == "tui":
        from .tui import run_tui
        return run_tui(config)

    setup_logging(config.log_level, config.log_file)
    logger.debug(f"Using server {config.base_url}")

    out = Console()
    view = TerminalView(out)
    admin = AdminConsole(config, view)
    admin.alerts.subscribe(view.on_alert)

    try:
        return asyncio.run(run_command(args, admin, out))
    except KeyboardInterrupt:
        out.print("\nAborted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
