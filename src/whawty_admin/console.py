"""
Admin console controller.

AdminConsole owns the one session context and wires the session manager,
the account directory and a view together. Both the Textual app and the
command line drive the service through it.
"""

from typing import Optional

from loguru import logger

from .alerts import AlertBoard, Destination
from .api import WhawtyApiClient
from .config import ConsoleConfig
from .directory import AccountDirectory
from .errors import ValidationError, WhawtyAdminError
from .models import Session
from .passwords import require_matching
from .session import SessionManager
from .session_store import SessionStore
from .view import ConsoleView


class AdminConsole:
    """
    Single controller for one console instance.

    Usable as an async context manager; leaving it closes the HTTP
    session.
    """

    def __init__(
        self,
        config: ConsoleConfig,
        view: Optional[ConsoleView] = None,
        api: Optional[WhawtyApiClient] = None,
        store: Optional[SessionStore] = None,
        alerts: Optional[AlertBoard] = None,
    ):
        """
        Initialize console.

        Args:
            config: Console settings
            view: Display hooks (default: no-op view)
            api: API client (default: built from config)
            store: Session storage (default: config.session_file)
            alerts: Banner board (default: a fresh one)
        """
        self.config = config
        self.view = view or ConsoleView()
        self.alerts = alerts or AlertBoard()
        self.api = api or WhawtyApiClient(
            config.base_url,
            timeout=config.timeout,
            verify_tls=config.verify_tls,
        )
        self.store = store or SessionStore(config.session_file)
        self.sessions = SessionManager(
            self.api,
            self.store,
            self.view,
            self.alerts,
            on_authenticated=self.init_view,
        )
        self.directory = AccountDirectory(self.sessions, self.api, self.view, self.alerts)
        self.sessions.on_logged_out = self.directory.clear

    async def __aenter__(self) -> "AdminConsole":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def session(self) -> Optional[Session]:
        return self.sessions.session

    async def start(self) -> bool:
        """
        Resume a persisted session or show the login view.

        Returns:
            True if a session was restored
        """
        if not self.sessions.restore():
            self.view.show_login("")
            return False

        session = self.sessions.session
        self.view.show_main(session)
        await self.init_view(session)
        return True

    async def init_view(self, session: Session) -> None:
        """Set up the main window for the session's role."""
        if session.is_admin:
            self.view.show_admin_view()
            await self.directory.fetch_list()
        else:
            self.view.show_user_view(session)

    async def login(self, username: str, password: str) -> bool:
        return await self.sessions.login(username, password)

    def logout(self) -> None:
        self.sessions.logout()

    async def change_own_password(self, password: str, confirmation: str) -> bool:
        """Change the logged-in user's password using the session."""
        session = self.sessions.session
        if session is None:
            self.alerts.error(Destination.LOGIN, "Not logged in", "please log in first")
            return False
        return await self.directory.update_password(session.username, password, confirmation)

    async def change_password_with_old(
        self,
        username: str,
        old_password: str,
        password: str,
        confirmation: str,
    ) -> bool:
        """
        Change a password by proving the current one.

        Works without a session; results are reported in the login banner.
        """
        try:
            require_matching(password, confirmation)
            data = await self.api.update_with_old_password(username, old_password, password)
        except ValidationError as e:
            self.alerts.warning(Destination.MODAL, "Invalid input", e.message)
            return False
        except WhawtyAdminError as e:
            self.alerts.error(
                Destination.LOGIN, "Password Update", str(getattr(e, "message", e))
            )
            return False

        updated = data.get("username") or username
        logger.success(f"Updated password of '{updated}' using the old password")
        self.alerts.success(
            Destination.LOGIN, "Password Update", f"successfully updated password for {updated}"
        )
        return True

    async def check_credentials(self, username: str, password: str) -> Optional[bool]:
        """
        Verify credentials via HTTP Basic auth without starting a session.

        Returns:
            True/False for accepted/rejected, None if the check itself failed
        """
        try:
            ok = await self.api.check_basic_auth(username, password)
        except WhawtyAdminError as e:
            self.alerts.error(
                Destination.LOGIN, "Credential check", str(getattr(e, "message", e))
            )
            return None

        if ok:
            self.alerts.success(Destination.LOGIN, "Credential check", f"credentials of {username} are valid")
        else:
            self.alerts.error(Destination.LOGIN, "Credential check", f"credentials of {username} were rejected")
        return ok

    async def close(self) -> None:
        await self.api.close()
