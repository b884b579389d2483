"""
Session lifecycle.

SessionManager owns the single console session: it logs in, restores a
persisted session, logs out, and wraps every authenticated API call so
that a 401 from the server always ends the session the same way.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from .alerts import AlertBoard, Destination
from .api import WhawtyApiClient
from .errors import ApiError, AuthenticationError, NotLoggedInError, TransportError
from .models import Session, parse_timestamp
from .session_store import SessionStore
from .view import ConsoleView

T = TypeVar("T")

WRONG_CREDENTIALS = "username and/or password are wrong!"


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class SessionManager:
    """
    Authentication state machine.

    LOGGED_OUT -> (restore | login) -> LOGGED_IN -> (logout | 401) -> LOGGED_OUT

    Transitions happen only after the corresponding request completed.
    """

    def __init__(
        self,
        api: WhawtyApiClient,
        store: SessionStore,
        view: ConsoleView,
        alerts: AlertBoard,
        on_authenticated: Optional[Callable[[Session], Awaitable[None]]] = None,
        on_logged_out: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize manager.

        Args:
            api: API client
            store: Persistent session storage
            view: Display hooks
            alerts: Banner board
            on_authenticated: Coroutine run after a successful login
            on_logged_out: Called after the session was torn down by logout
        """
        self.api = api
        self.store = store
        self.view = view
        self.alerts = alerts
        self.on_authenticated = on_authenticated
        self.on_logged_out = on_logged_out
        self._session: Optional[Session] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.LOGGED_OUT
        return SessionState.LOGGED_IN

    @property
    def is_logged_in(self) -> bool:
        return self._session is not None

    def restore(self) -> bool:
        """
        Load the persisted session without asking the server.

        Returns:
            True if a complete session was restored
        """
        session = self.store.load()
        self._session = session
        if session is None:
            logger.info("No stored session")
            return False

        logger.info(f"Restored session for '{session.username}' ({session.role_label})")
        return True

    def _persist(self) -> None:
        if self._session is None:
            return
        try:
            self.store.save(self._session)
        except OSError as e:
            logger.warning(f"Session is kept in memory only, saving failed: {e}")

    def _teardown(self) -> None:
        self._session = None
        self.store.clear()

    async def login(self, username: str, password: str) -> bool:
        """
        Authenticate and start a session.

        Failures are reported in the login banner and clear the password
        input.

        Returns:
            True if logged in
        """
        try:
            data = await self.api.authenticate(username, password)
        except AuthenticationError:
            logger.warning(f"Login rejected for '{username}'")
            self.alerts.error(Destination.LOGIN, "Error logging in", WRONG_CREDENTIALS)
            self.view.clear_password()
            return False
        except (ApiError, TransportError) as e:
            self.alerts.error(Destination.LOGIN, "Error logging in", e.message)
            self.view.clear_password()
            return False

        token = data.get("session")
        if not token:
            message = data.get("errorstring") or data.get("error") or "no session returned"
            self.alerts.error(Destination.LOGIN, "Error logging in", message)
            self._teardown()
            self.view.clear_password()
            return False

        self._session = Session(
            username=data.get("username") or username,
            is_admin=data.get("admin") is True,
            last_changed=parse_timestamp(data.get("lastchanged")),
            token=token,
        )
        self._persist()

        logger.success(f"Logged in as '{self._session.username}' ({self._session.role_label})")
        self.alerts.dismiss(Destination.LOGIN)
        self.view.show_main(self._session)

        if self.on_authenticated is not None:
            await self.on_authenticated(self._session)
        return True

    def logout(self) -> None:
        """Drop the session everywhere and return to the login view."""
        if self._session is not None:
            logger.info(f"Logging out '{self._session.username}'")
        self._teardown()
        if self.on_logged_out is not None:
            self.on_logged_out()
        self.alerts.dismiss_all()
        self.view.show_login("")
        self.view.reload()

    def mark_password_changed(self, when: Optional[datetime] = None) -> None:
        """Record that the logged-in user's own password just changed."""
        if self._session is None:
            return
        self._session.last_changed = when or datetime.now(timezone.utc)
        self._persist()

    def handle_auth_failure(self, session: Session, error: AuthenticationError) -> None:
        """
        Apply the 401 policy for a call issued under session.

        Logs out (unless a newer session has replaced it meanwhile),
        pre-fills the login username and reports the failure.
        """
        current = self._session
        if current is not None and current.token != session.token:
            logger.warning(
                f"Ignoring 401 for superseded session of '{session.username}'"
            )
            return

        logger.warning(f"Session of '{session.username}' rejected: {error.message}")
        if current is not None:
            self.logout()
        self.view.show_login(session.username)
        self.alerts.error(Destination.LOGIN, "Authentication failure", error.message)

    async def call(self, operation: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Run an authenticated API operation.

        operation is awaited as operation(token, *args, **kwargs).

        Raises:
            NotLoggedInError: No session
            AuthenticationError: Re-raised after the 401 policy was applied
            ApiError, TransportError: Passed through unchanged
        """
        session = self._session
        if session is None:
            raise NotLoggedInError()

        try:
            return await operation(session.token, *args, **kwargs)
        except AuthenticationError as e:
            self.handle_auth_failure(session, e)
            raise
