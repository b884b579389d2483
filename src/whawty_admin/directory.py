"""
Account directory synchronization.

The directory is a point-in-time snapshot of the server's user list. It
is never patched locally: every successful mutation is followed by a full
refetch and redraw.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from .alerts import AlertBoard, Destination
from .api import WhawtyApiClient
from .errors import AuthenticationError, ValidationError, WhawtyAdminError
from .models import UserRecord, format_timestamp
from .passwords import require_matching
from .session import SessionManager
from .view import ConsoleView


@dataclass(frozen=True)
class UserRow:
    """Display model of one directory entry, keyed by name."""
    name: str
    is_admin: bool
    last_changed: str
    is_valid: bool
    is_supported: bool
    format: str

    @classmethod
    def from_record(cls, record: UserRecord) -> "UserRow":
        return cls(
            name=record.name,
            is_admin=record.is_admin,
            last_changed=format_timestamp(record.last_changed),
            is_valid=record.is_valid,
            is_supported=record.is_supported,
            format=str(record.credential_format),
        )


class AccountDirectory:
    """
    Admin-side user list and the actions on it.

    Each action returns True on success. Failures are reported through
    the alert board; 401s have already been handled by the session
    manager by the time they get here.
    """

    def __init__(
        self,
        sessions: SessionManager,
        api: WhawtyApiClient,
        view: ConsoleView,
        alerts: AlertBoard,
    ):
        self.sessions = sessions
        self.api = api
        self.view = view
        self.alerts = alerts
        self._records: Dict[str, UserRecord] = {}

    def get(self, name: str) -> Optional[UserRecord]:
        return self._records.get(name)

    def rows(self) -> List[UserRow]:
        return [UserRow.from_record(self._records[name]) for name in sorted(self._records)]

    def clear(self) -> None:
        self._records = {}
        self.view.render_directory([])

    def _report(self, error: WhawtyAdminError) -> None:
        if isinstance(error, AuthenticationError):
            return
        if isinstance(error, ValidationError):
            self.alerts.warning(Destination.MODAL, "Invalid input", error.message)
            return
        self.alerts.error(Destination.MAIN, "API Error", str(getattr(error, "message", error)))

    async def fetch_list(self, brief: bool = False) -> bool:
        """
        Replace the snapshot with the server's current user list.

        Overlapping calls are not ordered: the response that completes
        last is the one displayed.

        Args:
            brief: Use /api/list (admin flag and last change only)
        """
        session = self.sessions.session
        if session is None:
            logger.debug("Not logged in, skipping user list sync")
            return False

        operation = self.api.list_users if brief else self.api.list_full
        try:
            records = await self.sessions.call(operation)
        except WhawtyAdminError as e:
            self._report(e)
            return False

        # The response belongs to the session that issued the request
        if self.sessions.session is not session:
            logger.debug(f"Dropping user list requested by '{session.username}'")
            return False

        self._records = records
        self.view.render_directory(self.rows())
        logger.info(f"User list synced ({len(records)} users)")
        return True

    async def add_user(
        self,
        name: str,
        password: str,
        confirmation: str,
        is_admin: bool = False,
    ) -> bool:
        """Create an account, then resync."""
        name = name.strip()
        try:
            if not name:
                raise ValidationError("username", "username must not be empty")
            require_matching(password, confirmation)
        except ValidationError as e:
            self._report(e)
            return False

        try:
            data = await self.sessions.call(self.api.add, name, password, is_admin)
        except WhawtyAdminError as e:
            self._report(e)
            return False

        added = data.get("username") or name
        logger.success(f"Added user '{added}' (admin: {is_admin})")
        self.alerts.success(Destination.MAIN, "Add User", f"successfully added user {added}")
        await self.fetch_list()
        return True

    async def remove_user(self, name: str) -> bool:
        """Delete an account, then resync."""
        try:
            data = await self.sessions.call(self.api.remove, name)
        except WhawtyAdminError as e:
            self._report(e)
            return False

        removed = data.get("username") or name
        logger.success(f"Removed user '{removed}'")
        self.alerts.success(Destination.MAIN, "Remove User", f"successfully removed user {removed}")
        await self.fetch_list()
        return True

    async def set_admin_role(self, name: str, is_admin: bool) -> bool:
        """Set the admin flag of an account, then resync."""
        try:
            await self.sessions.call(self.api.set_admin, name, is_admin)
        except WhawtyAdminError as e:
            self._report(e)
            return False

        logger.success(f"Set admin role of '{name}' to {is_admin}")
        await self.fetch_list()
        return True

    async def toggle_admin(self, name: str) -> bool:
        """
        Flip the admin flag of an account.

        The current role is looked up in the snapshot when this is called,
        not when the row was drawn.
        """
        record = self._records.get(name)
        if record is None:
            self._report(ValidationError("username", f"unknown user {name}"))
            return False
        return await self.set_admin_role(name, not record.is_admin)

    async def update_password(self, name: str, password: str, confirmation: str) -> bool:
        """
        Set a new password for an account.

        Changing the logged-in user's own password also refreshes the
        stored credentials. Admin sessions resync afterwards.
        """
        try:
            require_matching(password, confirmation)
        except ValidationError as e:
            self._report(e)
            return False

        try:
            data = await self.sessions.call(self.api.update, name, password)
        except WhawtyAdminError as e:
            self._report(e)
            return False

        updated = data.get("username") or name
        logger.success(f"Updated password of '{updated}'")

        session = self.sessions.session
        if session is not None and session.username == updated:
            self.sessions.mark_password_changed()
            self.view.credentials_changed(updated)

        self.alerts.success(
            Destination.MAIN, "Password Update", f"successfully updated password for {updated}"
        )
        if session is not None and session.is_admin:
            await self.fetch_list()
        return True
