"""
Admin console for the whawty user-account service.

Session handling, account directory sync and the JSON API client shared
by the command line and the Textual TUI.
"""

from .alerts import Alert, AlertBoard, AlertLevel, Destination
from .api import WhawtyApiClient
from .config import ConsoleConfig, load_config
from .console import AdminConsole
from .directory import AccountDirectory, UserRow
from .errors import (
    ApiError,
    AuthenticationError,
    NotLoggedInError,
    TransportError,
    ValidationError,
    WhawtyAdminError,
)
from .models import CredentialFormat, Session, UserRecord
from .passwords import PasswordFeedback, estimate_strength, passwords_match
from .session import SessionManager, SessionState
from .session_store import SessionStore
from .view import ConsoleView

__version__ = "0.1.0"

__all__ = [
    # Models
    "Session",
    "UserRecord",
    "CredentialFormat",
    # Controller and components
    "AdminConsole",
    "SessionManager",
    "SessionState",
    "SessionStore",
    "AccountDirectory",
    "UserRow",
    "WhawtyApiClient",
    "ConsoleConfig",
    "load_config",
    "ConsoleView",
    # Alerts
    "Alert",
    "AlertBoard",
    "AlertLevel",
    "Destination",
    # Passwords
    "PasswordFeedback",
    "estimate_strength",
    "passwords_match",
    # Errors
    "WhawtyAdminError",
    "ValidationError",
    "NotLoggedInError",
    "TransportError",
    "ApiError",
    "AuthenticationError",
]
