"""
Exception types for the admin console.

Every failure an action can end in maps to one of these classes. The
console decides where to show an error (login banner, main window or
password modal) by its type.
"""

from typing import Optional


class WhawtyAdminError(Exception):
    """Base class for all admin console errors."""


class ValidationError(WhawtyAdminError):
    """
    Raised for input rejected on the client before any request is sent.

    Attributes:
        field: Name of the offending input (e.g. "confirmation")
        message: Human-readable reason
    """

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotLoggedInError(WhawtyAdminError):
    """Raised when an authenticated call is attempted without a session."""

    def __init__(self, message: str = "not logged in"):
        super().__init__(message)


class TransportError(WhawtyAdminError):
    """
    Raised when the server could not be reached or answered garbage.

    Attributes:
        message: Transport level error text
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiError(WhawtyAdminError):
    """
    Raised when the server answered with a non-success status.

    Attributes:
        status: HTTP status code
        message: Server error string, or the HTTP reason if it sent none
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"{status}: {message}")


class AuthenticationError(ApiError):
    """Raised on HTTP 401: rejected credentials or expired session."""

    def __init__(self, message: str, status: int = 401):
        super().__init__(status, message)
