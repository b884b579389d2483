"""
Admin console data models.

Data classes for the logged-in session and for the user records the
server returns from its list endpoints.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Go marshals time.Time with zero to nine fractional digits
_FRACTION_RE = re.compile(r"\.(\d+)")

DISPLAY_FORMAT = "%d.%m.%Y %H:%M:%S"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp as sent by the server.

    Args:
        value: Timestamp string (e.g. "2023-01-01T00:00:00Z")

    Returns:
        Timezone-aware datetime, or None if value is empty or unparsable
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], text)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> str:
    """Render a timestamp for display in local time, or "-" if unknown."""
    # Go's zero time.Time marks "never"
    if value is None or value.year <= 1:
        return "-"
    return value.astimezone().strftime(DISPLAY_FORMAT)


@dataclass
class Session:
    """
    Authenticated console session.

    Attributes:
        username: Logged-in username
        is_admin: Whether the user has the admin role
        last_changed: When the user's password was last changed
        token: Opaque server-issued session token
    """
    username: str
    is_admin: bool
    last_changed: Optional[datetime]
    token: str

    @property
    def role_label(self) -> str:
        return "Admin" if self.is_admin else "User"

    def to_record(self) -> Dict[str, Any]:
        """Serialize into the persisted record layout."""
        return {
            "username": self.username,
            "admin": self.is_admin,
            "lastchanged": self.last_changed.isoformat() if self.last_changed else None,
            "session": self.token,
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any]) -> Optional["Session"]:
        """
        Rebuild a session from a persisted record.

        Returns:
            Session, or None unless both username and token are present
        """
        username = data.get("username")
        token = data.get("session")
        if not username or not token:
            return None

        return cls(
            username=str(username),
            is_admin=data.get("admin") is True,
            last_changed=parse_timestamp(data.get("lastchanged")),
            token=str(token),
        )


@dataclass(frozen=True)
class CredentialFormat:
    """
    Password hash scheme descriptor.

    Attributes:
        format_id: Hash scheme identifier (e.g. "scrypt", "argon2id")
        params: Parameter-set identifier within that scheme
    """
    format_id: str
    params: str

    def __str__(self) -> str:
        if not self.format_id:
            return "-"
        return f"{self.format_id} ({self.params})"


@dataclass(frozen=True)
class UserRecord:
    """
    One account as listed by the server.

    Attributes:
        name: Username, unique within the listing
        is_admin: Admin role flag
        last_changed: Password last-change timestamp
        is_valid: Whether the account's hash file is usable
        is_supported: Whether the hash scheme is still supported
        credential_format: Hash scheme descriptor
    """
    name: str
    is_admin: bool
    last_changed: Optional[datetime]
    is_valid: bool
    is_supported: bool
    credential_format: CredentialFormat

    @classmethod
    def from_api(cls, name: str, data: Dict[str, Any]) -> "UserRecord":
        """Build a record from one entry of a list response."""
        params = data.get("formatparams")
        if params is None:
            params = data.get("paramid", "")

        return cls(
            name=name,
            is_admin=bool(data.get("admin", False)),
            last_changed=parse_timestamp(data.get("lastchanged")),
            is_valid=bool(data.get("valid", False)),
            is_supported=bool(data.get("supported", False)),
            credential_format=CredentialFormat(
                format_id=str(data.get("formatid") or ""),
                params=str(params),
            ),
        )
