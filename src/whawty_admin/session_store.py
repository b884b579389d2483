"""
Persistent session storage.

Keeps the logged-in session in a single JSON file so the console can
resume without asking for the password again.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger

from .models import Session

DEFAULT_SESSION_FILE = Path.home() / ".whawty_admin_session"


class SessionStore:
    """
    File-backed session storage.

    The whole session is one JSON document. Writes go to a temporary file
    in the same directory which is then renamed over the target, so a
    reader sees either the old record or the new one, never a mix.
    """

    def __init__(self, path: Optional[Path] = None):
        """
        Initialize store.

        Args:
            path: Session file (default: ~/.whawty_admin_session)
        """
        if path is None:
            path = DEFAULT_SESSION_FILE
        self.path = Path(path)

    def load(self) -> Optional[Session]:
        """
        Load the persisted session.

        Returns:
            Session, or None if nothing usable is stored
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed session file {self.path}")
            return None

        return Session.from_record(data)

    def save(self, session: Session) -> None:
        """
        Persist a session atomically with mode 0600.

        Raises:
            OSError: If the file could not be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w") as f:
                os.chmod(tmp_name, 0o600)  # rw-------
                json.dump(session.to_record(), f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Session for '{session.username}' saved to {self.path}")

    def clear(self) -> None:
        """Remove the persisted session, if any."""
        try:
            self.path.unlink()
            logger.debug(f"Session file {self.path} removed")
        except FileNotFoundError:
            pass
