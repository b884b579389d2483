"""
Console configuration.

Settings come from defaults, then WHAWTY_ADMIN_* environment variables,
then command line flags. Later sources win.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, field_validator

from .session_store import DEFAULT_SESSION_FILE

ENV_PREFIX = "WHAWTY_ADMIN_"

# field name -> environment variable suffix
ENV_FIELDS = {
    "base_url": "URL",
    "session_file": "SESSION_FILE",
    "timeout": "TIMEOUT",
    "verify_tls": "VERIFY_TLS",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
}


class ConsoleConfig(BaseModel):
    """
    Admin console settings.

    Attributes:
        base_url: Root URL of the whawty web API
        session_file: Where the logged-in session is persisted
        timeout: Per-request timeout in seconds
        verify_tls: Verify server certificates
        log_level: loguru level name
        log_file: Log to this file instead of stderr
    """
    base_url: str = "http://localhost:8080"
    session_file: Path = DEFAULT_SESSION_FILE
    timeout: float = 10.0
    verify_tls: bool = True
    log_level: str = "WARNING"
    log_file: Optional[Path] = None

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("base URL must start with http:// or https://")
        return value

    @field_validator("timeout")
    @classmethod
    def _check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        return value.strip().upper()


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ConsoleConfig:
    """
    Build the effective configuration.

    Args:
        overrides: Values from command line flags; None entries are ignored
        environ: Environment to read (default: os.environ)

    Returns:
        ConsoleConfig

    Raises:
        pydantic.ValidationError: On invalid values
    """
    if environ is None:
        environ = os.environ

    values: Dict[str, Any] = {}
    for name, suffix in ENV_FIELDS.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw not in (None, ""):
            values[name] = raw

    for name, value in (overrides or {}).items():
        if value is not None and name in ConsoleConfig.model_fields:
            values[name] = value

    return ConsoleConfig(**values)
