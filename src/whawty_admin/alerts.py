"""
Scoped alert banners.

Each screen region (login box, main window, password modal) owns one
banner. Posting a new alert to a region replaces whatever it showed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger


class Destination(str, Enum):
    """Screen region an alert is rendered into."""
    LOGIN = "login"
    MAIN = "main"
    MODAL = "modal"


class AlertLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Alert:
    level: AlertLevel
    heading: str
    message: str

    def __str__(self) -> str:
        return f"{self.heading}: {self.message}"


class AlertBoard:
    """
    Holds the current alert of every destination.

    Listeners registered with subscribe() are called with the destination
    and its new alert (None once dismissed).
    """

    def __init__(self):
        self._alerts: Dict[Destination, Alert] = {}
        self._listeners: List[Callable[[Destination, Optional[Alert]], None]] = []

    def subscribe(self, listener: Callable[[Destination, Optional[Alert]], None]) -> None:
        self._listeners.append(listener)

    def _notify(self, dest: Destination, alert: Optional[Alert]) -> None:
        for listener in self._listeners:
            listener(dest, alert)

    def post(self, dest: Destination, level: AlertLevel, heading: str, message: str) -> Alert:
        """Show an alert in dest, replacing the previous one."""
        alert = Alert(level=level, heading=heading, message=message)
        self._alerts[dest] = alert

        if level == AlertLevel.ERROR:
            logger.error(f"[{dest.value}] {alert}")
        elif level == AlertLevel.WARNING:
            logger.warning(f"[{dest.value}] {alert}")
        else:
            logger.info(f"[{dest.value}] {alert}")

        self._notify(dest, alert)
        return alert

    def info(self, dest: Destination, heading: str, message: str) -> Alert:
        return self.post(dest, AlertLevel.INFO, heading, message)

    def success(self, dest: Destination, heading: str, message: str) -> Alert:
        return self.post(dest, AlertLevel.SUCCESS, heading, message)

    def warning(self, dest: Destination, heading: str, message: str) -> Alert:
        return self.post(dest, AlertLevel.WARNING, heading, message)

    def error(self, dest: Destination, heading: str, message: str) -> Alert:
        return self.post(dest, AlertLevel.ERROR, heading, message)

    def get(self, dest: Destination) -> Optional[Alert]:
        return self._alerts.get(dest)

    def dismiss(self, dest: Destination) -> None:
        if self._alerts.pop(dest, None) is not None:
            self._notify(dest, None)

    def dismiss_all(self) -> None:
        for dest in list(self._alerts):
            self.dismiss(dest)
