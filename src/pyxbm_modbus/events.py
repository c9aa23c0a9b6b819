"""Listener interface through which the session reports to its UI or logger."""

import logging
from enum import Enum

from .types import PLCStatus

logger = logging.getLogger(__name__)


class DisconnectReason(str, Enum):
    USER = "user"
    WATCHDOG = "watchdog"
    ABORTED = "aborted"
    RECONNECT = "reconnect"


class PanelListener:
    """
    Notification sink for session events. Every method is a no-op; override what you need.

    Methods are called from the poll and watchdog threads, not the caller's
    thread. A UI must marshal them onto its own event loop.
    """

    def on_connected(self, host: str, port: int) -> None:
        pass

    def on_disconnected(self, reason: DisconnectReason) -> None:
        pass

    def on_polling_changed(self, running: bool) -> None:
        pass

    def on_status_changed(self, status: PLCStatus) -> None:
        pass

    def on_value_changed(self, value: int) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass

    def on_watchdog_tick(self, remaining: float) -> None:
        pass

    def on_watchdog_expired(self) -> None:
        pass


def notify(listener: PanelListener, event: str, *args: object) -> None:
    """Invoke listener.<event>(*args); a failing listener is logged and never propagates."""
    try:
        getattr(listener, event)(*args)
    except Exception:
        logger.exception("Listener %s.%s raised", type(listener).__name__, event)
