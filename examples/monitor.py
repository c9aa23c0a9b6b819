#!/usr/bin/env python3
"""Example: poll status and value for one watchdog session, printing events; Ctrl+C to stop early."""

import sys
import threading

from pyxbm_modbus import DisconnectReason, PanelConfig, PanelListener, PLCStatus, XBMPanelClient
from pyxbm_modbus.errors import ConnectTimeoutError, PLCConnectionError


class PrintListener(PanelListener):
    def __init__(self) -> None:
        self.done = threading.Event()

    def on_status_changed(self, status: PLCStatus) -> None:
        print(f"status: {status.value}")

    def on_value_changed(self, value: int) -> None:
        print(f"value: {value}")

    def on_error(self, message: str) -> None:
        print(f"error: {message}", file=sys.stderr)

    def on_watchdog_tick(self, remaining: float) -> None:
        print(f"session: {remaining:.0f}s left")

    def on_disconnected(self, reason: DisconnectReason) -> None:
        print(f"disconnected ({reason.value})")
        self.done.set()


def main() -> None:
    listener = PrintListener()
    plc = XBMPanelClient(PanelConfig(host="192.168.0.2", session_seconds=15), listener=listener)

    try:
        plc.connect()
        listener.done.wait()
    except KeyboardInterrupt:
        plc.disconnect()
        print("\nStopped.")
    except (ConnectTimeoutError, PLCConnectionError) as e:
        print(f"Connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
