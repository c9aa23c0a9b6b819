"""Poller: background loop reading PLC run status and, while running, the analog value."""

import logging
import threading
from typing import Callable

from .errors import ModbusIOError, NotConnectedError, ProtocolError
from .events import PanelListener, notify
from .frame import ModbusResponse, encode_read_request
from .types import FunctionCode, PLCStatus, PollerState

logger = logging.getLogger(__name__)

Exchange = Callable[[bytes], ModbusResponse]

STATUS_ADDRESS = 0
VALUE_ADDRESS = 0


class Poller:
    """
    Cancellable poll loop on a single daemon thread.

    Each iteration reads the run/stop input and, if the PLC is running, the
    first holding register, then sleeps `interval` seconds on the stop event.
    Cancellation is cooperative and honoured within one interval.
    """

    def __init__(
        self,
        exchange: Exchange,
        listener: PanelListener | None = None,
        *,
        unit_id: int = 0,
        interval: float = 0.1,
        on_abort: Callable[[], None] | None = None,
    ) -> None:
        self._exchange = exchange
        self._listener = listener if listener is not None else PanelListener()
        self._unit_id = unit_id
        self._interval = interval
        self._on_abort = on_abort
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.status = PLCStatus.UNKNOWN
        self.last_value: int | None = None
        self._status_frame = encode_read_request(unit_id, FunctionCode.READ_INPUT_STATUS, STATUS_ADDRESS, 1)
        self._value_frame = encode_read_request(unit_id, FunctionCode.READ_HOLDING_REGISTERS, VALUE_ADDRESS, 1)

    @property
    def state(self) -> PollerState:
        if self._thread is not None and not self._stop.is_set():
            return PollerState.RUNNING
        return PollerState.IDLE

    @property
    def running(self) -> bool:
        return self.state is PollerState.RUNNING

    def start(self, on_abort: Callable[[], None] | None = None) -> bool:
        """
        Start the loop. Returns False without starting a second loop if one is running.

        on_abort, when given, replaces the constructor callback for this loop only.
        """
        with self._lock:
            if self.running:
                return False
            previous = self._thread
        # A cancelled loop may still be finishing its last iteration
        if previous is not None and previous is not threading.current_thread():
            previous.join(self._interval * 10 + 5.0)
        with self._lock:
            if self.running:
                return False
            self._stop = threading.Event()
            self._thread = threading.Thread(
                target=self._run,
                args=(self._stop, on_abort if on_abort is not None else self._on_abort),
                name="pyxbm-poller",
                daemon=True,
            )
            logger.debug("Poller started (interval %.3fs)", self._interval)
            notify(self._listener, "on_polling_changed", True)
            self._thread.start()
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """
        Request cancellation and wait for the loop to exit.

        Idempotent; returns whether a loop was running. Called from the poll
        thread itself (e.g. via on_abort) it only sets the flag.
        """
        with self._lock:
            thread = self._thread
            self._stop.set()
            self._thread = None
        if thread is None:
            return False
        if thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self._interval * 10 + 5.0)
        logger.debug("Poller stopped")
        notify(self._listener, "on_polling_changed", False)
        return True

    def cancel(self) -> None:
        """Set the cancellation flag without waiting for the loop."""
        self._stop.set()

    def toggle(self) -> bool:
        """Start when idle, stop when running. Returns True if the loop is now running."""
        if self.running:
            self.stop()
            return False
        self.start()
        return True

    def reset(self) -> None:
        self.status = PLCStatus.UNKNOWN
        self.last_value = None

    def poll_once(self) -> PLCStatus | None:
        """Run one status read and, if running, one value read; errors propagate."""
        status = self._exchange(self._status_frame).status
        if status is None:
            return None
        self.status = status
        notify(self._listener, "on_status_changed", status)
        if status is PLCStatus.RUNNING:
            value = self._exchange(self._value_frame).register_value
            self.last_value = value
            notify(self._listener, "on_value_changed", value)
        return status

    def _run(self, stop: threading.Event, on_abort: Callable[[], None] | None) -> None:
        while not stop.is_set():
            try:
                self.poll_once()
            except (ModbusIOError, NotConnectedError) as e:
                if stop.is_set():
                    break
                aborted = isinstance(e, NotConnectedError) or e.aborted
                notify(self._listener, "on_error", str(e))
                if aborted:
                    logger.warning("Poll aborted: %s", e)
                    self._finish(stop)
                    if on_abort is not None:
                        on_abort()
                    break
                logger.debug("Poll I/O error: %s", e)
            except ProtocolError as e:
                if stop.is_set():
                    break
                logger.debug("Poll protocol error: %s", e)
                notify(self._listener, "on_error", str(e))
            except Exception as e:
                logger.exception("Poll loop failed")
                notify(self._listener, "on_error", f"Unexpected error: {e}")
                self._finish(stop)
                break
            stop.wait(self._interval)

    def _finish(self, stop: threading.Event) -> None:
        """End the loop from inside the poll thread."""
        with self._lock:
            owner = self._thread is threading.current_thread()
            stop.set()
            if owner:
                self._thread = None
        if owner:
            notify(self._listener, "on_polling_changed", False)
