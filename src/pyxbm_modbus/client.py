"""XBMPanelClient: one PLC session owning the transport, poll loop and watchdog."""

import functools
import logging
import threading
from typing import Any

from .config import PanelConfig
from .errors import ModbusIOError, NotConnectedError, PLCConnectionError, PLCStoppedError
from .events import DisconnectReason, PanelListener, notify
from .frame import ModbusResponse, encode_write_coil_request
from .poller import Poller
from .transport import Transport
from .types import Lamp, PLCStatus, SessionState
from .watchdog import Watchdog

logger = logging.getLogger(__name__)


class XBMPanelClient:
    """
    Session with a single PLC driving a green and a red lamp.

    connect() opens the socket, starts the session watchdog and (with
    auto_poll) the poll loop. Every socket exchange, from the poll thread or
    a lamp/coil write on the caller's thread, goes through one lock so the
    transport only ever has a single writer.
    """

    def __init__(
        self,
        config: PanelConfig | None = None,
        listener: PanelListener | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config if config is not None else PanelConfig()
        self._listener = listener if listener is not None else PanelListener()
        self._transport = transport if transport is not None else Transport()
        self._state_lock = threading.RLock()
        self._io_lock = threading.Lock()
        self._state = SessionState.DISCONNECTED
        # Bumped on every successful connect; deferred teardowns carry the value they started under
        self._generation = 0
        self._poller = Poller(
            self._exchange,
            self._listener,
            unit_id=self._config.unit_id,
            interval=self._config.poll_interval,
        )
        self._watchdog = Watchdog(tick=self._config.watchdog_tick)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> PanelConfig:
        return self._config

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            if self._state is SessionState.CONNECTED and self._poller.running:
                return SessionState.POLLING
            return self._state

    @property
    def connected(self) -> bool:
        return self.state in (SessionState.CONNECTED, SessionState.POLLING)

    @property
    def polling(self) -> bool:
        return self._poller.running

    @property
    def status(self) -> PLCStatus:
        return self._poller.status

    @property
    def last_value(self) -> int | None:
        return self._poller.last_value

    @property
    def remaining_seconds(self) -> float:
        return self._watchdog.remaining

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self, host: str | None = None, port: int | None = None) -> None:
        """
        Connect to the PLC and start the session watchdog.

        Reconnecting while connected tears the old session down first; this is
        the only way to restart the watchdog. Raises ConnectTimeoutError or
        PLCConnectionError.
        """
        host = host or self._config.host
        port = port or self._config.port
        # Tear down outside the state lock: the poll thread may need it to finish
        if self._state is not SessionState.DISCONNECTED:
            self.disconnect(DisconnectReason.RECONNECT)
        with self._state_lock:
            if self._state is not SessionState.DISCONNECTED:
                raise PLCConnectionError("Another connect is in progress")
            self._state = SessionState.CONNECTING
            try:
                self._transport.connect(host, port, self._config.connect_timeout)
            except Exception:
                self._state = SessionState.DISCONNECTED
                raise
            self._state = SessionState.CONNECTED
            self._generation += 1
            generation = self._generation
            self._poller.reset()
        notify(self._listener, "on_connected", host, port)
        self._watchdog.start(
            self._config.session_seconds,
            on_tick=self._on_watchdog_tick,
            on_expire=functools.partial(self._on_watchdog_expire, generation),
        )
        if self._config.auto_poll:
            self.start_polling()

    def disconnect(self, reason: DisconnectReason = DisconnectReason.USER) -> bool:
        """
        Stop polling, cancel the watchdog and close the socket.

        Returns False when the session was already disconnected.
        """
        return self._teardown(reason)

    def _teardown(self, reason: DisconnectReason, generation: int | None = None) -> bool:
        with self._state_lock:
            if self._state is SessionState.DISCONNECTED:
                logger.info("Disconnect requested but already disconnected")
                return False
            if generation is not None and generation != self._generation:
                logger.debug("Ignoring %s teardown of session %d (now %d)", reason.value, generation, self._generation)
                return False
            self._state = SessionState.DISCONNECTED
        self._poller.cancel()
        self._watchdog.stop()
        # Closed without the io lock so a recv blocked in the poll thread wakes up
        self._transport.disconnect()
        self._poller.stop()
        self._poller.reset()
        logger.info("Session closed (%s)", reason.value)
        notify(self._listener, "on_disconnected", reason)
        return True

    def __enter__(self) -> "XBMPanelClient":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.disconnect()

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start_polling(self) -> bool:
        """Start the poll loop; no-op (False) if it is already running."""
        with self._state_lock:
            if self._state is not SessionState.CONNECTED:
                raise NotConnectedError()
            return self._poller.start(on_abort=functools.partial(self._on_poll_abort, self._generation))

    def stop_polling(self) -> bool:
        """Stop the poll loop; returns whether it was running."""
        return self._poller.stop()

    def toggle_polling(self) -> bool:
        """Start polling when idle, stop it when running. Returns the new running flag."""
        if self._poller.running:
            self.stop_polling()
            return False
        self.start_polling()
        return True

    def read_once(self) -> PLCStatus | None:
        """One status read plus, when running, one value read, on the caller's thread."""
        return self._poller.poll_once()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def write_coil(self, address: int, on: bool) -> None:
        """Switch one coil ON (0xFF00) or OFF (0x0000)."""
        frame = encode_write_coil_request(self._config.unit_id, address, on)
        generation = self._generation
        try:
            response = self._exchange(frame)
        except ModbusIOError as e:
            if e.aborted:
                self._teardown(DisconnectReason.ABORTED, generation)
            raise
        response.raise_for_exception()
        logger.debug("Coil %d -> %s", address, "ON" if on else "OFF")

    def light(self, lamp: Lamp) -> Lamp:
        """
        Light one lamp and switch the other off.

        Refused while the PLC reports STOP; an UNKNOWN status is allowed. The
        other lamp is cleared first so both are never lit together.
        """
        if not self.connected:
            raise NotConnectedError("Not connected to PLC; lamps cannot be switched")
        if self.status is PLCStatus.STOPPED:
            raise PLCStoppedError()
        other = Lamp.RED if lamp is Lamp.GREEN else Lamp.GREEN
        self.write_coil(other.coil, False)
        self.write_coil(lamp.coil, True)
        logger.info("%s lamp on", lamp.value.capitalize())
        return lamp

    def green_lamp(self) -> Lamp:
        return self.light(Lamp.GREEN)

    def red_lamp(self) -> Lamp:
        return self.light(Lamp.RED)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _exchange(self, frame: bytes) -> ModbusResponse:
        with self._io_lock:
            return self._transport.send_receive(frame)

    def _on_poll_abort(self, generation: int) -> None:
        self._teardown(DisconnectReason.ABORTED, generation)

    def _on_watchdog_tick(self, remaining: float) -> None:
        notify(self._listener, "on_watchdog_tick", remaining)

    def _on_watchdog_expire(self, generation: int) -> None:
        notify(self._listener, "on_watchdog_expired")
        self._teardown(DisconnectReason.WATCHDOG, generation)
