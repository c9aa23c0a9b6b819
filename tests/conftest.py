"""Shared fixtures: an in-memory PLC standing in for the socket transport, and a recording listener."""

import struct
import threading

import pytest

from pyxbm_modbus.config import PanelConfig
from pyxbm_modbus.errors import ModbusIOError, NotConnectedError
from pyxbm_modbus.events import PanelListener
from pyxbm_modbus.frame import ModbusResponse, decode_request
from pyxbm_modbus.types import FunctionCode, IOErrorKind


def status_response(status_byte: int, unit_id: int = 0) -> bytes:
    """fc 0x02 response carrying one data byte at offset 9."""
    return struct.pack(">HHHBBBB", 0, 0, 4, unit_id, 0x02, 1, status_byte)


def register_response(value: int, unit_id: int = 0) -> bytes:
    """fc 0x03 response carrying one register at offsets 9-10."""
    return struct.pack(">HHHBBBH", 0, 0, 5, unit_id, 0x03, 2, value)


def exception_response(function_code: int, code: int, unit_id: int = 0) -> bytes:
    return struct.pack(">HHHBBB", 0, 0, 3, unit_id, function_code | 0x80, code)


class FakePLC:
    """
    Transport double that answers frames like the lamp-panel PLC.

    `run` drives the status input, `value` the holding register. Queue
    exceptions or raw replies in `script` to override the next exchanges.
    """

    def __init__(self) -> None:
        self.run = True
        self.value = 300
        self.coils: dict[int, bool] = {}
        self.frames: list[bytes] = []
        self.script: list[bytes | BaseException] = []
        self.connect_error: BaseException | None = None
        self.connect_calls = 0
        self.disconnect_calls = 0
        self._connected = False
        self._endpoint: tuple[str, int] | None = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def endpoint(self) -> tuple[str, int] | None:
        return self._endpoint

    def connect(self, host: str, port: int, timeout: float) -> None:
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = True
        self._endpoint = (host, port)

    def disconnect(self) -> bool:
        if not self._connected:
            return False
        self.disconnect_calls += 1
        self._connected = False
        self._endpoint = None
        return True

    def send_receive(self, frame: bytes) -> ModbusResponse:
        if not self._connected:
            raise NotConnectedError()
        with self._lock:
            self.frames.append(frame)
            if self.script:
                item = self.script.pop(0)
                if isinstance(item, BaseException):
                    raise item
                return ModbusResponse(item)
        req = decode_request(frame)
        if req.function_code == FunctionCode.READ_INPUT_STATUS:
            return ModbusResponse(status_response(1 if self.run else 0))
        if req.function_code == FunctionCode.READ_HOLDING_REGISTERS:
            return ModbusResponse(register_response(self.value))
        if req.function_code == FunctionCode.WRITE_SINGLE_COIL:
            self.coils[req.address] = req.value == 0xFF00
            return ModbusResponse(frame)
        raise ModbusIOError("unsupported", kind=IOErrorKind.TRANSIENT)

    def function_codes(self) -> list[int]:
        with self._lock:
            return [f[7] for f in self.frames]


class RecordingListener(PanelListener):
    """Collects (event, args) tuples in arrival order."""

    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.disconnected = threading.Event()
        self.expired = threading.Event()
        self._lock = threading.Lock()

    def _add(self, *item: object) -> None:
        with self._lock:
            self.events.append(item)

    def names(self) -> list[str]:
        with self._lock:
            return [e[0] for e in self.events]

    def of(self, name: str) -> list[tuple]:
        with self._lock:
            return [e[1:] for e in self.events if e[0] == name]

    def on_connected(self, host, port):
        self._add("connected", host, port)

    def on_disconnected(self, reason):
        self._add("disconnected", reason)
        self.disconnected.set()

    def on_polling_changed(self, running):
        self._add("polling", running)

    def on_status_changed(self, status):
        self._add("status", status)

    def on_value_changed(self, value):
        self._add("value", value)

    def on_error(self, message):
        self._add("error", message)

    def on_watchdog_tick(self, remaining):
        self._add("tick", remaining)

    def on_watchdog_expired(self):
        self._add("expired")
        self.expired.set()


@pytest.fixture
def plc() -> FakePLC:
    return FakePLC()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def fast_config() -> PanelConfig:
    """Short timings so lifecycle tests finish quickly."""
    return PanelConfig(
        host="127.0.0.1",
        poll_interval=0.01,
        session_seconds=5.0,
        watchdog_tick=0.02,
        auto_poll=False,
    )
