"""pyxbm-modbus: Modbus-TCP lamp panel client for a single XBM PLC (status poll, watchdog, coil writes)."""

__version__ = "0.1.0"

from .client import XBMPanelClient
from .config import PanelConfig
from .errors import (
    ConnectTimeoutError,
    ModbusIOError,
    NotConnectedError,
    PLCConnectionError,
    PLCStoppedError,
    ProtocolError,
    PyXBMModbusError,
)
from .events import DisconnectReason, PanelListener
from .frame import ModbusResponse, decode_request, encode_read_request, encode_write_coil_request
from .poller import Poller
from .transport import Transport
from .types import FunctionCode, IOErrorKind, Lamp, ModbusRequest, PLCStatus, PollerState, SessionState
from .watchdog import Watchdog

__all__ = [
    "__version__",
    "XBMPanelClient",
    "PanelConfig",
    "ConnectTimeoutError",
    "ModbusIOError",
    "NotConnectedError",
    "PLCConnectionError",
    "PLCStoppedError",
    "ProtocolError",
    "PyXBMModbusError",
    "DisconnectReason",
    "PanelListener",
    "ModbusResponse",
    "decode_request",
    "encode_read_request",
    "encode_write_coil_request",
    "Poller",
    "Transport",
    "FunctionCode",
    "IOErrorKind",
    "Lamp",
    "ModbusRequest",
    "PLCStatus",
    "PollerState",
    "SessionState",
    "Watchdog",
]
