"""Core data model: function codes, PLC/poller/session states and the request value object."""

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum

# MBAP header (transaction, protocol, length, unit) + PDU (function, address, count/value)
REQUEST_STRUCT = struct.Struct(">HHHBBHH")
REQUEST_SIZE = REQUEST_STRUCT.size  # 12

COIL_ON = 0xFF00
COIL_OFF = 0x0000


class FunctionCode(IntEnum):
    """Modbus function codes spoken by the panel."""

    READ_INPUT_STATUS = 0x02
    READ_HOLDING_REGISTERS = 0x03
    WRITE_SINGLE_COIL = 0x05


class PLCStatus(str, Enum):
    """Run/stop state reported by the PLC (UNKNOWN until the first status read)."""

    UNKNOWN = "unknown"
    RUNNING = "running"
    STOPPED = "stopped"


class IOErrorKind(str, Enum):
    """Classifies socket faults: transient ones are reported, aborted ones end the session."""

    TRANSIENT = "transient"
    ABORTED = "aborted"


class PollerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    POLLING = "polling"


class Lamp(str, Enum):
    """Output lamps wired to coils 0 and 1."""

    GREEN = "green"
    RED = "red"

    @property
    def coil(self) -> int:
        return 0 if self is Lamp.GREEN else 1


@dataclass(frozen=True)
class ModbusRequest:
    """A 12-byte Modbus-TCP request; value is the count for reads and the coil word for writes."""

    unit_id: int
    function_code: int
    address: int
    value: int
    transaction_id: int = 0
    protocol_id: int = 0
    length: int = 6

    def __post_init__(self) -> None:
        for name in ("transaction_id", "protocol_id", "length", "address", "value"):
            v = getattr(self, name)
            if not 0 <= v <= 0xFFFF:
                raise ValueError(f"{name} must be in 0..0xFFFF, got {v}")
        for name in ("unit_id", "function_code"):
            v = getattr(self, name)
            if not 0 <= v <= 0xFF:
                raise ValueError(f"{name} must be in 0..0xFF, got {v}")

    def to_bytes(self) -> bytes:
        return REQUEST_STRUCT.pack(
            self.transaction_id,
            self.protocol_id,
            self.length,
            self.unit_id,
            self.function_code,
            self.address,
            self.value,
        )
