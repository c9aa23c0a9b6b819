"""Frame codec: build 12-byte Modbus-TCP requests and read response fields by fixed offset."""

from .errors import ProtocolError
from .types import (
    COIL_OFF,
    COIL_ON,
    REQUEST_SIZE,
    REQUEST_STRUCT,
    FunctionCode,
    ModbusRequest,
    PLCStatus,
)

RESPONSE_BUFFER_SIZE = 256

# Offsets into a response: MBAP(7) + function(1) + byte count(1) + data
_FUNCTION_OFFSET = 7
_EXCEPTION_CODE_OFFSET = 8
_DATA_OFFSET = 9

_STATUS_BY_BYTE = {0: PLCStatus.STOPPED, 1: PLCStatus.RUNNING}


def encode_read_request(
    unit_id: int,
    function_code: int,
    address: int,
    count: int,
    transaction_id: int = 0,
) -> bytes:
    """Build a read request (fc 0x02 or 0x03) for count items starting at address."""
    if function_code not in (FunctionCode.READ_INPUT_STATUS, FunctionCode.READ_HOLDING_REGISTERS):
        raise ValueError(f"Not a read function code: {function_code:#04x}")
    return ModbusRequest(
        unit_id=unit_id,
        function_code=int(function_code),
        address=address,
        value=count,
        transaction_id=transaction_id,
    ).to_bytes()


def encode_write_coil_request(unit_id: int, address: int, on: bool, transaction_id: int = 0) -> bytes:
    """Build a write-single-coil request (fc 0x05); ON is 0xFF00, OFF is 0x0000."""
    return ModbusRequest(
        unit_id=unit_id,
        function_code=int(FunctionCode.WRITE_SINGLE_COIL),
        address=address,
        value=COIL_ON if on else COIL_OFF,
        transaction_id=transaction_id,
    ).to_bytes()


def decode_request(frame: bytes) -> ModbusRequest:
    """Parse the header fields of a 12-byte request frame."""
    if len(frame) != REQUEST_SIZE:
        raise ProtocolError(f"Request frame must be {REQUEST_SIZE} bytes, got {len(frame)}", frame=bytes(frame))
    tid, pid, length, unit, fc, address, value = REQUEST_STRUCT.unpack(frame)
    return ModbusRequest(
        unit_id=unit,
        function_code=fc,
        address=address,
        value=value,
        transaction_id=tid,
        protocol_id=pid,
        length=length,
    )


class ModbusResponse:
    """
    Raw response buffer with fixed-offset accessors.

    No framing or length validation happens on receipt; an accessor that reaches
    past the end of a truncated buffer raises ProtocolError.
    """

    __slots__ = ("raw",)

    def __init__(self, raw: bytes) -> None:
        self.raw = bytes(raw[:RESPONSE_BUFFER_SIZE])

    def __len__(self) -> int:
        return len(self.raw)

    def __repr__(self) -> str:
        return f"ModbusResponse({self.raw.hex(' ')})"

    def _byte(self, offset: int) -> int:
        if offset >= len(self):
            raise ProtocolError(
                f"Response too short: need byte {offset}, got {len(self)} bytes",
                frame=self.raw,
            )
        return self.raw[offset]

    @property
    def function_code(self) -> int:
        return self._byte(_FUNCTION_OFFSET)

    @property
    def is_exception(self) -> bool:
        return bool(self.function_code & 0x80)

    @property
    def exception_code(self) -> int:
        return self._byte(_EXCEPTION_CODE_OFFSET)

    @property
    def status(self) -> PLCStatus | None:
        """Run/stop byte of a status read; None for values other than 0 and 1."""
        return _STATUS_BY_BYTE.get(self._byte(_DATA_OFFSET))

    @property
    def register_value(self) -> int:
        """First holding register of a register read (big-endian)."""
        hi = self._byte(_DATA_OFFSET)
        lo = self._byte(_DATA_OFFSET + 1)
        return (hi << 8) | lo

    def raise_for_exception(self) -> None:
        """Raise ProtocolError if the PLC answered with a Modbus exception response."""
        if self.is_exception:
            raise ProtocolError(
                f"PLC returned exception code {self.exception_code:#04x} "
                f"for function {self.function_code & 0x7F:#04x}",
                frame=self.raw,
            )
