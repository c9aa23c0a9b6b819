"""Exceptions for pyxbm-modbus: connect failures, socket I/O faults and undecodable frames."""

from .types import IOErrorKind


class PyXBMModbusError(Exception):
    """Base exception for pyxbm-modbus."""

    pass


class ConnectTimeoutError(PyXBMModbusError, TimeoutError):
    """Raised when the TCP handshake does not complete within the connect bound."""

    def __init__(self, host: str, port: int, timeout: float) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:g}s connecting to {host}:{port}")


class PLCConnectionError(PyXBMModbusError, ConnectionError):
    """Raised when the connect attempt fails at the socket level."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ModbusIOError(PyXBMModbusError):
    """Raised when a send/receive fails on an established connection."""

    def __init__(
        self,
        message: str,
        *,
        kind: IOErrorKind = IOErrorKind.TRANSIENT,
        cause: BaseException | None = None,
    ) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(message)

    @property
    def aborted(self) -> bool:
        return self.kind is IOErrorKind.ABORTED


class ProtocolError(PyXBMModbusError):
    """Raised when a frame is too short to decode or the PLC answers with a Modbus exception."""

    def __init__(self, message: str, *, frame: bytes | None = None) -> None:
        self.frame = frame
        super().__init__(message)


class NotConnectedError(PyXBMModbusError):
    """Raised when an operation needs a connection and there is none."""

    def __init__(self, message: str = "Not connected to PLC") -> None:
        super().__init__(message)


class PLCStoppedError(PyXBMModbusError):
    """Raised when a lamp is requested while the PLC reports STOP."""

    def __init__(self, message: str = "PLC is stopped; outputs cannot be switched") -> None:
        super().__init__(message)
