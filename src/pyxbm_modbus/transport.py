"""Transport: one blocking TCP socket to the PLC with a bounded connect."""

import errno
import logging
import socket

from .errors import ConnectTimeoutError, ModbusIOError, NotConnectedError, PLCConnectionError
from .frame import RESPONSE_BUFFER_SIZE, ModbusResponse
from .types import IOErrorKind

logger = logging.getLogger(__name__)

# errno values that mean the peer or the local stack tore the connection down
_ABORT_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, "ECONNABORTED", None),
        getattr(errno, "ECONNRESET", None),
        getattr(errno, "EPIPE", None),
        getattr(errno, "ENOTCONN", None),
        getattr(errno, "ESHUTDOWN", None),
        getattr(errno, "EBADF", None),
    )
    if code is not None
)


def classify_socket_error(exc: OSError) -> IOErrorKind:
    """Map an OSError raised on an established socket to an IOErrorKind."""
    if isinstance(exc, (ConnectionAbortedError, ConnectionResetError, BrokenPipeError)):
        return IOErrorKind.ABORTED
    if exc.errno in _ABORT_ERRNOS:
        return IOErrorKind.ABORTED
    return IOErrorKind.TRANSIENT


def resolve_ipv4(host: str, port: int) -> tuple[str, int]:
    """Return the first IPv4 (address, port) for host, raising PLCConnectionError when there is none."""
    try:
        infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise PLCConnectionError(f"Cannot resolve {host}: {e}", cause=e) from e
    if not infos:
        raise PLCConnectionError(f"No IPv4 address for {host}")
    return infos[0][4][:2]


class Transport:
    """
    Owns the single TCP connection to the PLC.

    Not thread-safe: callers must serialize send_receive() calls (the session
    funnels them through one lock).
    """

    def __init__(self) -> None:
        self._sock: socket.socket | None = None
        self._endpoint: tuple[str, int] | None = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def endpoint(self) -> tuple[str, int] | None:
        return self._endpoint

    def connect(self, host: str, port: int, timeout: float) -> None:
        """
        Open the TCP stream; the handshake is bounded by timeout seconds.

        The host is resolved once to a single IPv4 address so the bound covers
        one attempt. Resolving a name is not itself bounded; the PLC is
        normally addressed by an IPv4 literal.
        """
        if self._sock is not None:
            raise PLCConnectionError(f"Already connected to {self._endpoint[0]}:{self._endpoint[1]}")
        logger.debug("Connecting to %s:%s (timeout %.1fs)", host, port, timeout)
        address = resolve_ipv4(host, port)
        try:
            sock = socket.create_connection(address, timeout=timeout)
        except socket.timeout as e:
            raise ConnectTimeoutError(host, port, timeout) from e
        except OSError as e:
            raise PLCConnectionError(f"Failed to connect to {host}:{port}: {e}", cause=e) from e
        # Exchanges block without a per-call timeout once connected
        sock.settimeout(None)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._sock = sock
        self._endpoint = (host, port)
        logger.info("Connected to %s:%s", host, port)

    def send_receive(self, frame: bytes) -> ModbusResponse:
        """Write one request frame and read one response into a fixed-size buffer."""
        sock = self._sock
        if sock is None:
            raise NotConnectedError()
        try:
            sock.sendall(frame)
            logger.debug("TX %s", frame.hex(" "))
            data = sock.recv(RESPONSE_BUFFER_SIZE)
        except OSError as e:
            kind = classify_socket_error(e)
            raise ModbusIOError(f"Socket error: {e}", kind=kind, cause=e) from e
        if not data:
            raise ModbusIOError("Connection closed by PLC", kind=IOErrorKind.ABORTED)
        logger.debug("RX %s", data.hex(" "))
        return ModbusResponse(data)

    def disconnect(self) -> bool:
        """
        Half-close both directions and close the socket.

        Returns False (and logs it) when there was no connection to close.
        """
        sock = self._sock
        if sock is None:
            logger.info("Already disconnected")
            return False
        self._sock = None
        endpoint = self._endpoint
        self._endpoint = None
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug("Shutdown of %s:%s failed: %s", endpoint[0], endpoint[1], e)
        try:
            sock.close()
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        logger.info("Disconnected from %s:%s", endpoint[0], endpoint[1])
        return True
