#!/usr/bin/env python3
"""Command-line lamp panel for an XBM PLC over Modbus TCP, built on Typer."""

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .client import XBMPanelClient
from .config import DEFAULT_HOST, DEFAULT_PORT, PanelConfig
from .errors import (
    ConnectTimeoutError,
    ModbusIOError,
    NotConnectedError,
    PLCConnectionError,
    PLCStoppedError,
    ProtocolError,
)
from .events import DisconnectReason, PanelListener
from .frame import decode_request, encode_read_request, encode_write_coil_request
from .types import FunctionCode, Lamp, PLCStatus

app = typer.Typer(
    name="pyxbm",
    help="Lamp panel and status monitor for an XBM PLC via Modbus TCP.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

EXIT_INVALID = 2
EXIT_CONNECTION = 3
EXIT_UNEXPECTED = 4
EXIT_STOPPED = 5

# ============================================================================
# Shared options and helpers
# ============================================================================

HostOption = Annotated[
    str,
    typer.Option("--host", "-h", help="PLC hostname or IP address", envvar="PYXBM_HOST"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="PYXBM_PORT"),
]
UnitIdOption = Annotated[
    int,
    typer.Option("--unit-id", "-u", help="Modbus unit ID", envvar="PYXBM_UNIT_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Connect timeout in seconds", envvar="PYXBM_TIMEOUT"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_client(
    host: str,
    port: int,
    unit_id: int,
    timeout: float,
    *,
    listener: PanelListener | None = None,
    auto_poll: bool = False,
    **overrides: float,
) -> XBMPanelClient:
    """Build a PanelConfig from CLI options and return a client for it."""
    try:
        config = PanelConfig(
            host=host,
            port=port,
            unit_id=unit_id,
            connect_timeout=timeout,
            auto_poll=auto_poll,
        ).with_overrides(**overrides)
    except ValueError as e:
        typer.echo(f"Error: Invalid option: {e}", err=True)
        raise typer.Exit(EXIT_INVALID)
    return XBMPanelClient(config, listener=listener)


def parse_bool(value: str) -> bool:
    """Parse coil state from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_address(value: str) -> int:
    """Parse a 16-bit coil address, decimal or 0x hex."""
    v = value.strip()
    num = int(v, 16) if v.lower().startswith("0x") else int(v)
    if not (0 <= num <= 0xFFFF):
        raise ValueError(f"Address out of range 0..65535: {num}")
    return num


def format_status(status: PLCStatus | None) -> str:
    if status is None or status is PLCStatus.UNKNOWN:
        return "UNKNOWN"
    return "RUN" if status is PLCStatus.RUNNING else "STOP"


def fail(e: Exception, verbose: bool) -> typer.Exit:
    """Print an error for e and return the matching typer.Exit to raise."""
    if isinstance(e, ConnectTimeoutError):
        typer.echo(f"Error: Connect timeout: {e}", err=True)
        return typer.Exit(EXIT_CONNECTION)
    if isinstance(e, (PLCConnectionError, ModbusIOError, NotConnectedError)):
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        return typer.Exit(EXIT_CONNECTION)
    if isinstance(e, ProtocolError):
        typer.echo(f"Error: Protocol error: {e}", err=True)
        return typer.Exit(EXIT_CONNECTION)
    if isinstance(e, PLCStoppedError):
        typer.echo(f"Error: {e}", err=True)
        return typer.Exit(EXIT_STOPPED)
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    return typer.Exit(EXIT_UNEXPECTED)


class EchoListener(PanelListener):
    """Prints session events as text lines or NDJSON and signals when the session ends."""

    def __init__(self, json_output: bool = False) -> None:
        self.json_output = json_output
        self.closed = threading.Event()
        self.reason: DisconnectReason | None = None
        self._lock = threading.Lock()

    def _emit(self, event: str, **fields: object) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        with self._lock:
            if self.json_output:
                typer.echo(json.dumps({"timestamp": timestamp, "event": event, **fields}))
            else:
                pairs = " ".join(f"{k}={v}" for k, v in fields.items())
                typer.echo(f"{timestamp} {event} {pairs}".rstrip())

    def on_connected(self, host: str, port: int) -> None:
        self._emit("connected", host=host, port=port)

    def on_disconnected(self, reason: DisconnectReason) -> None:
        self.reason = reason
        self._emit("disconnected", reason=reason.value)
        self.closed.set()

    def on_status_changed(self, status: PLCStatus) -> None:
        self._emit("status", status=format_status(status))

    def on_value_changed(self, value: int) -> None:
        self._emit("value", value=value)

    def on_error(self, message: str) -> None:
        self._emit("error", message=message)

    def on_watchdog_tick(self, remaining: float) -> None:
        self._emit("watchdog", remaining=f"{remaining:.0f}")

    def on_watchdog_expired(self) -> None:
        self._emit("expired")


# ============================================================================
# Commands
# ============================================================================

@app.command()
def ping(
    host: HostOption = DEFAULT_HOST,
    port: PortOption = DEFAULT_PORT,
    unit_id: UnitIdOption = 0,
    timeout: TimeoutOption = 2.0,
    verbose: VerboseOption = False,
) -> None:
    """
    Test connectivity by connecting and reading the PLC run/stop input once.
    """
    setup_logging(verbose)

    try:
        client = create_client(host, port, unit_id, timeout)
        with client:
            status = client.read_once()
            typer.echo(f"OK: Connected to {host}:{port}, PLC {format_status(status)}")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def status(
    host: HostOption = DEFAULT_HOST,
    port: PortOption = DEFAULT_PORT,
    unit_id: UnitIdOption = 0,
    timeout: TimeoutOption = 2.0,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
) -> None:
    """
    Read PLC run/stop status and, when running, the analog input value.
    """
    setup_logging(verbose)

    try:
        client = create_client(host, port, unit_id, timeout)
        with client:
            client.read_once()
            plc_status = client.status
            value = client.last_value
        if json_output:
            typer.echo(json.dumps({"status": plc_status.value, "value": value}))
        else:
            typer.echo(f"PLC status: {format_status(plc_status)}")
            if value is not None:
                typer.echo(f"Analog input: {value}")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def lamp(
    color: Annotated[Lamp, typer.Argument(help="Lamp to light; the other one is switched off", case_sensitive=False)],
    host: HostOption = DEFAULT_HOST,
    port: PortOption = DEFAULT_PORT,
    unit_id: UnitIdOption = 0,
    timeout: TimeoutOption = 2.0,
    verbose: VerboseOption = False,
) -> None:
    """
    Light the green or the red lamp.

    Reads the PLC status first; a stopped PLC refuses the request (exit code 5).
    """
    setup_logging(verbose)

    try:
        client = create_client(host, port, unit_id, timeout)
        with client:
            client.read_once()
            client.light(color)
            typer.echo(f"OK: {color.value} lamp on")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command(name="write-coil")
def write_coil(
    address: Annotated[str, typer.Argument(help="Coil address (decimal or 0x hex)")],
    value: Annotated[str, typer.Argument(help="on/off, true/false, 1/0, yes/no")],
    host: HostOption = DEFAULT_HOST,
    port: PortOption = DEFAULT_PORT,
    unit_id: UnitIdOption = 0,
    timeout: TimeoutOption = 2.0,
    verbose: VerboseOption = False,
) -> None:
    """
    Write a single coil (function 0x05).
    """
    setup_logging(verbose)

    try:
        coil = parse_address(address)
        on = parse_bool(value)
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(EXIT_INVALID)

    try:
        client = create_client(host, port, unit_id, timeout)
        with client:
            client.write_coil(coil, on)
            typer.echo(f"OK: Coil {coil} = {'ON' if on else 'OFF'}")
    except typer.Exit:
        raise
    except Exception as e:
        raise fail(e, verbose)


@app.command()
def monitor(
    host: HostOption = DEFAULT_HOST,
    port: PortOption = DEFAULT_PORT,
    unit_id: UnitIdOption = 0,
    timeout: TimeoutOption = 2.0,
    verbose: VerboseOption = False,
    json_output: JsonOption = False,
    interval: Annotated[float, typer.Option("--interval", "-i", help="Poll interval in seconds", envvar="PYXBM_INTERVAL")] = 0.1,
    session: Annotated[float, typer.Option("--session", "-s", help="Session length in seconds before forced disconnect", envvar="PYXBM_SESSION")] = 15.0,
) -> None:
    """
    Connect, poll status and value continuously, and print every event.

    The session ends when the watchdog expires, the PLC drops the connection,
    or on Ctrl+C.
    """
    setup_logging(verbose)

    listener = EchoListener(json_output=json_output)
    client = create_client(
        host,
        port,
        unit_id,
        timeout,
        listener=listener,
        auto_poll=True,
        poll_interval=interval,
        session_seconds=session,
    )
    try:
        client.connect()
        while not listener.closed.wait(0.5):
            pass
    except KeyboardInterrupt:
        client.disconnect()
        typer.echo("\nStopped by user", err=True)
        raise typer.Exit(0)
    except Exception as e:
        client.disconnect()
        raise fail(e, verbose)
    if listener.reason is DisconnectReason.ABORTED:
        raise typer.Exit(EXIT_CONNECTION)


@app.command()
def frame(
    kind: Annotated[str, typer.Argument(help="read-status, read-register or write-coil")],
    address: Annotated[str, typer.Option("--address", "-a", help="Start or coil address")] = "0",
    count: Annotated[int, typer.Option("--count", "-c", help="Item count for reads")] = 1,
    on: Annotated[bool, typer.Option("--on/--off", help="Coil state for write-coil")] = True,
    unit_id: UnitIdOption = 0,
    json_output: JsonOption = False,
) -> None:
    """
    Print the 12-byte request frame as hex without connecting.
    """
    try:
        addr = parse_address(address)
        if kind == "read-status":
            data = encode_read_request(unit_id, FunctionCode.READ_INPUT_STATUS, addr, count)
        elif kind == "read-register":
            data = encode_read_request(unit_id, FunctionCode.READ_HOLDING_REGISTERS, addr, count)
        elif kind == "write-coil":
            data = encode_write_coil_request(unit_id, addr, on)
        else:
            typer.echo(f"Error: Unknown frame kind {kind!r}", err=True)
            raise typer.Exit(EXIT_INVALID)
    except ValueError as e:
        typer.echo(f"Error: Invalid value: {e}", err=True)
        raise typer.Exit(EXIT_INVALID)

    if json_output:
        req = decode_request(data)
        typer.echo(
            json.dumps(
                {
                    "hex": data.hex(" "),
                    "transaction_id": req.transaction_id,
                    "protocol_id": req.protocol_id,
                    "length": req.length,
                    "unit_id": req.unit_id,
                    "function_code": req.function_code,
                    "address": req.address,
                    "value": req.value,
                },
                indent=2,
            )
        )
    else:
        typer.echo(data.hex(" "))


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"pyxbm-modbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """pyxbm - Lamp panel and status monitor for an XBM PLC via Modbus TCP."""
    pass


if __name__ == "__main__":
    app()
