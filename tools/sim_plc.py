#!/usr/bin/env python3
"""
Bench simulator for the lamp-panel PLC: a pymodbus TCP server exposing the
run/stop input (discrete input 0), the analog value (holding register 0) and
the two lamp coils (0 = green, 1 = red).

Usage (from repo root, after pip install -e ".[sim]"):
  python tools/sim_plc.py [--host HOST] [--port PORT] [--stopped] [--period SECONDS]

Then point the CLI at it, e.g.:
  pyxbm monitor --host 127.0.0.1 --port 5020
"""

import argparse
import logging
import math
import threading
import time

from pymodbus.datastore import ModbusDeviceContext, ModbusSequentialDataBlock, ModbusServerContext
from pymodbus.server import StartTcpServer

logger = logging.getLogger("sim_plc")

FC_COILS = 1
FC_DISCRETE_INPUTS = 2
FC_HOLDING_REGISTERS = 3

ANALOG_MAX = 4000


def build_context(running: bool) -> ModbusServerContext:
    """Single-device context: every unit id maps to the same data blocks."""
    device = ModbusDeviceContext(
        di=ModbusSequentialDataBlock(0, [int(running)] * 16),
        co=ModbusSequentialDataBlock(0, [0] * 16),
        hr=ModbusSequentialDataBlock(0, [0] * 16),
        ir=ModbusSequentialDataBlock(0, [0] * 16),
    )
    return ModbusServerContext(devices=device, single=True)


def run_updater(context: ModbusServerContext, period: float, stop: threading.Event) -> None:
    """Sweep the analog value as a sine wave and log lamp changes."""
    device = context[0]
    start = time.monotonic()
    lamps: list[int] = []
    while not stop.wait(0.1):
        phase = (time.monotonic() - start) / period * 2 * math.pi
        value = int((math.sin(phase) + 1) / 2 * ANALOG_MAX)
        device.setValues(FC_HOLDING_REGISTERS, 0, [value])
        coils = [int(bool(c)) for c in device.getValues(FC_COILS, 0, count=2)]
        if coils != lamps:
            lamps = coils
            logger.info("Lamps: green=%s red=%s", "ON" if coils[0] else "off", "ON" if coils[1] else "off")


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulated lamp-panel PLC (Modbus TCP)")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5020, help="Bind port (502 needs root)")
    parser.add_argument("--stopped", action="store_true", help="Report the PLC as stopped")
    parser.add_argument("--period", type=float, default=10.0, help="Analog sweep period in seconds")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    context = build_context(running=not args.stopped)
    stop = threading.Event()
    updater = threading.Thread(target=run_updater, args=(context, args.period, stop), daemon=True)
    updater.start()

    logger.info("Simulated PLC %s on %s:%d", "STOP" if args.stopped else "RUN", args.host, args.port)
    try:
        StartTcpServer(context=context, address=(args.host, args.port))
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()


if __name__ == "__main__":
    main()
