#!/usr/bin/env python3
"""Example: connect to the XBM PLC, read its status once and light the green lamp."""

import sys

from pyxbm_modbus import PanelConfig, XBMPanelClient
from pyxbm_modbus.errors import ConnectTimeoutError, ModbusIOError, PLCConnectionError, PLCStoppedError


def main() -> None:
    config = PanelConfig(host="192.168.0.2", port=502, auto_poll=False)  # change to your PLC IP

    try:
        with XBMPanelClient(config) as plc:
            status = plc.read_once()
            print(f"PLC status: {status}")
            if plc.last_value is not None:
                print(f"Analog input: {plc.last_value}")

            plc.green_lamp()
            print("Green lamp on")

            # Single coil write (coil 1 = red lamp)
            # plc.write_coil(1, False)
    except ConnectTimeoutError as e:
        print(f"PLC unreachable: {e}", file=sys.stderr)
        sys.exit(1)
    except PLCStoppedError as e:
        print(f"Refused: {e}", file=sys.stderr)
        sys.exit(1)
    except (PLCConnectionError, ModbusIOError) as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
