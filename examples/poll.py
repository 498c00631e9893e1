#!/usr/bin/env python3
"""Example: poll input registers over Modbus/RTU on an interval; graceful shutdown on Ctrl+C."""

import sys
import time

from raiden_modbus import FunctionCode, LinkConfig, ModbusMaster, Protocol, PymodbusLink, RequestDescriptor
from raiden_modbus.errors import DecodeError, TransportDisconnectedError, TransportTimeoutError


def main() -> None:
    serial_port = "/dev/ttyUSB0"  # change to your adapter
    request = RequestDescriptor(Protocol.RTU, 1, FunctionCode.READ_INPUT_REGISTERS, 0, quantity=4)
    interval_s = 1.0

    link = PymodbusLink(LinkConfig(Protocol.RTU, serial_port=serial_port, baudrate=19200, timeout=1.0))
    try:
        with ModbusMaster(Protocol.RTU, transport=link) as master:
            print(f"Polling {serial_port} every {interval_s}s (Ctrl+C to stop)...")
            while True:
                try:
                    print(master.execute(request))
                except (TransportTimeoutError, DecodeError) as e:
                    # the session is free again; try on the next tick
                    print(f"skipped: {e}", file=sys.stderr)
                time.sleep(interval_s)
    except KeyboardInterrupt:
        print("\nStopped.")
    except TransportDisconnectedError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
