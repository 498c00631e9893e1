#!/usr/bin/env python3
"""Example: read holding registers and write a coil on a Modbus/TCP device."""

import sys

from raiden_modbus import (
    ExceptionResult,
    FunctionCode,
    LinkConfig,
    ModbusMaster,
    Protocol,
    PymodbusLink,
    RequestDescriptor,
)
from raiden_modbus.errors import DecodeError, InvalidRequestError, TransportError


def main() -> None:
    host = "192.168.1.10"  # change to your device IP
    slave_id = 1

    link = PymodbusLink(LinkConfig(Protocol.TCP, host=host, port=502))
    try:
        with ModbusMaster(Protocol.TCP, transport=link) as master:
            # Read 10 holding registers from address 0
            read = RequestDescriptor(Protocol.TCP, slave_id, FunctionCode.READ_HOLDING_REGISTERS, 0, quantity=10)
            result = master.execute(read)
            if isinstance(result, ExceptionResult):
                print(result)
            else:
                for item in result:
                    print(f"{item.address}: {item.value} ({item.hex}h)")

            # Switch coil 3 on (example; uncomment if your device allows)
            # write = RequestDescriptor(Protocol.TCP, slave_id, FunctionCode.WRITE_SINGLE_COIL, 3, value=True)
            # print(master.execute(write, raise_on_exception=True))
    except InvalidRequestError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        sys.exit(1)
    except DecodeError as e:
        print(f"Bad response: {e}", file=sys.stderr)
        sys.exit(1)
    except TransportError as e:
        print(f"Modbus/connection error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
