#!/usr/bin/env python3
"""Command-line Modbus master built on raiden-modbus, using Typer."""

import json
import logging
from dataclasses import asdict
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .crc import crc16
from .decoder import DecodeResult, decode
from .errors import DecodeError, InvalidRequestError, ModbusExceptionError, TransportError
from .framing import build_frame
from .link import PymodbusLink
from .normalize import normalize_function_code, normalize_protocol, parse_hex_bytes
from .session import ModbusMaster
from .types import (
    BAUD_RATES,
    ExceptionResult,
    FunctionCode,
    LinkConfig,
    Protocol,
    RequestContext,
    RequestDescriptor,
)

app = typer.Typer(
    name="raiden",
    help="Modbus master for Modbus/TCP and Modbus/RTU: build frames, decode responses, poll devices.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

ProtocolOption = Annotated[
    str,
    typer.Option("--protocol", "-P", help="Wire variant: TCP or RTU", envvar="RAIDEN_PROTOCOL"),
]
HostOption = Annotated[
    Optional[str],
    typer.Option("--host", "-h", help="Device hostname or IP address (TCP)", envvar="RAIDEN_HOST"),
]
PortOption = Annotated[
    int,
    typer.Option("--port", "-p", help="Modbus TCP port", envvar="RAIDEN_PORT"),
]
SerialPortOption = Annotated[
    Optional[str],
    typer.Option("--serial-port", "-s", help="Serial port, e.g. /dev/ttyUSB0 or COM1 (RTU)", envvar="RAIDEN_SERIAL_PORT"),
]
BaudrateOption = Annotated[
    int,
    typer.Option("--baudrate", "-b", help=f"Serial baud rate ({', '.join(map(str, BAUD_RATES))})", envvar="RAIDEN_BAUDRATE"),
]
SlaveIdOption = Annotated[
    int,
    typer.Option("--slave-id", "-u", help="Slave / unit ID", envvar="RAIDEN_SLAVE_ID"),
]
TimeoutOption = Annotated[
    float,
    typer.Option("--timeout", "-t", help="Response timeout in seconds", envvar="RAIDEN_TIMEOUT"),
]
RetriesOption = Annotated[
    int,
    typer.Option("--retries", "-r", help="Number of retries on failure", envvar="RAIDEN_RETRIES"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]
FunctionCodeArgument = Annotated[
    str,
    typer.Argument(help="Function code: 01 coils, 02 discrete inputs, 03 holding, 04 input, 05 write coil, 06 write register"),
]


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if not verbose else "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def create_link(
    protocol: Protocol,
    host: Optional[str],
    port: int,
    serial_port: Optional[str],
    baudrate: int,
    timeout: float,
    retries: int,
) -> PymodbusLink:
    """Create a PymodbusLink; exits with code 2 when the link settings are incomplete."""
    if protocol == Protocol.TCP and not host:
        typer.echo("Error: --host is required for Modbus/TCP", err=True)
        raise typer.Exit(2)
    if protocol == Protocol.RTU and not serial_port:
        typer.echo("Error: --serial-port is required for Modbus/RTU", err=True)
        raise typer.Exit(2)
    try:
        config = LinkConfig(
            protocol=protocol,
            host=host,
            port=port,
            serial_port=serial_port,
            baudrate=baudrate,
            timeout=timeout,
            retries=retries,
        )
    except InvalidRequestError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)
    return PymodbusLink(config)


def parse_bool(value: str) -> bool:
    """Parse boolean value from string."""
    v = value.lower().strip()
    if v in ("true", "1", "on", "yes"):
        return True
    if v in ("false", "0", "off", "no"):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_int(value: str) -> int:
    """Parse an unsigned 16-bit integer from string, supporting 0x hex."""
    v = value.strip()
    num = int(v, 16) if v.lower().startswith("0x") else int(v)
    if not (0 <= num <= 65535):
        raise ValueError(f"Unsigned 16-bit integer out of range: {num}")
    return num


def parse_write_value(function_code: FunctionCode, value: str) -> int | bool:
    """Coil writes take on/off words or 0xFF00/0x0000; register writes take 0-65535."""
    if function_code == FunctionCode.WRITE_SINGLE_COIL:
        try:
            return parse_bool(value)
        except ValueError:
            return parse_int(value)
    return parse_int(value)


def format_result(result: DecodeResult) -> list[str]:
    """Render decoded values (or an exception) as display lines."""
    if isinstance(result, ExceptionResult):
        return [f"Exception: {result}"]
    return [f"ADDR {item.address:<5} {str(item.value):>5}  {item.hex}h" for item in result]


def result_to_json(result: DecodeResult) -> str:
    if isinstance(result, ExceptionResult):
        return json.dumps(
            {
                "function_code": result.function_code,
                "exception_code": result.exception_code,
                "name": result.name,
            }
        )
    return json.dumps([asdict(item) for item in result], indent=2)


def emit_result(result: DecodeResult, json_output: bool) -> None:
    """Print a decode result; exception responses exit with code 3."""
    if json_output:
        typer.echo(result_to_json(result))
    else:
        for line in format_result(result):
            typer.echo(line)
    if isinstance(result, ExceptionResult):
        raise typer.Exit(3)


def fail_unexpected(e: Exception, verbose: bool) -> None:
    typer.echo(f"Error: Unexpected error: {e}", err=True)
    if verbose:
        import traceback
        traceback.print_exc()
    raise typer.Exit(4)


# ============================================================================
# Offline commands
# ============================================================================

@app.command()
def crc(
    data: Annotated[str, typer.Argument(help="Bytes as hex, e.g. '01 03 00 00 00 0A'")],
    json_output: JsonOption = False,
) -> None:
    """
    Compute the Modbus RTU CRC-16 of a byte sequence.

    Prints the checksum and the two bytes as transmitted (low byte first).
    """
    try:
        payload = parse_hex_bytes(data)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(2)

    value = crc16(payload)
    wire = f"{value & 0xFF:02X} {value >> 8:02X}"
    if json_output:
        typer.echo(json.dumps({"crc": value, "hex": f"{value:04X}", "wire": wire}))
    else:
        typer.echo(f"CRC-16: 0x{value:04X}")
        typer.echo(f"Wire bytes (lo hi): {wire}")


@app.command()
def frame(
    function_code: FunctionCodeArgument,
    start: Annotated[int, typer.Argument(help="Start address (0-65535)")],
    protocol: ProtocolOption = "TCP",
    slave_id: SlaveIdOption = 1,
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Coils/registers to read (01-04)")] = 1,
    value: Annotated[Optional[str], typer.Option("--value", help="Value to write (05: on/off or 0xFF00/0; 06: 0-65535)")] = None,
    transaction_id: Annotated[int, typer.Option("--transaction-id", help="MBAP transaction id (TCP)")] = 1,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Build a request frame without sending it.

    Prints the frame as hex bytes, or JSON with --json.
    """
    setup_logging(verbose)

    try:
        proto = normalize_protocol(protocol)
        fc = normalize_function_code(function_code)
        write_value = parse_write_value(fc, value) if value is not None else None
        descriptor = RequestDescriptor(
            protocol=proto,
            slave_id=slave_id,
            function_code=fc,
            start_address=start,
            quantity=quantity,
            value=write_value,
        )
        built = build_frame(descriptor, transaction_id)
    except (InvalidRequestError, ValueError) as e:
        typer.echo(f"Error: Invalid request: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        fail_unexpected(e, verbose)

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "protocol": built.protocol.value,
                    "transaction_id": built.transaction_id,
                    "length": len(built),
                    "hex": built.hex(),
                }
            )
        )
    else:
        typer.echo(built.hex())


@app.command(name="decode")
def decode_response(
    response: Annotated[str, typer.Argument(help="Response bytes as hex")],
    function_code: Annotated[str, typer.Option("--function-code", "-f", help="Function code of the request")],
    start: Annotated[int, typer.Option("--start", help="Start address of the request")] = 0,
    quantity: Annotated[int, typer.Option("--quantity", "-q", help="Quantity of the request")] = 1,
    protocol: ProtocolOption = "TCP",
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Decode a captured response against the request it answers.

    Exception responses print the exception code and exit with code 3.
    """
    setup_logging(verbose)

    try:
        proto = normalize_protocol(protocol)
        fc = normalize_function_code(function_code)
        buffer = parse_hex_bytes(response)
        context = RequestContext(
            function_code=fc,
            start_address=start,
            quantity=quantity if fc.is_read else 1,
        )
        result = decode(buffer, context, proto)
    except DecodeError as e:
        typer.echo(f"Error: Cannot decode response: {e}", err=True)
        raise typer.Exit(2)
    except (InvalidRequestError, ValueError) as e:
        typer.echo(f"Error: Invalid input: {e}", err=True)
        raise typer.Exit(2)
    except Exception as e:
        fail_unexpected(e, verbose)

    emit_result(result, json_output)


# ============================================================================
# Link commands
# ============================================================================

def run_request(
    descriptor: RequestDescriptor,
    host: Optional[str],
    port: int,
    serial_port: Optional[str],
    baudrate: int,
    timeout: float,
    retries: int,
    json_output: bool,
    verbose: bool,
) -> None:
    """Execute one request over a pymodbus link and print the result."""
    link = create_link(descriptor.protocol, host, port, serial_port, baudrate, timeout, retries)
    try:
        with ModbusMaster(descriptor.protocol, transport=link) as master:
            result = master.execute(descriptor, raise_on_exception=True)
    except ModbusExceptionError as e:
        emit_result(e.result, json_output)
        return
    except DecodeError as e:
        typer.echo(f"Error: Cannot decode response: {e}", err=True)
        raise typer.Exit(3)
    except TransportError as e:
        typer.echo(f"Error: Connection/Modbus error: {e}", err=True)
        raise typer.Exit(3)
    except Exception as e:
        fail_unexpected(e, verbose)

    emit_result(result, json_output)


@app.command()
def read(
    function_code: FunctionCodeArgument,
    start: Annotated[int, typer.Argument(help="Start address (0-65535)")],
    quantity: Annotated[int, typer.Argument(help="Number of coils/registers")] = 1,
    protocol: ProtocolOption = "TCP",
    host: HostOption = None,
    port: PortOption = 502,
    serial_port: SerialPortOption = None,
    baudrate: BaudrateOption = 9600,
    slave_id: SlaveIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Read coils, discrete inputs, holding or input registers from a device.

    Prints one line per address, or JSON with --json.
    """
    setup_logging(verbose)

    try:
        proto = normalize_protocol(protocol)
        fc = normalize_function_code(function_code)
        if not fc.is_read:
            raise InvalidRequestError("function_code", f"Function {fc.value:02d} is not a read; use 'write'")
        descriptor = RequestDescriptor(
            protocol=proto,
            slave_id=slave_id,
            function_code=fc,
            start_address=start,
            quantity=quantity,
        )
    except InvalidRequestError as e:
        typer.echo(f"Error: Invalid request: {e}", err=True)
        raise typer.Exit(2)

    run_request(descriptor, host, port, serial_port, baudrate, timeout, retries, json_output, verbose)


@app.command()
def write(
    function_code: FunctionCodeArgument,
    address: Annotated[int, typer.Argument(help="Coil or register address (0-65535)")],
    value: Annotated[str, typer.Argument(help="Coil: true/false/on/off/1/0 or 0xFF00/0x0000; register: decimal or 0x hex")],
    protocol: ProtocolOption = "TCP",
    host: HostOption = None,
    port: PortOption = 502,
    serial_port: SerialPortOption = None,
    baudrate: BaudrateOption = 9600,
    slave_id: SlaveIdOption = 1,
    timeout: TimeoutOption = 3.0,
    retries: RetriesOption = 1,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Write a single coil (05) or a single holding register (06).

    Prints the value echoed by the device.
    """
    setup_logging(verbose)

    try:
        proto = normalize_protocol(protocol)
        fc = normalize_function_code(function_code)
        if fc.is_read:
            raise InvalidRequestError("function_code", f"Function {fc.value:02d} is not a write; use 'read'")
        descriptor = RequestDescriptor(
            protocol=proto,
            slave_id=slave_id,
            function_code=fc,
            start_address=address,
            value=parse_write_value(fc, value),
        )
    except (InvalidRequestError, ValueError) as e:
        typer.echo(f"Error: Invalid request: {e}", err=True)
        raise typer.Exit(2)

    run_request(descriptor, host, port, serial_port, baudrate, timeout, retries, json_output, verbose)


@app.command()
def info(
    json_output: JsonOption = False,
) -> None:
    """Show package version, supported protocols, function codes and baud rates."""
    info_data = {
        "version": __version__,
        "protocols": [p.value for p in Protocol],
        "function_codes": {f"{fc.value:02d}": fc.name.lower() for fc in FunctionCode},
        "baud_rates": list(BAUD_RATES),
    }

    if json_output:
        typer.echo(json.dumps(info_data, indent=2))
    else:
        typer.echo(f"raiden-modbus version: {info_data['version']}")
        typer.echo(f"Protocols: {', '.join(info_data['protocols'])}")
        typer.echo("Function codes:")
        for fc in FunctionCode:
            typer.echo(f"  {fc.label}")
        typer.echo(f"Baud rates: {', '.join(map(str, BAUD_RATES))}")


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"raiden-modbus {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """raiden - Modbus/TCP and Modbus/RTU master."""
    pass


if __name__ == "__main__":
    app()
