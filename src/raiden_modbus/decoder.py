"""Response decoding: exception detection, bit-packed coils/inputs, 16-bit registers, write echoes."""

import logging
import struct
from typing import Callable

from .errors import DecodeError, MissingContextError
from .framing import Framing, framing_for
from .types import COIL_OFF, COIL_ON, ExceptionResult, FunctionCode, ParsedValue, Protocol, RequestContext

logger = logging.getLogger(__name__)

EXCEPTION_FLAG = 0x80

DecodeResult = list[ParsedValue] | ExceptionResult


def _read_payload(buffer: bytes, framing: Framing) -> bytes:
    """Slice exactly ``byte_count`` data bytes following the byte-count field."""
    byte_count = buffer[framing.byte_count_index]
    start = framing.data_index
    end = start + byte_count
    available = framing.data_end(buffer) - start
    if byte_count > available:
        raise DecodeError(
            f"Response declares {byte_count} data bytes but only {max(available, 0)} are present",
            buffer=buffer,
        )
    if byte_count < available:
        raise DecodeError(
            f"Response carries {available - byte_count} bytes beyond its declared {byte_count}",
            buffer=buffer,
        )
    return buffer[start:end]


def decode_bits(raw: bytes, context: RequestContext) -> list[ParsedValue]:
    """Unpack ``context.quantity`` bits, LSB first within each byte."""
    needed = (context.quantity + 7) // 8
    if len(raw) < needed:
        raise DecodeError(
            f"{context.quantity} bits need {needed} data bytes, response has {len(raw)}",
            buffer=raw,
        )
    results: list[ParsedValue] = []
    for i in range(context.quantity):
        bit = (raw[i // 8] >> (i % 8)) & 0x01
        results.append(
            ParsedValue(
                address=context.start_address + i,
                value="ON" if bit else "OFF",
                hex="01" if bit else "00",
            )
        )
    return results


def decode_registers(raw: bytes, context: RequestContext) -> list[ParsedValue]:
    """Unpack big-endian 16-bit registers; a truncated trailing register is dropped."""
    results: list[ParsedValue] = []
    for i in range(context.quantity):
        idx = i * 2
        if idx + 1 >= len(raw):
            break
        (value,) = struct.unpack(">H", raw[idx : idx + 2])
        results.append(ParsedValue(address=context.start_address + i, value=value, hex=f"{value:04X}"))
    if len(results) < context.quantity:
        logger.debug("Register payload short: decoded %d of %d", len(results), context.quantity)
    return results


def decode_write_echo(buffer: bytes, framing: Framing, context: RequestContext) -> list[ParsedValue]:
    """Decode the address/value echo returned by write single coil/register."""
    start = framing.function_index + 1
    if framing.data_end(buffer) - start != 4:
        raise DecodeError("Write response must echo a 2-byte address and 2-byte value", buffer=buffer)
    address, value = struct.unpack(">HH", buffer[start : start + 4])
    if address != context.start_address:
        raise DecodeError(
            f"Write response echoes address {address}, request used {context.start_address}",
            buffer=buffer,
        )
    if context.function_code == FunctionCode.WRITE_SINGLE_COIL:
        if value not in (COIL_ON, COIL_OFF):
            raise DecodeError(f"Invalid coil echo value 0x{value:04X}", buffer=buffer)
        on = value == COIL_ON
        return [ParsedValue(address=address, value="ON" if on else "OFF", hex="01" if on else "00")]
    return [ParsedValue(address=address, value=value, hex=f"{value:04X}")]


_PAYLOAD_DECODERS: dict[FunctionCode, Callable[[bytes, RequestContext], list[ParsedValue]]] = {
    FunctionCode.READ_COILS: decode_bits,
    FunctionCode.READ_DISCRETE_INPUTS: decode_bits,
    FunctionCode.READ_HOLDING_REGISTERS: decode_registers,
    FunctionCode.READ_INPUT_REGISTERS: decode_registers,
}


def decode(buffer: bytes, context: RequestContext | None, protocol: Protocol | str) -> DecodeResult:
    """
    Decode one complete response buffer using the context of the request it answers.

    Returns a list of ParsedValue, or an ExceptionResult when the device rejected the
    request. Raises DecodeError (MissingContextError, CRCError) when the buffer cannot
    be interpreted.
    """
    buffer = bytes(buffer)
    if context is None:
        raise MissingContextError(buffer=buffer)

    framing = framing_for(protocol)
    framing.check(buffer)

    function_byte = buffer[framing.function_index]
    # a bare 0x80 names no function; it falls through to the function code match
    if function_byte > EXCEPTION_FLAG:
        result = ExceptionResult(
            function_code=function_byte & 0x7F,
            exception_code=buffer[framing.exception_index],
        )
        logger.warning("%s", result)
        return result

    function_code = FunctionCode(context.function_code)
    if function_byte != function_code:
        raise DecodeError(
            f"Response function 0x{function_byte:02X} does not match request 0x{function_code:02X}",
            buffer=buffer,
        )

    if not function_code.is_read:
        return decode_write_echo(buffer, framing, context)

    raw = _read_payload(buffer, framing)
    return _PAYLOAD_DECODERS[function_code](raw, context)
