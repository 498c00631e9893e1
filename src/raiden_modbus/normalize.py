"""Normalize and validate caller-supplied configuration: function codes, protocol selector, hex dumps."""

import re

from .errors import InvalidRequestError
from .types import FunctionCode, Protocol

# '3', '03', '0x03', '0X3'
_FUNCTION_CODE_PATTERN = re.compile(r"^(?:0x([0-9a-f]{1,2})|(\d{1,2}))$", re.IGNORECASE)

_HEX_SEPARATORS = re.compile(r"[\s:,\-]+")


def normalize_function_code(raw: str | int) -> FunctionCode:
    """
    Normalize a function code to FunctionCode.

    Accepts ints, string-coded forms ('01'..'06', '3', '0x03') and enum names
    ('read_holding_registers', case-insensitive).

    Raises InvalidRequestError for anything else.
    """
    if isinstance(raw, int):
        try:
            return FunctionCode(raw)
        except ValueError:
            raise InvalidRequestError("function_code", f"Unsupported function code: {raw!r}") from None

    s = raw.strip()
    if not s:
        raise InvalidRequestError("function_code", "Function code cannot be empty")

    m = _FUNCTION_CODE_PATTERN.match(s)
    if m:
        number = int(m.group(1), 16) if m.group(1) else int(m.group(2))
        return normalize_function_code(number)

    name = s.upper().replace("-", "_").replace(" ", "_")
    try:
        return FunctionCode[name]
    except KeyError:
        raise InvalidRequestError("function_code", f"Malformed function code: {raw!r}") from None


def normalize_protocol(raw: str | Protocol) -> Protocol:
    """Normalize 'tcp' / 'RTU' / Protocol.TCP to Protocol."""
    if isinstance(raw, Protocol):
        return raw
    s = raw.strip().upper()
    try:
        return Protocol(s)
    except ValueError:
        raise InvalidRequestError("protocol", f"Protocol must be TCP or RTU, got {raw!r}") from None


def parse_hex_bytes(raw: str) -> bytes:
    """
    Parse a hex dump into bytes.

    Accepts '01 03 00 00 00 0A', '0103000000 0a', '01:03:00' and an optional 0x prefix.
    """
    s = raw.strip()
    if s.lower().startswith("0x"):
        s = s[2:]
    tokens = [t for t in _HEX_SEPARATORS.split(s) if t]
    if not tokens:
        raise ValueError("Hex input cannot be empty")
    if all(len(t) <= 2 for t in tokens):
        text = "".join(t.zfill(2) for t in tokens)
    else:
        text = "".join(tokens)
    if len(text) % 2:
        raise ValueError(f"Hex input has an odd number of digits: {raw!r}")
    try:
        return bytes.fromhex(text)
    except ValueError:
        raise ValueError(f"Invalid hex input: {raw!r}") from None
