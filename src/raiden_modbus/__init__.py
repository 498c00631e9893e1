"""raiden-modbus: Modbus/TCP and Modbus/RTU master framing, CRC and response decoding."""

__version__ = "0.1.0"

from .context import RequestContextTracker
from .crc import crc16
from .decoder import decode
from .errors import (
    CRCError,
    DecodeError,
    InvalidRequestError,
    MissingContextError,
    ModbusExceptionError,
    RaidenModbusError,
    RequestPendingError,
    TransportDisconnectedError,
    TransportError,
    TransportTimeoutError,
)
from .framing import build_frame, build_pdu
from .link import PymodbusLink
from .normalize import normalize_function_code, normalize_protocol
from .session import ModbusMaster, Transport
from .types import (
    ExceptionCode,
    ExceptionResult,
    Frame,
    FunctionCode,
    LinkConfig,
    ParsedValue,
    Protocol,
    RequestContext,
    RequestDescriptor,
)

__all__ = [
    "__version__",
    "ModbusMaster",
    "PymodbusLink",
    "Transport",
    "RequestContextTracker",
    "crc16",
    "decode",
    "build_frame",
    "build_pdu",
    "normalize_function_code",
    "normalize_protocol",
    "CRCError",
    "DecodeError",
    "InvalidRequestError",
    "MissingContextError",
    "ModbusExceptionError",
    "RaidenModbusError",
    "RequestPendingError",
    "TransportDisconnectedError",
    "TransportError",
    "TransportTimeoutError",
    "ExceptionCode",
    "ExceptionResult",
    "Frame",
    "FunctionCode",
    "LinkConfig",
    "ParsedValue",
    "Protocol",
    "RequestContext",
    "RequestDescriptor",
]
