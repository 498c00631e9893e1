"""Exceptions for raiden-modbus: request validation, decode/framing failures, transport failures."""

from typing import Any


class RaidenModbusError(Exception):
    """Base exception for raiden-modbus."""

    pass


class InvalidRequestError(RaidenModbusError, ValueError):
    """Raised when a request descriptor or configuration value is out of range."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        self._msg = message or f"Invalid request field: {field!r}"
        super().__init__(self._msg)


class RequestPendingError(RaidenModbusError):
    """Raised when a request is built while the previous one still awaits its response."""

    pass


class DecodeError(RaidenModbusError):
    """Raised when a response buffer is malformed, truncated or cannot be matched to a request."""

    def __init__(self, message: str, *, buffer: bytes | None = None) -> None:
        self.buffer = buffer
        super().__init__(message)


class MissingContextError(DecodeError):
    """Raised when a response arrives and no request has been recorded."""

    def __init__(self, message: str = "No request context recorded", *, buffer: bytes | None = None) -> None:
        super().__init__(message, buffer=buffer)


class CRCError(DecodeError):
    """Raised when an RTU response fails its CRC-16 check."""

    def __init__(self, expected: int, received: int, *, buffer: bytes | None = None) -> None:
        self.expected = expected
        self.received = received
        super().__init__(
            f"CRC mismatch: expected 0x{expected:04X}, received 0x{received:04X}",
            buffer=buffer,
        )


class ModbusExceptionError(RaidenModbusError):
    """Raised on request when a device answers with an exception response."""

    def __init__(self, result: Any) -> None:
        self.result = result
        super().__init__(str(result))


class TransportError(RaidenModbusError):
    """Raised when the link fails to deliver a response (wraps pymodbus or connection errors)."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class TransportTimeoutError(TransportError):
    """No complete response arrived before the link timeout."""

    pass


class TransportDisconnectedError(TransportError):
    """The link was closed or could not be opened."""

    pass
