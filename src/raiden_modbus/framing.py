"""Request framing for Modbus/TCP and Modbus/RTU.

Every supported function shares one 6-byte request body::

    +----------+----------+-----------------+----------------------------+
    | Slave ID | Function | Start address   | Quantity (01-04) or        |
    | 1 byte   | 1 byte   | 2 bytes, BE     | value (05, 06), 2 bytes BE |
    +----------+----------+-----------------+----------------------------+

TCP prefixes it with ``[tid_hi, tid_lo, 0x00, 0x00, len_hi, len_lo]`` where
``len`` is the body length, so the unit id closes the 7-byte MBAP header.
RTU appends the CRC-16 of the body, low byte first.
"""

import struct

from .crc import append_crc, check_crc, crc16
from .errors import CRCError, DecodeError, InvalidRequestError
from .normalize import normalize_protocol
from .types import Frame, Protocol, RequestDescriptor

MBAP_PREFIX_LENGTH = 6


class Framing:
    """Protocol-specific envelope: how to wrap a request and where response fields sit."""

    protocol: Protocol
    function_index: int
    trailer_length: int

    def wrap(self, body: bytes, transaction_id: int | None) -> bytes:
        raise NotImplementedError

    def check(self, buffer: bytes) -> None:
        """Validate the envelope of a response buffer; raise DecodeError if it is unusable."""
        raise NotImplementedError

    def transaction_id(self, buffer: bytes) -> int | None:
        return None

    @property
    def exception_index(self) -> int:
        return self.function_index + 1

    @property
    def byte_count_index(self) -> int:
        return self.function_index + 1

    @property
    def data_index(self) -> int:
        return self.function_index + 2

    def data_end(self, buffer: bytes) -> int:
        """Index one past the last payload byte (excludes any checksum trailer)."""
        return len(buffer) - self.trailer_length


class TcpFraming(Framing):
    protocol = Protocol.TCP
    function_index = 7
    trailer_length = 0

    def wrap(self, body: bytes, transaction_id: int | None) -> bytes:
        if transaction_id is None:
            raise InvalidRequestError("transaction_id", "Modbus/TCP frames need a transaction id")
        if not 0 <= transaction_id <= 0xFFFF:
            raise InvalidRequestError(
                "transaction_id", f"transaction_id must be 0-65535, got {transaction_id}"
            )
        return struct.pack(">HHH", transaction_id, 0, len(body)) + body

    def check(self, buffer: bytes) -> None:
        if len(buffer) < self.function_index + 2:
            raise DecodeError(f"Modbus/TCP response too short: {len(buffer)} bytes", buffer=buffer)
        _tid, protocol_id, length = struct.unpack(">HHH", buffer[:MBAP_PREFIX_LENGTH])
        if protocol_id != 0:
            raise DecodeError(f"Unexpected MBAP protocol id {protocol_id}", buffer=buffer)
        if MBAP_PREFIX_LENGTH + length != len(buffer):
            raise DecodeError(
                f"MBAP length {length} does not match {len(buffer) - MBAP_PREFIX_LENGTH} bytes received",
                buffer=buffer,
            )

    def transaction_id(self, buffer: bytes) -> int | None:
        if len(buffer) < 2:
            return None
        return struct.unpack(">H", buffer[:2])[0]


class RtuFraming(Framing):
    protocol = Protocol.RTU
    function_index = 1
    trailer_length = 2

    def wrap(self, body: bytes, transaction_id: int | None) -> bytes:
        return append_crc(body)

    def check(self, buffer: bytes) -> None:
        # slave + function + one field byte + CRC
        if len(buffer) < 5:
            raise DecodeError(f"Modbus/RTU response too short: {len(buffer)} bytes", buffer=buffer)
        if not check_crc(buffer):
            received = int.from_bytes(buffer[-2:], "little")
            raise CRCError(crc16(buffer[:-2]), received, buffer=buffer)


FRAMINGS: dict[Protocol, Framing] = {
    framing.protocol: framing for framing in (TcpFraming(), RtuFraming())
}


def framing_for(protocol: Protocol | str) -> Framing:
    return FRAMINGS[normalize_protocol(protocol)]


class TransactionCounter:
    """Rolling 16-bit Modbus/TCP transaction id, starting at 1."""

    def __init__(self, start: int = 1) -> None:
        self._next = start & 0xFFFF

    def next(self) -> int:
        tid = self._next
        self._next = (self._next + 1) & 0xFFFF
        return tid


def build_pdu(descriptor: RequestDescriptor) -> bytes:
    """Build the 6-byte request body: slave id, function code, start address, quantity/value."""
    return struct.pack(
        ">BBHH",
        descriptor.slave_id,
        descriptor.function_code.value,
        descriptor.start_address,
        descriptor.field,
    )


def build_frame(descriptor: RequestDescriptor, transaction_id: int | None = None) -> Frame:
    """Build the complete request for the descriptor's protocol.

    Args:
        descriptor: Validated request.
        transaction_id: MBAP transaction id; required for TCP, ignored for RTU.

    Returns:
        A ``Frame`` ready to hand to a transport.
    """
    framing = framing_for(descriptor.protocol)
    data = framing.wrap(build_pdu(descriptor), transaction_id)
    return Frame(
        protocol=descriptor.protocol,
        data=data,
        transaction_id=transaction_id if descriptor.protocol == Protocol.TCP else None,
    )
