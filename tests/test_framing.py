"""Tests for request framing (PDU shape, MBAP header, RTU CRC trailer)."""

import pytest

from raiden_modbus.crc import crc16
from raiden_modbus.errors import CRCError, InvalidRequestError
from raiden_modbus.framing import TransactionCounter, build_frame, build_pdu, framing_for
from raiden_modbus.types import Frame, FunctionCode, Protocol, RequestDescriptor


def _descriptor(protocol: Protocol, fc: FunctionCode, **kwargs: int) -> RequestDescriptor:
    if fc.is_read:
        kwargs.setdefault("quantity", 10)
    else:
        kwargs.setdefault("value", 0xFF00 if fc == FunctionCode.WRITE_SINGLE_COIL else 1234)
    return RequestDescriptor(
        protocol=protocol,
        slave_id=kwargs.pop("slave_id", 1),
        function_code=fc,
        start_address=kwargs.pop("start_address", 0),
        **kwargs,
    )


def test_build_pdu_read() -> None:
    pdu = build_pdu(_descriptor(Protocol.TCP, FunctionCode.READ_HOLDING_REGISTERS, start_address=0x1234))
    assert pdu == bytes([0x01, 0x03, 0x12, 0x34, 0x00, 0x0A])


def test_build_pdu_write_uses_value() -> None:
    pdu = build_pdu(_descriptor(Protocol.TCP, FunctionCode.WRITE_SINGLE_REGISTER, start_address=1, value=300))
    assert pdu == bytes([0x01, 0x06, 0x00, 0x01, 0x01, 0x2C])


def test_tcp_frame_layout() -> None:
    frame = build_frame(_descriptor(Protocol.TCP, FunctionCode.READ_HOLDING_REGISTERS), transaction_id=1)
    assert isinstance(frame, Frame)
    assert frame.data == bytes.fromhex("00 01 00 00 00 06 01 03 00 00 00 0A")
    assert frame.transaction_id == 1
    assert frame.hex() == "00 01 00 00 00 06 01 03 00 00 00 0A"


def test_tcp_frame_transaction_id_big_endian() -> None:
    frame = build_frame(_descriptor(Protocol.TCP, FunctionCode.READ_COILS), transaction_id=0x1234)
    assert frame.data[:2] == b"\x12\x34"
    assert frame.data[2:4] == b"\x00\x00"


def test_rtu_frame_golden() -> None:
    frame = build_frame(_descriptor(Protocol.RTU, FunctionCode.READ_HOLDING_REGISTERS))
    assert frame.hex() == "01 03 00 00 00 0A C5 CD"
    assert frame.transaction_id is None


@pytest.mark.parametrize("fc", list(FunctionCode))
def test_rtu_crc_trailer_matches_body(fc: FunctionCode) -> None:
    frame = build_frame(_descriptor(Protocol.RTU, fc, slave_id=17, start_address=0x00AC))
    body, trailer = frame.data[:-2], frame.data[-2:]
    value = crc16(body)
    assert trailer[0] == value & 0xFF
    assert trailer[1] == (value >> 8) & 0xFF


@pytest.mark.parametrize("fc", list(FunctionCode))
def test_tcp_length_field_matches_body(fc: FunctionCode) -> None:
    frame = build_frame(_descriptor(Protocol.TCP, fc), transaction_id=7)
    length = int.from_bytes(frame.data[4:6], "big")
    assert length == len(frame.data) - 6
    assert frame.data[6] == 1
    assert frame.data[7] == fc.value


def test_write_single_coil_true_maps_to_ff00() -> None:
    frame = build_frame(_descriptor(Protocol.RTU, FunctionCode.WRITE_SINGLE_COIL, start_address=10, value=True))
    assert frame.data[:6] == bytes([0x01, 0x05, 0x00, 0x0A, 0xFF, 0x00])


def test_tcp_frame_requires_transaction_id() -> None:
    with pytest.raises(InvalidRequestError):
        build_frame(_descriptor(Protocol.TCP, FunctionCode.READ_COILS))


def test_tcp_frame_rejects_out_of_range_transaction_id() -> None:
    with pytest.raises(InvalidRequestError):
        build_frame(_descriptor(Protocol.TCP, FunctionCode.READ_COILS), transaction_id=0x10000)


def test_rtu_ignores_transaction_id() -> None:
    frame = build_frame(_descriptor(Protocol.RTU, FunctionCode.READ_COILS), transaction_id=99)
    assert frame.transaction_id is None
    assert len(frame) == 8


def test_frame_is_immutable() -> None:
    frame = build_frame(_descriptor(Protocol.RTU, FunctionCode.READ_COILS))
    assert isinstance(frame.data, bytes)
    with pytest.raises(AttributeError):
        frame.data = b""  # type: ignore[misc]


def test_transaction_counter_increments_and_wraps() -> None:
    counter = TransactionCounter(start=0xFFFE)
    assert counter.next() == 0xFFFE
    assert counter.next() == 0xFFFF
    assert counter.next() == 0
    assert counter.next() == 1


def test_transaction_counter_starts_at_one() -> None:
    counter = TransactionCounter()
    assert counter.next() == 1
    assert counter.next() == 2


def test_framing_offsets() -> None:
    tcp = framing_for("TCP")
    rtu = framing_for(Protocol.RTU)
    assert (tcp.protocol, tcp.function_index) == (Protocol.TCP, 7)
    assert (rtu.protocol, rtu.function_index) == (Protocol.RTU, 1)
    assert tcp.byte_count_index == 8
    assert rtu.byte_count_index == 2


def test_framing_for_accepts_lowercase_protocol() -> None:
    assert framing_for("tcp") is framing_for(Protocol.TCP)
    assert framing_for(" rtu ") is framing_for(Protocol.RTU)


def test_framing_for_rejects_unknown_protocol() -> None:
    with pytest.raises(InvalidRequestError, match="TCP or RTU"):
        framing_for("ascii")


def test_rtu_check_reports_expected_and_received_crc() -> None:
    buffer = bytes.fromhex("01 03 02 00 0A 00 00")
    with pytest.raises(CRCError) as exc_info:
        framing_for(Protocol.RTU).check(buffer)
    assert exc_info.value.expected == crc16(buffer[:-2])
    assert exc_info.value.received == 0
