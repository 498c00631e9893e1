"""Shared helpers for building synthetic device responses."""

import struct
from typing import Callable

import pytest

from raiden_modbus.crc import append_crc


def build_tcp_response(pdu: bytes, unit_id: int = 1, transaction_id: int = 1) -> bytes:
    """MBAP header (length counts unit id + pdu) followed by unit id and pdu."""
    return struct.pack(">HHH", transaction_id, 0, len(pdu) + 1) + bytes([unit_id]) + pdu


def build_rtu_response(pdu: bytes, slave_id: int = 1) -> bytes:
    return append_crc(bytes([slave_id]) + pdu)


@pytest.fixture
def tcp_response() -> Callable[..., bytes]:
    return build_tcp_response


@pytest.fixture
def rtu_response() -> Callable[..., bytes]:
    return build_rtu_response


@pytest.fixture
def response_for() -> Callable[[str, bytes], bytes]:
    """Build a response for either protocol from a function pdu."""

    def _build(protocol: str, pdu: bytes) -> bytes:
        if protocol == "TCP":
            return build_tcp_response(pdu)
        return build_rtu_response(pdu)

    return _build
