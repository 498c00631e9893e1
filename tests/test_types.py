"""Tests for RequestDescriptor validation, function code metadata, and link configuration."""

import pytest

from raiden_modbus.errors import InvalidRequestError
from raiden_modbus.types import (
    COIL_OFF,
    COIL_ON,
    ExceptionResult,
    FunctionCode,
    LinkConfig,
    Protocol,
    RequestDescriptor,
)


def test_descriptor_coerces_enums() -> None:
    d = RequestDescriptor(protocol="RTU", slave_id=1, function_code=3, start_address=0, quantity=2)  # type: ignore[arg-type]
    assert d.protocol is Protocol.RTU
    assert d.function_code is FunctionCode.READ_HOLDING_REGISTERS
    assert d.field == 2
    assert d.effective_quantity == 2


@pytest.mark.parametrize(
    ("fc", "maximum"),
    [
        (FunctionCode.READ_COILS, 2000),
        (FunctionCode.READ_DISCRETE_INPUTS, 2000),
        (FunctionCode.READ_HOLDING_REGISTERS, 125),
        (FunctionCode.READ_INPUT_REGISTERS, 125),
    ],
)
def test_quantity_bounds(fc: FunctionCode, maximum: int) -> None:
    assert fc.max_quantity == maximum
    RequestDescriptor(Protocol.TCP, 1, fc, 0, quantity=maximum)
    with pytest.raises(InvalidRequestError) as exc_info:
        RequestDescriptor(Protocol.TCP, 1, fc, 0, quantity=maximum + 1)
    assert exc_info.value.field == "quantity"
    with pytest.raises(InvalidRequestError):
        RequestDescriptor(Protocol.TCP, 1, fc, 0, quantity=0)


def test_quantity_may_not_run_past_address_space() -> None:
    RequestDescriptor(Protocol.TCP, 1, FunctionCode.READ_HOLDING_REGISTERS, 0xFFFF, quantity=1)
    with pytest.raises(InvalidRequestError):
        RequestDescriptor(Protocol.TCP, 1, FunctionCode.READ_HOLDING_REGISTERS, 0xFFFF, quantity=2)


@pytest.mark.parametrize("slave_id", [-1, 256])
def test_slave_id_range(slave_id: int) -> None:
    with pytest.raises(InvalidRequestError, match="slave_id"):
        RequestDescriptor(Protocol.RTU, slave_id, FunctionCode.READ_COILS, 0)


@pytest.mark.parametrize("start", [-1, 0x10000])
def test_start_address_range(start: int) -> None:
    with pytest.raises(InvalidRequestError, match="start_address"):
        RequestDescriptor(Protocol.RTU, 1, FunctionCode.READ_COILS, start)


def test_unknown_protocol_and_function() -> None:
    with pytest.raises(InvalidRequestError):
        RequestDescriptor("UDP", 1, FunctionCode.READ_COILS, 0)  # type: ignore[arg-type]
    with pytest.raises(InvalidRequestError):
        RequestDescriptor(Protocol.TCP, 1, 0x10, 0)  # type: ignore[arg-type]


def test_write_requires_value() -> None:
    with pytest.raises(InvalidRequestError, match="value is required"):
        RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_REGISTER, 0)


def test_write_coil_values() -> None:
    on = RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_COIL, 5, value=True)
    off = RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_COIL, 5, value=False)
    raw = RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_COIL, 5, value=0xFF00)
    assert (on.field, off.field, raw.field) == (COIL_ON, COIL_OFF, COIL_ON)
    assert on.effective_quantity == 1
    with pytest.raises(InvalidRequestError, match="coil value"):
        RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_COIL, 5, value=1)


def test_write_register_value_range() -> None:
    d = RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_REGISTER, 5, quantity=9, value=65535)
    assert d.field == 65535
    assert d.effective_quantity == 1
    with pytest.raises(InvalidRequestError):
        RequestDescriptor(Protocol.TCP, 1, FunctionCode.WRITE_SINGLE_REGISTER, 5, value=65536)


def test_function_code_metadata() -> None:
    assert FunctionCode.READ_INPUT_REGISTERS.is_read
    assert not FunctionCode.WRITE_SINGLE_COIL.is_read
    assert FunctionCode.WRITE_SINGLE_COIL.is_bit_access
    assert not FunctionCode.WRITE_SINGLE_REGISTER.is_bit_access
    assert FunctionCode.WRITE_SINGLE_REGISTER.max_quantity == 1
    assert FunctionCode.READ_COILS.label == "01 Read Coils"


def test_exception_result_str() -> None:
    result = ExceptionResult(function_code=3, exception_code=2)
    assert result.name == "ILLEGAL_DATA_ADDRESS"
    assert str(result) == "Modbus exception 0x02 (ILLEGAL_DATA_ADDRESS) for function 0x03"


def test_link_config_requirements() -> None:
    tcp = LinkConfig(Protocol.TCP, host="10.0.0.5")
    rtu = LinkConfig("RTU", serial_port="COM1", baudrate=19200)  # type: ignore[arg-type]
    assert tcp.describe() == "10.0.0.5:502"
    assert rtu.describe() == "COM1@19200"
    with pytest.raises(InvalidRequestError, match="host"):
        LinkConfig(Protocol.TCP)
    with pytest.raises(InvalidRequestError, match="serial_port"):
        LinkConfig(Protocol.RTU)
    with pytest.raises(InvalidRequestError, match="baudrate"):
        LinkConfig(Protocol.RTU, serial_port="COM1", baudrate=0)
