"""Core data model: protocol variant, function codes, request descriptor, frames, and decoded results."""

from dataclasses import dataclass
from enum import Enum, IntEnum

from .errors import InvalidRequestError

COIL_ON = 0xFF00
COIL_OFF = 0x0000

BAUD_RATES = (9600, 19200, 38400, 57600, 115200)


class Protocol(str, Enum):
    """Wire variant used to frame requests and locate fields in responses."""

    TCP = "TCP"
    RTU = "RTU"


class FunctionCode(IntEnum):
    """Supported Modbus function codes (single-request PDU shape only)."""

    READ_COILS = 0x01
    READ_DISCRETE_INPUTS = 0x02
    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS = 0x04
    WRITE_SINGLE_COIL = 0x05
    WRITE_SINGLE_REGISTER = 0x06

    @property
    def is_read(self) -> bool:
        return self <= FunctionCode.READ_INPUT_REGISTERS

    @property
    def is_bit_access(self) -> bool:
        """True for functions whose data are single bits (coils, discrete inputs)."""
        return self in (
            FunctionCode.READ_COILS,
            FunctionCode.READ_DISCRETE_INPUTS,
            FunctionCode.WRITE_SINGLE_COIL,
        )

    @property
    def max_quantity(self) -> int:
        """Largest quantity a single request may ask for."""
        if not self.is_read:
            return 1
        return 2000 if self.is_bit_access else 125

    @property
    def label(self) -> str:
        return f"{self.value:02d} {self.name.replace('_', ' ').title()}"


class ExceptionCode(IntEnum):
    """Standard Modbus exception codes carried by exception responses."""

    ILLEGAL_FUNCTION = 0x01
    ILLEGAL_DATA_ADDRESS = 0x02
    ILLEGAL_DATA_VALUE = 0x03
    SLAVE_DEVICE_FAILURE = 0x04
    ACKNOWLEDGE = 0x05
    SLAVE_DEVICE_BUSY = 0x06
    NEGATIVE_ACKNOWLEDGE = 0x07
    MEMORY_PARITY_ERROR = 0x08
    GATEWAY_PATH_UNAVAILABLE = 0x0A
    GATEWAY_TARGET_FAILED_TO_RESPOND = 0x0B


@dataclass(frozen=True)
class RequestDescriptor:
    """One request as configured by the caller.

    ``quantity`` is used by read functions (01-04) and ``value`` by the
    single-write functions (05, 06); the other field is ignored.
    For write single coil, ``True``/``False`` map to 0xFF00/0x0000.
    """

    protocol: Protocol
    slave_id: int
    function_code: FunctionCode
    start_address: int
    quantity: int = 1
    value: int | bool | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "protocol", Protocol(self.protocol))
        except ValueError:
            raise InvalidRequestError("protocol", f"Unknown protocol: {self.protocol!r}") from None
        try:
            object.__setattr__(self, "function_code", FunctionCode(self.function_code))
        except ValueError:
            raise InvalidRequestError(
                "function_code", f"Unsupported function code: {self.function_code!r}"
            ) from None

        if not 0 <= self.slave_id <= 255:
            raise InvalidRequestError("slave_id", f"slave_id must be 0-255, got {self.slave_id}")
        if not 0 <= self.start_address <= 0xFFFF:
            raise InvalidRequestError(
                "start_address", f"start_address must be 0-65535, got {self.start_address}"
            )

        fc = self.function_code
        if fc.is_read:
            if not 1 <= self.quantity <= fc.max_quantity:
                raise InvalidRequestError(
                    "quantity",
                    f"quantity for function {fc.value:02d} must be 1-{fc.max_quantity}, got {self.quantity}",
                )
            if self.start_address + self.quantity > 0x10000:
                raise InvalidRequestError(
                    "quantity",
                    f"{self.quantity} items from address {self.start_address} run past 65535",
                )
            return

        if self.value is None:
            raise InvalidRequestError("value", f"value is required for function {fc.value:02d}")
        if fc == FunctionCode.WRITE_SINGLE_COIL:
            if isinstance(self.value, bool):
                object.__setattr__(self, "value", COIL_ON if self.value else COIL_OFF)
            elif self.value not in (COIL_ON, COIL_OFF):
                raise InvalidRequestError(
                    "value", f"coil value must be 0xFF00 (ON) or 0x0000 (OFF), got 0x{self.value:04X}"
                )
        else:
            value = int(self.value)
            if not 0 <= value <= 0xFFFF:
                raise InvalidRequestError("value", f"register value must be 0-65535, got {value}")
            object.__setattr__(self, "value", value)

    @property
    def field(self) -> int:
        """The function-dependent second PDU field: quantity for reads, value for writes."""
        if self.function_code.is_read:
            return self.quantity
        return int(self.value)  # type: ignore[arg-type]

    @property
    def effective_quantity(self) -> int:
        """Number of items the response will describe (1 for single writes)."""
        return self.quantity if self.function_code.is_read else 1


@dataclass(frozen=True)
class Frame:
    """Immutable byte sequence ready for transmission."""

    protocol: Protocol
    data: bytes
    transaction_id: int | None = None

    def __bytes__(self) -> bytes:
        return self.data

    def __len__(self) -> int:
        return len(self.data)

    def hex(self) -> str:
        return self.data.hex(" ").upper()


@dataclass(frozen=True)
class RequestContext:
    """Function code, start address and quantity of the most recently sent request."""

    function_code: FunctionCode
    start_address: int
    quantity: int
    transaction_id: int | None = None


@dataclass(frozen=True)
class ParsedValue:
    """One decoded coil or register: absolute address, value, and hex text."""

    address: int
    value: str | int
    hex: str


@dataclass(frozen=True)
class ExceptionResult:
    """Device rejected the request with an exception response."""

    function_code: int
    exception_code: int

    @property
    def name(self) -> str:
        try:
            return ExceptionCode(self.exception_code).name
        except ValueError:
            return "UNKNOWN"

    def __str__(self) -> str:
        return (
            f"Modbus exception 0x{self.exception_code:02X} ({self.name}) "
            f"for function 0x{self.function_code:02X}"
        )


@dataclass(frozen=True)
class LinkConfig:
    """Transport settings; opaque to the protocol engine."""

    protocol: Protocol
    host: str | None = None
    port: int = 502
    serial_port: str | None = None
    baudrate: int = 9600
    timeout: float = 3.0
    retries: int = 3

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol", Protocol(self.protocol))
        if self.protocol == Protocol.TCP and not self.host:
            raise InvalidRequestError("host", "host is required for Modbus/TCP")
        if self.protocol == Protocol.RTU and not self.serial_port:
            raise InvalidRequestError("serial_port", "serial_port is required for Modbus/RTU")
        if not 0 < self.port <= 0xFFFF:
            raise InvalidRequestError("port", f"port must be 1-65535, got {self.port}")
        if self.baudrate <= 0:
            raise InvalidRequestError("baudrate", f"baudrate must be positive, got {self.baudrate}")
        if self.timeout <= 0:
            raise InvalidRequestError("timeout", f"timeout must be positive, got {self.timeout}")

    def describe(self) -> str:
        if self.protocol == Protocol.TCP:
            return f"{self.host}:{self.port}"
        return f"{self.serial_port}@{self.baudrate}"
