"""PymodbusLink: raw byte transport over pymodbus's TCP and serial clients."""

import logging
import struct
from typing import Any

from pymodbus.client import ModbusSerialClient, ModbusTcpClient
from pymodbus.exceptions import ConnectionException, ModbusException

from .errors import TransportDisconnectedError, TransportError, TransportTimeoutError
from .framing import MBAP_PREFIX_LENGTH
from .types import Frame, LinkConfig, Protocol

logger = logging.getLogger(__name__)

MBAP_HEADER_LENGTH = MBAP_PREFIX_LENGTH + 1
CRC_LENGTH = 2


class PymodbusLink:
    """
    Transport for ModbusMaster built on pymodbus sync clients.

    pymodbus owns the socket / serial port (connect, timeouts, retries); this class only
    sends a prebuilt frame and reads back exactly one response frame.
    """

    def __init__(self, config: LinkConfig) -> None:
        self._config = config
        self._client: ModbusTcpClient | ModbusSerialClient | None = None

    @property
    def config(self) -> LinkConfig:
        return self._config

    def _get_client(self) -> ModbusTcpClient | ModbusSerialClient:
        if self._client is None:
            cfg = self._config
            if cfg.protocol == Protocol.TCP:
                client: ModbusTcpClient | ModbusSerialClient = ModbusTcpClient(
                    host=cfg.host,
                    port=cfg.port,
                    timeout=cfg.timeout,
                    retries=cfg.retries,
                )
            else:
                client = ModbusSerialClient(
                    port=cfg.serial_port,
                    baudrate=cfg.baudrate,
                    bytesize=8,
                    parity="N",
                    stopbits=1,
                    timeout=cfg.timeout,
                    retries=cfg.retries,
                )
            if not client.connect():
                raise TransportDisconnectedError(f"Failed to connect to {cfg.describe()}")
            logger.info("Modbus %s link open to %s", cfg.protocol.value, cfg.describe())
            self._client = client
        return self._client

    def _read_exactly(self, client: Any, size: int) -> bytes:
        data = client.recv(size) or b""
        if len(data) < size:
            raise TransportTimeoutError(
                f"Modbus {self._config.protocol.value} timeout: expected {size} bytes, received {len(data)}"
            )
        return bytes(data)

    def _receive_tcp(self, client: Any) -> bytes:
        header = self._read_exactly(client, MBAP_HEADER_LENGTH)
        (length,) = struct.unpack(">H", header[4:6])
        if length < 2:
            raise TransportError(f"Invalid MBAP length {length}")
        return header + self._read_exactly(client, length - 1)

    def _receive_rtu(self, client: Any) -> bytes:
        head = self._read_exactly(client, 2)
        function_byte = head[1]
        if function_byte & 0x80:
            return head + self._read_exactly(client, 1 + CRC_LENGTH)
        if function_byte in (0x05, 0x06):
            return head + self._read_exactly(client, 4 + CRC_LENGTH)
        count = self._read_exactly(client, 1)
        return head + count + self._read_exactly(client, count[0] + CRC_LENGTH)

    def exchange(self, frame: Frame) -> bytes:
        """Send ``frame`` and return one complete response frame."""
        if frame.protocol != self._config.protocol:
            raise TransportError(
                f"Link speaks {self._config.protocol.value}, frame is {frame.protocol.value}"
            )
        client = self._get_client()
        try:
            client.send(frame.data)
            if self._config.protocol == Protocol.TCP:
                return self._receive_tcp(client)
            return self._receive_rtu(client)
        except TransportError:
            # unread or late bytes would otherwise be taken as the answer to the next request
            self.close()
            raise
        except ConnectionException as e:
            self.close()
            raise TransportDisconnectedError(str(e), cause=e) from e
        except ModbusException as e:
            raise TransportError(str(e), cause=e) from e

    def connect(self) -> None:
        """Open the TCP connection or serial port."""
        self._get_client()

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.warning("Error closing Modbus link: %s", e)
            self._client = None

    def __enter__(self) -> "PymodbusLink":
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
