"""CRC-16/MODBUS checksum for RTU frames.

Polynomial 0xA001 (reflected 0x8005), initial value 0xFFFF. The checksum is
transmitted low byte first.
"""

POLYNOMIAL = 0xA001
INITIAL = 0xFFFF


def crc16_bitwise(data: bytes) -> int:
    """Reference bit-by-bit implementation."""
    crc = INITIAL
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ POLYNOMIAL
            else:
                crc >>= 1
    return crc


def _build_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ POLYNOMIAL
            else:
                crc >>= 1
        table.append(crc)
    return tuple(table)


_TABLE = _build_table()


def crc16(data: bytes) -> int:
    """Return the 16-bit Modbus RTU CRC of ``data``."""
    crc = INITIAL
    for byte in data:
        crc = (crc >> 8) ^ _TABLE[(crc ^ byte) & 0xFF]
    return crc


def crc16_bytes(data: bytes) -> bytes:
    """CRC of ``data`` as the two bytes sent on the wire (low, high)."""
    return crc16(data).to_bytes(2, "little")


def append_crc(data: bytes) -> bytes:
    return bytes(data) + crc16_bytes(data)


def check_crc(frame: bytes) -> bool:
    """True if the last two bytes of ``frame`` are the CRC of the bytes before them."""
    if len(frame) < 3:
        return False
    return crc16_bytes(frame[:-2]) == bytes(frame[-2:])
