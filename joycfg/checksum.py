"""CRC-16 checksum used when sending firmware images to the flasher."""

from __future__ import annotations

from functools import lru_cache

POLYNOMIAL = 0xA001


@lru_cache(maxsize=None)
def crc16_table() -> tuple[int, ...]:
    """Return the 256-entry lookup table for the reflected 0xA001 polynomial."""
    table = []
    for index in range(256):
        value = 0
        temp = index
        for _ in range(8):
            if (value ^ temp) & 0x0001:
                value = (value >> 1) ^ POLYNOMIAL
            else:
                value >>= 1
            temp >>= 1
        table.append(value & 0xFFFF)
    return tuple(table)


def compute_checksum(data: bytes | bytearray | memoryview) -> int:
    """Compute the 16-bit checksum of ``data`` (initial value 0)."""
    table = crc16_table()
    crc = 0
    for byte in bytes(data):
        crc = ((crc >> 8) ^ table[(crc ^ byte) & 0xFF]) & 0xFFFF
    return crc