"""Parsing of HID report descriptors and hidraw uevent text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Sequence


class MalformedDescriptorError(ValueError):
    """Raised when a report descriptor cannot be walked."""


@dataclass
class UeventInfo:
    """Fields read from a HID device's uevent file."""

    bus_type: int | None = None
    vendor_id: int | None = None
    product_id: int | None = None
    serial_number: str | None = None
    product_name: str | None = None

    @property
    def is_complete(self) -> bool:
        """True when id, name and serial were all present."""
        return (
            self.bus_type is not None
            and self.product_name is not None
            and self.serial_number is not None
        )


def hid_item_size(descriptor: Sequence[int], pos: int) -> tuple[int, int]:
    """Return ``(data_len, key_size)`` of the item starting at ``pos``."""
    if not 0 <= pos < len(descriptor):
        raise MalformedDescriptorError(f"position {pos} outside descriptor")
    key = descriptor[pos]
    if (key & 0xF0) == 0xF0 and pos + 1 < len(descriptor):
        # Long item: the next byte holds the data length.
        return descriptor[pos + 1], 3
    size_code = key & 0x3
    return (4 if size_code == 3 else size_code), 1


def report_bytes(descriptor: Sequence[int], num_bytes: int, pos: int) -> int:
    """Return the little-endian item data following the key at ``pos``."""
    if pos + num_bytes >= len(descriptor):
        return 0
    if num_bytes not in (1, 2, 4):
        return 0
    return int.from_bytes(bytes(descriptor[pos + 1 : pos + 1 + num_bytes]), "little")


def uses_numbered_reports(descriptor: Sequence[int]) -> bool:
    """True if the descriptor contains a Report ID item."""
    pos = 0
    while pos < len(descriptor):
        if descriptor[pos] == 0x85:
            return True
        data_len, key_size = hid_item_size(descriptor, pos)
        pos += data_len + key_size
    return False


def iter_usages(descriptor: Sequence[int]) -> Iterator[tuple[int, int]]:
    """Yield ``(usage_page, usage)`` for each collection with a usage in scope.

    A usage with no enclosing collection is yielded when it is the only
    thing found in the descriptor.
    """
    size = len(descriptor)
    pos = 0
    usage_page = 0
    usage = 0
    while True:
        initial = pos == 0
        usage_found = False
        pair_ready = False
        while pos < size:
            key_cmd = descriptor[pos] & 0xFC
            data_len, key_size = hid_item_size(descriptor, pos)
            if key_cmd == 0x04:
                usage_page = report_bytes(descriptor, data_len, pos) & 0xFFFF
            elif key_cmd == 0x08:
                usage = report_bytes(descriptor, data_len, pos) & 0xFFFF
                usage_found = True
            elif key_cmd == 0xA0:
                if usage_found:
                    pair_ready = True
                usage_found = False
            elif key_cmd in (0x80, 0x90, 0xB0, 0xC0):
                usage_found = False
            pos += data_len + key_size
            if pair_ready:
                break
        if pair_ready or (initial and usage_found):
            yield usage_page, usage
        else:
            return


_HID_ID = re.compile(
    r"\s*(?:0[xX])?([0-9a-fA-F]+):\s*(?:0[xX])?([0-9a-fA-F]+):\s*(?:0[xX])?([0-9a-fA-F]+)"
)


def parse_uevent(text: str) -> UeventInfo:
    """Parse ``KEY=value`` lines of a HID uevent file."""
    info = UeventInfo()
    for line in text.split("\n"):
        if not line or "=" not in line:
            continue
        key, value = line.split("=", 1)
        if key == "HID_ID":
            match = _HID_ID.match(value)
            if match:
                info.bus_type = int(match.group(1), 16) & 0xFFFFFFFF
                info.vendor_id = int(match.group(2), 16) & 0xFFFF
                info.product_id = int(match.group(3), 16) & 0xFFFF
        elif key == "HID_NAME":
            info.product_name = value
        elif key == "HID_UNIQ":
            info.serial_number = value
    return info