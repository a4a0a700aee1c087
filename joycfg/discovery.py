"""Picking joystick devices and the firmware flasher out of a HID enumeration."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable

from .hidraw import HidDeviceInfo

FLASHER_PRODUCT = "FreeJoy Flasher"
DEVICE_MANUFACTURER = "FreeJoy"
LEGACY_MANUFACTURER = "STMicroelectronics"
LEGACY_VENDOR_ID = 0x0483
# Current firmware exposes the configuration on its second interface.
CONFIG_INTERFACE = 1


@dataclass(frozen=True)
class DeviceEntry:
    """A connected joystick that the configurator can talk to."""

    path: str | None
    vendor_id: int
    product_id: int
    serial_number: str | None
    name: str
    legacy: bool = False

    @classmethod
    def from_info(cls, info: HidDeviceInfo, legacy: bool = False) -> "DeviceEntry":
        return cls(
            path=info.path,
            vendor_id=info.vendor_id,
            product_id=info.product_id,
            serial_number=info.serial_number,
            name=info.product_string or "",
            legacy=legacy,
        )


def _is_current(info: HidDeviceInfo) -> bool:
    return (
        info.manufacturer_string == DEVICE_MANUFACTURER
        and info.interface_number == CONFIG_INTERFACE
    )


def _is_legacy(info: HidDeviceInfo) -> bool:
    return (
        info.vendor_id == LEGACY_VENDOR_ID
        and info.manufacturer_string == LEGACY_MANUFACTURER
        and info.interface_number <= 0
    )


def select_devices(infos: Iterable[HidDeviceInfo]) -> list[DeviceEntry]:
    """Return the joystick devices among ``infos``, in enumeration order.

    Devices running firmware older than the two-interface layout are
    marked ``legacy``; they can only be flashed.
    """
    entries = []
    for info in infos:
        if _is_current(info):
            entries.append(DeviceEntry.from_info(info))
        elif _is_legacy(info):
            entries.append(DeviceEntry.from_info(info, legacy=True))
    return entries


def find_flasher(infos: Iterable[HidDeviceInfo]) -> HidDeviceInfo | None:
    """Return the first device that is the firmware flasher, if any."""
    return next((info for info in infos if info.product_string == FLASHER_PRODUCT), None)


class DeviceList:
    """Thread-safe record of connected devices and the selected one."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[DeviceEntry] = []
        self._names: list[tuple[bool, str]] = []
        self._selected = -1
        self._flasher_path: str | None = None

    @property
    def entries(self) -> list[DeviceEntry]:
        with self._lock:
            return list(self._entries)

    @property
    def selected(self) -> int:
        with self._lock:
            return self._selected

    @property
    def selected_entry(self) -> DeviceEntry | None:
        with self._lock:
            if 0 <= self._selected < len(self._entries):
                return self._entries[self._selected]
            return None

    @property
    def flasher_path(self) -> str | None:
        with self._lock:
            return self._flasher_path

    def update(self, infos: Iterable[HidDeviceInfo]) -> bool:
        """Take in a fresh enumeration; return True if the shown list changed.

        A connected flasher replaces every device in the list. Otherwise the
        list is rebuilt only when the number of devices changed.
        """
        infos = list(infos)
        flasher = find_flasher(infos)
        with self._lock:
            if flasher is not None:
                if self._flasher_path is not None:
                    return False
                self._flasher_path = flasher.path or ""
                self._entries = []
                self._names = [(False, FLASHER_PRODUCT)]
                self._selected = -1
                return True

            found = select_devices(infos)
            if len(found) == len(self._entries):
                return False
            self._entries = found
            self._names = [(entry.legacy, entry.name) for entry in found]
            self._flasher_path = None
            if not found:
                self._selected = -1
            elif self._selected >= len(found):
                self._selected = len(found) - 1
            return True

    def select(self, index: int) -> int:
        """Select device ``index``; return the index now selected.

        Negative indices, and any selection while the flasher is connected,
        are ignored. Indices past the end select the last device.
        """
        with self._lock:
            if index < 0 or self._flasher_path is not None:
                return self._selected
            if index > len(self._entries) - 1:
                index = len(self._entries) - 1
            self._selected = index
            return self._selected

    def names(self) -> list[tuple[bool, str]]:
        """Return ``(legacy, name)`` for each entry shown to the user."""
        with self._lock:
            return list(self._names)