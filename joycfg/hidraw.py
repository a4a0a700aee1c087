"""Access to HID devices through the Linux hidraw interface.

Devices are found by walking sysfs, and opened through their ``/dev``
node with plain file operations.
"""

from __future__ import annotations

import dataclasses
import errno
import os
import select
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from .hidparse import (
    MalformedDescriptorError,
    iter_usages,
    parse_uevent,
    uses_numbered_reports,
)

BUS_USB = 0x03
BUS_BLUETOOTH = 0x05
BUS_I2C = 0x18
_SUPPORTED_BUSES = (BUS_USB, BUS_BLUETOOTH, BUS_I2C)

HID_MAX_DESCRIPTOR_SIZE = 4096


def _ioc_read(type_char: str, number: int, size: int) -> int:
    return (2 << 30) | (size << 16) | (ord(type_char) << 8) | number


HIDIOCGRDESCSIZE = _ioc_read("H", 0x01, 4)
HIDIOCGRDESC = _ioc_read("H", 0x02, 4 + HID_MAX_DESCRIPTOR_SIZE)


class HidError(OSError):
    """Raised when a HID device cannot be opened, read or written."""


@dataclass
class HidDeviceInfo:
    """Description of one HID interface and usage pair."""

    path: str | None
    vendor_id: int
    product_id: int
    serial_number: str | None = None
    release_number: int = 0
    manufacturer_string: str | None = None
    product_string: str | None = None
    usage_page: int = 0
    usage: int = 0
    interface_number: int = -1


def _read_attr(directory: Path, name: str) -> str | None:
    try:
        text = (directory / name).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return text.rstrip("\n")


def _leading_hex(text: str | None, default: int) -> int:
    if text is None:
        return default
    digits = ""
    for char in text.strip():
        if char in "0123456789abcdefABCDEF":
            digits += char
        else:
            break
    return int(digits, 16) if digits else 0


def _ancestors(start: Path, stop: Path) -> Iterator[Path]:
    current = start
    while True:
        yield current
        if current == stop or current.parent == current:
            return
        current = current.parent


def _is_hid_node(directory: Path) -> bool:
    uevent = _read_attr(directory, "uevent")
    return uevent is not None and any(
        line.startswith("HID_ID=") for line in uevent.split("\n")
    )


def _find(start: Path, stop: Path, attribute: str) -> Path | None:
    return next((d for d in _ancestors(start, stop) if (d / attribute).is_file()), None)


def _device_usages(hid_dir: Path) -> list[tuple[int, int]]:
    try:
        with open(hid_dir / "report_descriptor", "rb") as handle:
            descriptor = handle.read(HID_MAX_DESCRIPTOR_SIZE)
    except OSError:
        return []
    usages = []
    try:
        for pair in iter_usages(descriptor):
            usages.append(pair)
    except MalformedDescriptorError:
        pass
    return usages


def _describe(entry: Path, root: Path, vendor_id: int, product_id: int) -> list[HidDeviceInfo]:
    raw = entry.resolve()
    hid_dir = next((d for d in _ancestors(raw.parent, root) if _is_hid_node(d)), None)
    if hid_dir is None:
        return []
    info = parse_uevent(_read_attr(hid_dir, "uevent") or "")
    if not info.is_complete or info.bus_type not in _SUPPORTED_BUSES:
        return []
    if vendor_id not in (0, info.vendor_id) or product_id not in (0, info.product_id):
        return []

    record = HidDeviceInfo(
        path=f"/dev/{entry.name}",
        vendor_id=info.vendor_id or 0,
        product_id=info.product_id or 0,
        serial_number=info.serial_number,
    )
    usb_dev = _find(raw.parent, root, "idVendor") if info.bus_type == BUS_USB else None
    if usb_dev is None:
        record.manufacturer_string = ""
        record.product_string = info.product_name
    else:
        record.manufacturer_string = _read_attr(usb_dev, "manufacturer")
        record.product_string = _read_attr(usb_dev, "product")
        record.release_number = _leading_hex(_read_attr(usb_dev, "bcdDevice"), 0)
        interface = _find(raw.parent, root, "bInterfaceNumber")
        if interface is not None:
            record.interface_number = _leading_hex(_read_attr(interface, "bInterfaceNumber"), -1)

    usages = _device_usages(hid_dir)
    if not usages:
        return [record]
    first_page, first_usage = usages[0]
    record.usage_page, record.usage = first_page, first_usage
    extra = [dataclasses.replace(record, usage_page=page, usage=usage) for page, usage in usages[1:]]
    return [record, *extra]


def enumerate_devices(
    vendor_id: int = 0, product_id: int = 0, sysfs_root: str | os.PathLike[str] = "/sys"
) -> list[HidDeviceInfo]:
    """List hidraw devices matching ``vendor_id`` and ``product_id``.

    Zero matches any vendor or product. One record is returned for each
    usage pair found in a device's report descriptor.
    """
    root = Path(sysfs_root).resolve()
    class_dir = Path(sysfs_root) / "class" / "hidraw"
    try:
        entries = sorted(class_dir.iterdir(), key=lambda p: (len(p.name), p.name))
    except OSError:
        return []
    devices: list[HidDeviceInfo] = []
    for entry in entries:
        devices.extend(_describe(entry, root, vendor_id, product_id))
    return devices


class HidrawDevice:
    """An open hidraw device node."""

    def __init__(self, fd: int, path: str) -> None:
        self._fd = fd
        self.path = path
        self.blocking = True
        self.uses_numbered_reports = False
        self.last_error: str | None = None

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> "HidrawDevice":
        """Open the device node at ``path`` for reading and writing."""
        try:
            fd = os.open(path, os.O_RDWR)
        except OSError as exc:
            raise HidError(exc.errno, exc.strerror, os.fsdecode(path)) from exc
        device = cls(fd, os.fsdecode(path))
        device._probe_descriptor()
        return device

    def _probe_descriptor(self) -> None:
        try:
            import fcntl
        except ImportError:
            self.last_error = "ioctl not available"
            return
        size_buf = bytearray(4)
        try:
            fcntl.ioctl(self._fd, HIDIOCGRDESCSIZE, size_buf, True)
            desc_size = int.from_bytes(size_buf, sys.byteorder)
        except OSError as exc:
            self.last_error = f"ioctl (GRDESCSIZE): {exc.strerror}"
            desc_size = 0
        buffer = bytearray(4 + HID_MAX_DESCRIPTOR_SIZE)
        buffer[0:4] = min(desc_size, HID_MAX_DESCRIPTOR_SIZE).to_bytes(4, sys.byteorder)
        try:
            fcntl.ioctl(self._fd, HIDIOCGRDESC, buffer, True)
        except OSError as exc:
            self.last_error = f"ioctl (GRDESC): {exc.strerror}"
            return
        size = min(int.from_bytes(buffer[0:4], sys.byteorder), HID_MAX_DESCRIPTOR_SIZE)
        try:
            self.uses_numbered_reports = uses_numbered_reports(bytes(buffer[4 : 4 + size]))
        except MalformedDescriptorError:
            self.uses_numbered_reports = False

    @property
    def closed(self) -> bool:
        return self._fd < 0

    def _require_open(self) -> int:
        if self._fd < 0:
            raise HidError(errno.EBADF, "device is closed", self.path)
        return self._fd

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write a report (report id first); return the bytes written."""
        fd = self._require_open()
        try:
            written = os.write(fd, bytes(data))
        except OSError as exc:
            self.last_error = exc.strerror
            raise HidError(exc.errno, exc.strerror, self.path) from exc
        self.last_error = None
        return written

    def _wait_readable(self, fd: int, timeout_ms: int) -> bool:
        if hasattr(select, "poll"):
            poller = select.poll()
            poller.register(fd, select.POLLIN)
            try:
                events = poller.poll(timeout_ms)
            except OSError as exc:
                self.last_error = exc.strerror
                raise HidError(exc.errno, exc.strerror, self.path) from exc
            if not events:
                return False
            failure = select.POLLERR | select.POLLHUP | select.POLLNVAL
            if any(revents & failure for _, revents in events):
                raise HidError(errno.ENODEV, "device disconnected", self.path)
            return True
        readable, _, errored = select.select([fd], [], [fd], timeout_ms / 1000)
        if errored:
            raise HidError(errno.ENODEV, "device disconnected", self.path)
        return bool(readable)

    def read(self, size: int, timeout_ms: int | None = None) -> bytes:
        """Read one input report of at most ``size`` bytes.

        ``timeout_ms`` of -1 waits forever, 0 returns at once; None uses the
        blocking mode. An empty result means no report arrived in time.
        """
        fd = self._require_open()
        self.last_error = None
        if timeout_ms is None:
            timeout_ms = -1 if self.blocking else 0
        if timeout_ms >= 0 and not self._wait_readable(fd, timeout_ms):
            return b""
        try:
            return os.read(fd, size)
        except OSError as exc:
            if exc.errno in (errno.EAGAIN, errno.EINPROGRESS):
                return b""
            self.last_error = exc.strerror
            raise HidError(exc.errno, exc.strerror, self.path) from exc

    def set_nonblocking(self, nonblock: bool) -> None:
        """Choose whether reads without a timeout return at once."""
        self.blocking = not nonblock

    def close(self) -> None:
        """Close the device node; closing twice does nothing."""
        if self._fd < 0:
            return
        fd, self._fd = self._fd, -1
        self.last_error = None
        try:
            os.close(fd)
        except OSError as exc:
            raise HidError(exc.errno, exc.strerror, self.path) from exc

    def __enter__(self) -> "HidrawDevice":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()