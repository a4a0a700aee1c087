"""Report exchanges with the device: config upload/download and firmware flashing.

A transport is any object with ``write(data)`` and ``read(size, timeout_ms)``
methods behaving like :class:`joycfg.hidraw.HidrawDevice`: ``read`` returns an
empty result when nothing arrived in time and raises :class:`HidError` when
the device is gone.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from .checksum import compute_checksum
from .hidraw import HidError

log = logging.getLogger(__name__)

REPORT_SIZE = 64
CHUNK_PAYLOAD = REPORT_SIZE - 2
FLASH_REPORT_ID = 4
FLASH_PAYLOAD = 60

CONFIG_TIMEOUT_MS = 5000
CONFIG_READ_TIMEOUT_MS = 100
CONFIG_RESEND_MS = 250
CONFIG_VERIFY_MS = 2000
VERSION_MISMATCH = 0xFE

FLASH_TIMEOUT_MS = 50000
FLASH_READ_TIMEOUT_MS = 5000

BOOTLOADER_TEXT = b"bootloader run"

Clock = Callable[[], float]


class Transport(Protocol):
    def write(self, data: bytes) -> int: ...

    def read(self, size: int, timeout_ms: int | None = None) -> bytes: ...


@dataclass(frozen=True)
class ReportIds:
    """Report ids used by the firmware for each kind of exchange."""

    param: int
    config_in: int
    config_out: int
    firmware: int


class FlashStatus(enum.Enum):
    """Progress and outcome of a firmware flash."""

    IN_PROCESS = "in_process"
    FINISHED = "finished"
    SIZE_ERROR = "size_error"
    CRC_ERROR = "crc_error"
    ERASE_ERROR = "erase_error"
    TIMEOUT = "timeout"


_FLASHER_STATUS = {
    0xF000: FlashStatus.FINISHED,
    0xF001: FlashStatus.SIZE_ERROR,
    0xF002: FlashStatus.CRC_ERROR,
    0xF003: FlashStatus.ERASE_ERROR,
}


class ConfigTransferError(RuntimeError):
    """Raised when a configuration could not be read or written completely."""


class FlashError(RuntimeError):
    """Raised when flashing firmware fails."""

    def __init__(self, message: str, status: FlashStatus | None = None, percent: int = 0) -> None:
        super().__init__(message)
        self.status = status
        self.percent = percent


def _default_clock() -> float:
    return time.monotonic() * 1000.0


def config_chunk_count(config_size: int) -> int:
    """Return how many reports carry a config of ``config_size`` bytes."""
    if config_size < 0:
        raise ValueError("config size must not be negative")
    count = -(-config_size // CHUNK_PAYLOAD)
    if count > 0xFF:
        raise ValueError(f"config of {config_size} bytes needs more than 255 reports")
    return count


def _make_report(report_id: int, index: int, payload: bytes) -> bytes:
    if len(payload) > CHUNK_PAYLOAD:
        raise ValueError(f"chunk payload is {len(payload)} bytes, at most {CHUNK_PAYLOAD}")
    return (bytes([report_id, index & 0xFF]) + payload).ljust(REPORT_SIZE, b"\0")


def _send(transport: Transport, data: bytes, error: type[Exception]) -> None:
    try:
        transport.write(data)
    except HidError as exc:
        raise error(f"device lost: {exc}") from exc


def read_config(
    transport: Transport,
    ids: ReportIds,
    config_size: int,
    on_chunk: Callable[[int, bytes], None],
    clock: Clock | None = None,
) -> int:
    """Request the config from the device chunk by chunk.

    ``on_chunk`` receives the 1-based chunk number and its payload bytes.
    Returns the number of chunks received; raises ConfigTransferError when
    not all of them arrived within the time limit.
    """
    clock = clock or _default_clock
    count = config_chunk_count(config_size)
    request = 1
    received = 0
    start = clock()
    resend_at = start
    _send(transport, bytes([ids.config_in, request]), ConfigTransferError)

    while clock() < start + CONFIG_TIMEOUT_MS:
        try:
            reply = transport.read(REPORT_SIZE, CONFIG_READ_TIMEOUT_MS)
        except HidError as exc:
            raise ConfigTransferError(f"device lost while reading config: {exc}") from exc
        if reply[:1] == bytes([ids.config_in]):
            if len(reply) > 1 and reply[1] == request:
                on_chunk(request, bytes(reply[2:]))
                request = (request + 1) & 0xFF
                _send(transport, bytes([ids.config_in, request]), ConfigTransferError)
                received += 1
                resend_at = clock()
                log.debug("Config %d received", received)
                if request > count:
                    break
        elif resend_at + CONFIG_RESEND_MS - clock() <= 0:
            log.debug("Resend activated")
            request = (received + 1) & 0xFF
            resend_at = clock()
            _send(transport, bytes([ids.config_in, request]), ConfigTransferError)

    log.debug("Read report count = %d/%d", received, count)
    if received != count:
        raise ConfigTransferError(f"received {received} of {count} config reports")
    return received


def write_config(
    transport: Transport,
    ids: ReportIds,
    config_size: int,
    fill_chunk: Callable[[int], bytes],
    clock: Clock | None = None,
) -> int:
    """Send the config to the device as the device requests each chunk.

    ``fill_chunk`` returns the payload (at most 62 bytes) of the 1-based
    chunk number it is given. Returns the number of chunks sent; raises
    ConfigTransferError when the transfer is incomplete or the device
    rejects the firmware version.
    """
    clock = clock or _default_clock
    count = config_chunk_count(config_size)
    report = _make_report(ids.config_out, 0, b"")
    index = 0
    sent = 0
    start = clock()
    resend_at = start
    _send(transport, report, ConfigTransferError)

    while clock() < start + CONFIG_TIMEOUT_MS:
        try:
            reply = transport.read(REPORT_SIZE, CONFIG_READ_TIMEOUT_MS)
        except HidError as exc:
            raise ConfigTransferError(f"device lost while writing config: {exc}") from exc
        if reply[:1] == bytes([ids.config_out]):
            if len(reply) > 1 and reply[1] == (index + 1) & 0xFF:
                index = (index + 1) & 0xFF
                report = _make_report(ids.config_out, index, bytes(fill_chunk(index)))
                _send(transport, report, ConfigTransferError)
                sent += 1
                resend_at = clock()
                log.debug("Config %d sent", sent)
                if reply[1] == count:
                    break
        elif resend_at + CONFIG_RESEND_MS - clock() <= 0:
            log.debug("Resend activated")
            resend_at = clock()
            report = bytes([report[0], sent & 0xFF]) + report[2:]
            _send(transport, report, ConfigTransferError)

    log.debug("Write report count = %d/%d", sent, count)
    if sent != count:
        raise ConfigTransferError(f"sent {sent} of {count} config reports")

    while clock() < start + CONFIG_VERIFY_MS:
        try:
            reply = transport.read(REPORT_SIZE, CONFIG_READ_TIMEOUT_MS)
        except HidError:
            break
        if len(reply) > 1 and reply[1] == VERSION_MISMATCH:
            raise ConfigTransferError("device firmware version does not match the config")
    return sent


def build_flash_header(firmware: bytes | bytearray | memoryview) -> bytes:
    """Return the first flasher report: firmware length and checksum."""
    data = bytes(firmware)
    length = len(data) & 0xFFFF
    crc = compute_checksum(data)
    header = bytes([FLASH_REPORT_ID, 0, 0, 0]) + length.to_bytes(2, "little") + crc.to_bytes(2, "little")
    return header.ljust(REPORT_SIZE, b"\0")


def _firmware_packet(firmware: bytes, number: int) -> tuple[bytes, int]:
    size = len(firmware)
    offset = (number - 1) * FLASH_PAYLOAD
    if number == 0 or offset >= size:
        raise FlashError(f"flasher requested packet {number} beyond the firmware")
    if number * FLASH_PAYLOAD < size:
        payload = firmware[offset : offset + FLASH_PAYLOAD]
        percent = offset * 100 // size
    else:
        payload = firmware[offset:]
        percent = 0
    packet = bytes([FLASH_REPORT_ID, number >> 8, number & 0xFF, 0]) + payload
    return packet.ljust(REPORT_SIZE, b"\0"), percent


def flash_firmware(
    transport: Transport,
    firmware: bytes | bytearray | memoryview,
    on_status: Callable[[FlashStatus, int], None] | None = None,
    clock: Clock | None = None,
) -> None:
    """Send ``firmware`` to a connected flasher, packet by packet on request.

    ``on_status`` is told the status and percentage after each step.
    Returns when the flasher reports success; raises FlashError otherwise.
    """
    clock = clock or _default_clock
    data = bytes(firmware)
    if not data:
        raise ValueError("firmware image is empty")

    def notify(status: FlashStatus, percent: int) -> None:
        if on_status is not None:
            on_status(status, percent)

    log.debug("flash size = %d", len(data))
    _send(transport, build_flash_header(data), FlashError)
    percent = 0
    request: bytes | None = None
    start = clock()

    while clock() < start + FLASH_TIMEOUT_MS:
        try:
            reply = transport.read(REPORT_SIZE, FLASH_READ_TIMEOUT_MS)
        except HidError as exc:
            raise FlashError(f"flasher lost: {exc}", None, percent) from exc
        if reply[:1] == bytes([FLASH_REPORT_ID]):
            request = bytes(reply).ljust(REPORT_SIZE, b"\0")
        if request is None:
            continue
        number = request[1] << 8 | request[2]
        if number & 0xF000 == 0xF000:
            status = _FLASHER_STATUS.get(number)
            if status is None:
                continue
            notify(status, percent)
            if status is FlashStatus.FINISHED:
                return
            raise FlashError(f"flasher reported {status.value}", status, percent)
        log.debug("Firmware packet requested: %d", number)
        packet, percent = _firmware_packet(data, number)
        _send(transport, packet, FlashError)
        notify(FlashStatus.IN_PROCESS, percent)

    notify(FlashStatus.TIMEOUT, percent)
    raise FlashError("flasher did not finish in time", FlashStatus.TIMEOUT, percent)


def bootloader_message(report_id: int) -> bytes:
    """Return the report that asks the device to restart into its bootloader."""
    return (bytes([report_id]) + BOOTLOADER_TEXT).ljust(REPORT_SIZE, b"\0")