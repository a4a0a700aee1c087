import os
from pathlib import Path

import pytest

from joycfg.hidraw import HidError, HidrawDevice, enumerate_devices

DESCRIPTOR = bytes(
    [0x05, 0x01, 0x09, 0x04, 0xA1, 0x01, 0x85, 0x01, 0xC0,
     0x05, 0x01, 0x09, 0x05, 0xA1, 0x01, 0xC0]
)


def _uevent(bus="0003", vid="00001209", pid="00000001", name="Example Stick", uniq="EXAMPLE0001"):
    lines = ["DRIVER=hid-generic", f"HID_ID={bus}:{vid}:{pid}", f"HID_NAME={name}"]
    if uniq is not None:
        lines.append(f"HID_UNIQ={uniq}")
    return "\n".join(lines) + "\n"


def _add_device(root: Path, name: str, uevent: str, usb: bool = True, usb_device: bool = True):
    base = root / "devices" / "pci0" / f"usb-{name}"
    if usb and usb_device:
        base.mkdir(parents=True)
        (base / "idVendor").write_text("1209\n")
        (base / "manufacturer").write_text("Example Maker\n")
        (base / "product").write_text("Example USB Stick\n")
        (base / "bcdDevice").write_text("0200\n")
        intf = base / "1-1:1.1"
        intf.mkdir()
        (intf / "bInterfaceNumber").write_text("01\n")
        hid = intf / f"hid-{name}"
    else:
        hid = base / f"hid-{name}"
    hid.mkdir(parents=True)
    (hid / "uevent").write_text(uevent)
    (hid / "report_descriptor").write_bytes(DESCRIPTOR)
    node = hid / "hidraw" / name
    node.mkdir(parents=True)
    class_dir = root / "class" / "hidraw"
    class_dir.mkdir(parents=True, exist_ok=True)
    os.symlink(node, class_dir / name)


def test_enumerate_usb_device_yields_one_record_per_usage(tmp_path):
    _add_device(tmp_path, "hidraw0", _uevent())
    devices = enumerate_devices(0, 0, tmp_path)
    assert len(devices) == 2
    first, second = devices
    assert first.path == "/dev/hidraw0"
    assert (first.vendor_id, first.product_id) == (0x1209, 0x0001)
    assert first.serial_number == "EXAMPLE0001"
    assert first.manufacturer_string == "Example Maker"
    assert first.product_string == "Example USB Stick"
    assert first.release_number == 0x0200
    assert first.interface_number == 1
    assert (first.usage_page, first.usage) == (1, 4)
    assert (second.usage_page, second.usage) == (1, 5)
    assert second.path == first.path
    assert second.interface_number == first.interface_number


def test_vendor_and_product_filters(tmp_path):
    _add_device(tmp_path, "hidraw0", _uevent())
    assert enumerate_devices(0x1234, 0, tmp_path) == []
    assert enumerate_devices(0, 0x0002, tmp_path) == []
    assert len(enumerate_devices(0x1209, 0x0001, tmp_path)) == 2


def test_incomplete_uevent_is_skipped(tmp_path):
    _add_device(tmp_path, "hidraw0", _uevent(uniq=None))
    assert enumerate_devices(0, 0, tmp_path) == []


def test_unsupported_bus_is_skipped(tmp_path):
    _add_device(tmp_path, "hidraw0", _uevent(bus="0019"), usb=False)
    assert enumerate_devices(0, 0, tmp_path) == []


def test_bluetooth_device_uses_uevent_name(tmp_path):
    _add_device(tmp_path, "hidraw1", _uevent(bus="0005", name="Example BT Pad"), usb=False)
    devices = enumerate_devices(0, 0, tmp_path)
    assert devices[0].manufacturer_string == ""
    assert devices[0].product_string == "Example BT Pad"
    assert devices[0].interface_number == -1
    assert devices[0].release_number == 0


def test_usb_without_usb_parent_uses_uevent_name(tmp_path):
    _add_device(tmp_path, "hidraw2", _uevent(name="Virtual Stick"), usb_device=False)
    devices = enumerate_devices(0, 0, tmp_path)
    assert devices[0].manufacturer_string == ""
    assert devices[0].product_string == "Virtual Stick"


def test_missing_class_dir_gives_empty_list(tmp_path):
    assert enumerate_devices(0, 0, tmp_path / "nothing") == []


@pytest.fixture
def fifo(tmp_path):
    path = tmp_path / "hidraw-fifo"
    os.mkfifo(path)
    return path


def test_write_then_read_round_trip(fifo):
    with HidrawDevice.open(fifo) as device:
        assert device.write(b"\x02\x01") == 2
        assert device.read(64, 100) == b"\x02\x01"
        assert device.uses_numbered_reports is False


def test_read_times_out_with_empty_result(fifo):
    with HidrawDevice.open(fifo) as device:
        assert device.read(64, 0) == b""


def test_nonblocking_read_without_timeout_returns_empty(fifo):
    with HidrawDevice.open(fifo) as device:
        device.set_nonblocking(True)
        assert device.blocking is False
        assert device.read(64) == b""


def test_open_missing_path_raises(tmp_path):
    with pytest.raises(HidError):
        HidrawDevice.open(tmp_path / "absent")


def test_closed_device_rejects_io(fifo):
    with HidrawDevice.open(fifo) as device:
        pass
    assert device.closed is True
    with pytest.raises(HidError):
        device.write(b"\x01")
    with pytest.raises(HidError):
        device.read(8, 0)