# joycfg

A library for working with USB HID joystick controllers: an in-memory
model of a controller's configuration, finding controllers and their
firmware flasher on the HID bus, exchanging configuration reports with a
device, and flashing new firmware.

The package has no third-party dependencies. Talking to real hardware
uses the Linux `hidraw` interface; the checksum, the configuration model
and the report-descriptor parsing work on any platform.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

### `joycfg.devconfig` – configuration model

`DeviceConfig` is a dataclass holding a full controller configuration:
firmware version, device name, USB vendor/product ids, pin assignments,
shift buttons, button timers, and lists of `ButtonConfig`, `AxisConfig`,
`AxisToButtons`, `ShiftRegister`, `LedPwmConfig` and `LedConfig`
entries. Every field defaults to zero. `DeviceConfig.copy()` returns an
independent deep copy.

```python
from joycfg.devconfig import DeviceConfig

config = DeviceConfig()
config.device_name = "My Stick"
config.axis_config[0].calib_max = 4095
backup = config.copy()
```

### `joycfg.checksum` – firmware checksum

A CRC-16 with the reflected polynomial `0xA001` and initial value 0.
`crc16_table()` returns the 256-entry lookup table.

```python
from joycfg.checksum import compute_checksum

with open("firmware.bin", "rb") as fh:
    crc = compute_checksum(fh.read())
print(f"{crc:04X}")
```

### `joycfg.converter`

`enum_to_index(value, items, key=None)` returns the position of the first
item (or `key(item)`) equal to `value`, and raises `ValueError` when none
matches.

### `joycfg.hidparse` – report descriptors and uevent text

- `hid_item_size(descriptor, pos)` returns `(data_len, key_size)` of an item.
- `report_bytes(descriptor, num_bytes, pos)` reads an item's little-endian data.
- `uses_numbered_reports(descriptor)` tells whether a Report ID item is present.
- `iter_usages(descriptor)` yields `(usage_page, usage)` pairs.
- `parse_uevent(text)` returns a `UeventInfo` with bus type, vendor and
  product ids, serial number and product name; `is_complete` is true when
  id, name and serial were all found.

A descriptor that cannot be walked raises `MalformedDescriptorError`.

### `joycfg.hidraw` – device access on Linux

```python
from joycfg.hidraw import HidrawDevice, enumerate_devices

for info in enumerate_devices(vendor_id=0, product_id=0):
    print(info.path, hex(info.vendor_id), hex(info.product_id), info.product_string)

with HidrawDevice.open("/dev/hidraw0") as dev:
    dev.write(bytes([2, 0]))
    report = dev.read(64, 1000)   # b"" if nothing arrived within 1000 ms
```

`enumerate_devices` walks sysfs (the root can be given as `sysfs_root`)
and returns one `HidDeviceInfo` per usage pair; zero ids match anything.
`HidrawDevice.read` takes a timeout in milliseconds (`-1` waits forever,
`0` returns at once, `None` follows `set_nonblocking`). Failures raise
`HidError`.

### `joycfg.discovery` – picking controllers

`select_devices(infos)` returns `DeviceEntry` records for controllers,
marking devices with older firmware as `legacy`; `find_flasher(infos)`
returns the firmware flasher, if connected. `DeviceList` keeps the
current list between scans in a thread-safe way: `update(infos)` returns
whether the shown list changed, `select(index)` chooses a device (clamped
to the list, ignored while the flasher is connected), and `names()`
returns `(legacy, name)` pairs for display.

### `joycfg.transfer` – exchanges with a device

Any object with `write(data)` and `read(size, timeout_ms)` like
`HidrawDevice` can serve as the transport.

- `config_chunk_count(config_size)` – number of 64-byte reports a config needs.
- `read_config(transport, ids, config_size, on_chunk)` – requests the
  config chunk by chunk, handing each payload to `on_chunk`.
- `write_config(transport, ids, config_size, fill_chunk)` – sends the
  config as the device requests each chunk.
- `flash_firmware(transport, firmware, on_status)` – sends the header from
  `build_flash_header` and then firmware packets on request, reporting
  `FlashStatus` values and a percentage.
- `bootloader_message(report_id)` – the report that asks a device to
  restart into its bootloader.

`ReportIds` holds the report ids the firmware uses. Incomplete or
rejected transfers raise `ConfigTransferError`; flashing failures raise
`FlashError`, carrying the `status` and `percent` reached. Each function
accepts a `clock` returning milliseconds, for testing.

## What this package does not do

- It does not read or write configurations as `.cfg` files; a
  `DeviceConfig` lives only in memory.
- It does not lay a `DeviceConfig` out as bytes for the device; the
  transfer functions move raw chunks through the `on_chunk` and
  `fill_chunk` callbacks you supply.
- It provides no command-line program and no graphical interface.