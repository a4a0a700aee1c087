import pytest

from joycfg.hidparse import (
    MalformedDescriptorError,
    UeventInfo,
    hid_item_size,
    iter_usages,
    parse_uevent,
    report_bytes,
    uses_numbered_reports,
)

GAMEPAD = bytes(
    [0x05, 0x01, 0x09, 0x05, 0xA1, 0x01, 0x85, 0x01, 0x09, 0x30, 0x81, 0x02, 0xC0]
)


@pytest.mark.parametrize("key, expected", [(0x80, (0, 1)), (0x05, (1, 1)), (0x06, (2, 1)), (0x07, (4, 1))])
def test_short_item_sizes(key, expected):
    assert hid_item_size(bytes([key, 0, 0, 0, 0]), 0) == expected


def test_long_item_size():
    assert hid_item_size(bytes([0xFE, 0x02, 0x00, 0xAA, 0xBB]), 0) == (2, 3)


def test_long_item_at_end_treated_as_short():
    assert hid_item_size(bytes([0xFE]), 0) == (2, 1)


def test_item_size_out_of_range():
    with pytest.raises(MalformedDescriptorError):
        hid_item_size(b"\x05", 1)


def test_report_bytes_little_endian():
    assert report_bytes(bytes([0x06, 0x00, 0xFF]), 2, 0) == 0xFF00
    assert report_bytes(bytes([0x05, 0x0C]), 1, 0) == 0x0C
    assert report_bytes(bytes([0x07, 1, 2, 3, 4, 0]), 4, 0) == 0x04030201


def test_report_bytes_not_enough_data():
    assert report_bytes(bytes([0x06, 0x00]), 2, 0) == 0
    assert report_bytes(bytes([0x05, 0x01, 0x00]), 0, 0) == 0


def test_numbered_reports_detected():
    assert uses_numbered_reports(GAMEPAD) is True


def test_report_id_value_in_data_is_not_a_key():
    # 0x85 appears only as item data here.
    assert uses_numbered_reports(bytes([0x09, 0x85, 0xA1, 0x01, 0xC0])) is False


def test_empty_descriptor():
    assert uses_numbered_reports(b"") is False
    assert list(iter_usages(b"")) == []


def test_single_collection_usage():
    assert list(iter_usages(GAMEPAD)) == [(0x01, 0x05)]


def test_nested_collections_yield_each_pair():
    descriptor = bytes([0x05, 0x01, 0x09, 0x02, 0xA1, 0x01, 0x09, 0x01, 0xA1, 0x00, 0xC0, 0xC0])
    assert list(iter_usages(descriptor)) == [(0x01, 0x02), (0x01, 0x01)]


def test_usage_without_collection():
    assert list(iter_usages(bytes([0x05, 0x01, 0x09, 0x06]))) == [(0x01, 0x06)]


def test_usage_consumed_by_main_item():
    descriptor = bytes([0x05, 0x01, 0x09, 0x30, 0x81, 0x02, 0xA1, 0x01, 0xC0])
    assert list(iter_usages(descriptor)) == []


def test_parse_uevent_complete():
    text = "DRIVER=hid-generic\nHID_ID=0003:000005AC:00008242\nHID_NAME=Test Stick\nHID_UNIQ=TEST0001\n"
    info = parse_uevent(text)
    assert info == UeventInfo(
        bus_type=0x0003,
        vendor_id=0x05AC,
        product_id=0x8242,
        serial_number="TEST0001",
        product_name="Test Stick",
    )
    assert info.is_complete


def test_parse_uevent_missing_serial():
    info = parse_uevent("HID_ID=0003:000005AC:00008242\nHID_NAME=Pad")
    assert info.serial_number is None
    assert not info.is_complete


def test_parse_uevent_bad_id_and_empty_serial():
    info = parse_uevent("HID_ID=garbage\nHID_NAME=Pad\nHID_UNIQ=\nnoequals")
    assert info.bus_type is None
    assert info.serial_number == ""
    assert not info.is_complete


def test_parse_uevent_value_keeps_equals_sign():
    assert parse_uevent("HID_NAME=a=b").product_name == "a=b"