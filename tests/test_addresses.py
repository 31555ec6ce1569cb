from __future__ import annotations

from divescan.core.addresses import (
    format_bluetooth_address,
    is_ble_address,
    is_bluetooth_address,
    parse_bluetooth_address,
    parse_bluetooth_name_address,
)


def test_parse_mac_address() -> None:
    assert parse_bluetooth_address("aa:bb:cc:dd:ee:ff") == ("AA:BB:CC:DD:EE:FF", False)


def test_parse_le_prefixed_mac_is_ble() -> None:
    assert parse_bluetooth_address("LE:00:11:22:33:44:55") == ("00:11:22:33:44:55", True)


def test_parse_uuid_identifier_is_ble() -> None:
    address = "{12345678-1234-1234-1234-123456789abc}"
    assert parse_bluetooth_address(address) == (address.upper(), True)


def test_parse_rejects_non_addresses() -> None:
    assert parse_bluetooth_address("EON Steel") is None
    assert parse_bluetooth_address("AA:BB:CC:DD:EE") is None
    assert not is_bluetooth_address("/dev/ttyUSB0")


def test_is_ble_address() -> None:
    assert is_ble_address("LE:00:11:22:33:44:55")
    assert is_ble_address("12345678-1234-1234-1234-123456789abc")
    assert not is_ble_address("00:11:22:33:44:55")


def test_format_strips_le_prefix() -> None:
    assert format_bluetooth_address("LE:aa:bb:cc:dd:ee:ff") == "AA:BB:CC:DD:EE:FF"


def test_parse_name_and_address() -> None:
    assert parse_bluetooth_name_address("Perdix 2 (LE:aa:bb:cc:dd:ee:ff)") == (
        "Perdix 2",
        "AA:BB:CC:DD:EE:FF",
    )
    assert parse_bluetooth_name_address("aa:bb:cc:dd:ee:ff") == ("", "AA:BB:CC:DD:EE:FF")
    assert parse_bluetooth_name_address("Perdix 2") is None
