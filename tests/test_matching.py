from __future__ import annotations

import re

import pytest

from divescan.core import matching
from divescan.core.catalog_loader import BLENameRule, Catalog, ClassicNameRule
from divescan.core.model import DeviceDescriptor, Family, Transport, UsbClassification
from divescan.core.registry import DescriptorRegistry


def _catalog(**overrides) -> Catalog:
    fields = {
        "descriptors": (),
        "ble_name_rules": (),
        "classic_name_rules": (),
        "service_rules": (),
        "ignored_services": frozenset(),
        "usb_serial_bridges": (),
        "usb_hid_devices": (),
        "usb_direct_devices": (),
    }
    fields.update(overrides)
    return Catalog(**fields)


def _descriptor(product: str, transports: Transport) -> DeviceDescriptor:
    return DeviceDescriptor(vendor="Acme", product=product, model=0, family=Family.NULL, transports=transports)


@pytest.mark.parametrize(
    ("name", "vendor", "product"),
    [
        ("EON Steel", "Suunto", "EON Steel"),
        ("G2 123456", "Scubapro", "G2"),
        ("Perdix 2 ABCD", "Shearwater", "Perdix 2"),
        ("Petrel", "Shearwater", "Petrel 2"),
        ("OSTC4-12345", "Heinrichs Weikamp", "OSTC 4/5"),
        ("Luna 2.0 AI", "Scubapro", "Luna 2.0 AI"),
    ],
)
def test_resolve_ble_name(name: str, vendor: str, product: str) -> None:
    match = matching.resolve_ble_name(name)
    assert match is not None
    assert (match.vendor, match.product) == (vendor, product)


def test_resolve_ble_name_unknown() -> None:
    assert matching.resolve_ble_name("Unknown Device") is None


def test_vendor_only_rule_with_many_products_leaves_product_unresolved() -> None:
    match = matching.resolve_ble_name("12_abcd")
    assert match is not None
    assert match.vendor == "Cressi"
    assert match.product is None


def test_vendor_only_rule_falls_back_to_unique_ble_product() -> None:
    catalog = _catalog(ble_name_rules=(BLENameRule(pattern=re.compile("^ACME"), vendor="Acme"),))
    registry = DescriptorRegistry(
        [
            _descriptor("Wired", Transport.SERIAL),
            _descriptor("Wireless", Transport.SERIAL | Transport.BLE),
        ]
    )
    match = matching.resolve_ble_name("ACME-01", catalog=catalog, registry=registry)
    assert match is not None
    assert match.product == "Wireless"


def test_classic_name_falls_back_to_unique_classic_product() -> None:
    catalog = _catalog(classic_name_rules=(ClassicNameRule(prefix="Acme", vendor="Acme"),))
    registry = DescriptorRegistry(
        [
            _descriptor("Old", Transport.BLUETOOTH_CLASSIC),
            _descriptor("New", Transport.BLE),
        ]
    )
    match = matching.resolve_classic_name("Acme 42", catalog=catalog, registry=registry)
    assert match is not None
    assert match.product == "Old"


def test_resolve_classic_name_vendor_only() -> None:
    match = matching.resolve_classic_name("OSTC 12345")
    assert match is not None
    assert match.vendor == "Heinrichs Weikamp"
    assert match.product is None
    assert matching.resolve_classic_name("Unknown") is None


def test_service_ids_skip_ignored_and_return_vendor() -> None:
    match = matching.resolve_service_ids(
        [
            "00001530-1212-EFDE-1523-785FEABCD123",
            "98AE7120-E62E-11E3-BADD-0002A5D5C51B",
        ]
    )
    assert match is not None
    assert match.vendor == "Suunto"
    assert match.product is None


def test_service_ids_unknown_or_ignored_only() -> None:
    assert matching.resolve_service_ids(["0000180f-0000-1000-8000-00805f9b34fb"]) is None
    assert matching.resolve_service_ids(["6e400001-b5a3-f393-e0a9-e50e24dcca9e"]) is None
    assert matching.resolve_service_ids([]) is None


def test_service_predicates() -> None:
    assert matching.is_ignored_service("6E400001-B5A3-F393-E0A9-E50E24DCCA9E")
    assert not matching.is_ignored_service("98ae7120-e62e-11e3-badd-0002a5d5c51b")
    assert matching.service_vendor("FE25C237-0ECE-443C-B0AA-E02033E7029D") == "Shearwater"
    assert matching.service_vendor("0000180f-0000-1000-8000-00805f9b34fb") is None
    assert matching.is_known_service("fe25c237-0ece-443c-b0aa-e02033e7029d") is True
    assert matching.is_known_service("0000180f-0000-1000-8000-00805f9b34fb") is False


def test_identify_usb_hid() -> None:
    identity = matching.identify_usb(0x1493, 0x0033)
    assert identity.classification is UsbClassification.USB_HID
    assert (identity.vendor, identity.product) == ("Suunto", "EON Core")
    assert identity.descriptor is not None
    assert identity.identified


def test_identify_usb_direct() -> None:
    identity = matching.identify_usb(0x1234, 0x5678)
    assert identity.classification is UsbClassification.USB_DIRECT
    assert (identity.vendor, identity.product) == ("Uemis", "Zurich")


def test_identify_usb_serial_bridge() -> None:
    identity = matching.identify_usb(0x0403, 0x6001)
    assert identity.classification is UsbClassification.SERIAL_ADAPTER
    assert identity.chip == "FT232"
    assert identity.vendor is None
    assert matching.is_serial_adapter(0x0403, 0x6001)


def test_identify_usb_unidentified() -> None:
    identity = matching.identify_usb(0x9999, 0x9999)
    assert identity.classification is UsbClassification.UNIDENTIFIED
    assert not identity.identified
    assert not matching.is_serial_adapter(0x9999, 0x9999)


def test_match_device_name_prefers_ble_rules() -> None:
    match = matching.match_device_name("Predator")
    assert match is not None
    assert (match.vendor, match.product) == ("Shearwater", "Predator")
    assert match.descriptor is not None


def test_match_device_name_uses_classic_rules() -> None:
    match = matching.match_device_name("HW OSTC 1234")
    assert match is not None
    assert match.vendor == "Heinrichs Weikamp"
    assert match.descriptor is None


def test_match_device_name_unknown() -> None:
    assert matching.match_device_name("Headphones") is None
