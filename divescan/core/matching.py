"""Identity matchers: translate raw transport signals into vendor/product candidates.

Every function here is pure. A miss is reported as ``None`` (or an
``UNIDENTIFIED`` classification for USB), never as an exception.
"""

from __future__ import annotations

from collections.abc import Iterable

from divescan.core.catalog_loader import Catalog, USBProduct, load_catalog
from divescan.core.model import (
    DeviceMatch,
    NameMatch,
    Transport,
    UsbClassification,
    UsbIdentity,
)
from divescan.core.registry import DescriptorRegistry, default_registry


def _unique_product(
    vendor: str,
    flag: Transport,
    registry: DescriptorRegistry,
) -> str | None:
    candidates = registry.products_with_transport(vendor, flag)
    if len(candidates) == 1:
        return candidates[0]
    return None


def resolve_ble_name(
    name: str,
    *,
    catalog: Catalog | None = None,
    registry: DescriptorRegistry | None = None,
) -> NameMatch | None:
    catalog = catalog or load_catalog()
    for rule in catalog.ble_name_rules:
        if not rule.pattern.search(name):
            continue
        if rule.product:
            return NameMatch(vendor=rule.vendor, product=rule.product)
        product = _unique_product(rule.vendor, Transport.BLE, registry or default_registry())
        return NameMatch(vendor=rule.vendor, product=product)
    return None


def resolve_classic_name(
    name: str,
    *,
    catalog: Catalog | None = None,
    registry: DescriptorRegistry | None = None,
) -> NameMatch | None:
    catalog = catalog or load_catalog()
    for rule in catalog.classic_name_rules:
        if not name.startswith(rule.prefix):
            continue
        if rule.product:
            return NameMatch(vendor=rule.vendor, product=rule.product)
        product = _unique_product(
            rule.vendor,
            Transport.BLUETOOTH_CLASSIC,
            registry or default_registry(),
        )
        return NameMatch(vendor=rule.vendor, product=product)
    return None


def is_ignored_service(uuid: str, *, catalog: Catalog | None = None) -> bool:
    catalog = catalog or load_catalog()
    return uuid.lower() in catalog.ignored_services


def service_vendor(uuid: str, *, catalog: Catalog | None = None) -> str | None:
    """Return the vendor for a vendor-specific service uuid."""
    catalog = catalog or load_catalog()
    normalized = uuid.lower()
    for rule in catalog.service_rules:
        if rule.uuid == normalized:
            return rule.vendor
    return None


def is_known_service(uuid: str, *, catalog: Catalog | None = None) -> bool:
    return service_vendor(uuid, catalog=catalog) is not None


def resolve_service_ids(
    service_ids: Iterable[str],
    *,
    catalog: Catalog | None = None,
) -> NameMatch | None:
    catalog = catalog or load_catalog()
    for uuid in service_ids:
        if is_ignored_service(uuid, catalog=catalog):
            continue
        vendor = service_vendor(uuid, catalog=catalog)
        if vendor is not None:
            return NameMatch(vendor=vendor)
    return None


def _find_usb_product(
    table: tuple[USBProduct, ...],
    vendor_id: int,
    product_id: int,
) -> USBProduct | None:
    return next(
        (e for e in table if e.vendor_id == vendor_id and e.product_id == product_id),
        None,
    )


def serial_bridge_chip(vendor_id: int, product_id: int, *, catalog: Catalog | None = None) -> str | None:
    catalog = catalog or load_catalog()
    for bridge in catalog.usb_serial_bridges:
        if bridge.vendor_id == vendor_id and bridge.product_id == product_id:
            return bridge.chip
    return None


def is_serial_adapter(vendor_id: int, product_id: int, *, catalog: Catalog | None = None) -> bool:
    return serial_bridge_chip(vendor_id, product_id, catalog=catalog) is not None


def identify_usb(
    vendor_id: int,
    product_id: int,
    *,
    catalog: Catalog | None = None,
    registry: DescriptorRegistry | None = None,
) -> UsbIdentity:
    catalog = catalog or load_catalog()

    # A bridge chip only says "serial cable"; the product is found later by probing.
    chip = serial_bridge_chip(vendor_id, product_id, catalog=catalog)
    if chip is not None:
        return UsbIdentity(
            vendor_id=vendor_id,
            product_id=product_id,
            classification=UsbClassification.SERIAL_ADAPTER,
            chip=chip,
        )

    for table, classification in (
        (catalog.usb_hid_devices, UsbClassification.USB_HID),
        (catalog.usb_direct_devices, UsbClassification.USB_DIRECT),
    ):
        entry = _find_usb_product(table, vendor_id, product_id)
        if entry is None:
            continue
        registry = registry or default_registry()
        return UsbIdentity(
            vendor_id=vendor_id,
            product_id=product_id,
            classification=classification,
            vendor=entry.vendor,
            product=entry.product,
            descriptor=registry.find_descriptor(entry.vendor, entry.product),
        )

    return UsbIdentity(
        vendor_id=vendor_id,
        product_id=product_id,
        classification=UsbClassification.UNIDENTIFIED,
    )


def match_device_name(
    name: str,
    *,
    catalog: Catalog | None = None,
    registry: DescriptorRegistry | None = None,
) -> DeviceMatch | None:
    """Resolve a Bluetooth name against the BLE rules, then the classic rules."""
    registry = registry or default_registry()
    match = resolve_ble_name(name, catalog=catalog, registry=registry)
    if match is None:
        match = resolve_classic_name(name, catalog=catalog, registry=registry)
    if match is None:
        return None

    descriptor = None
    if match.product:
        descriptor = registry.find_descriptor(match.vendor, match.product)
    return DeviceMatch(vendor=match.vendor, product=match.product, descriptor=descriptor)
