"""Stable public API for building tooling on top of divescan.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from divescan.core.addresses import (
    format_bluetooth_address,
    is_ble_address,
    is_bluetooth_address,
    parse_bluetooth_address,
)
from divescan.core.bluetooth_discovery import BluetoothDiscovery, ScanState
from divescan.core.config import Settings, load_settings
from divescan.core.errors import (
    CatalogLoadError,
    CatalogValidationError,
    ConfigError,
    DivescanError,
    PlatformError,
    PlatformUnavailableError,
)
from divescan.core.events import (
    DeviceConnected,
    DeviceDisconnected,
    DeviceFound,
    DiscoveryError,
    ScanStarted,
    ScanStopped,
)
from divescan.core.matching import (
    identify_usb,
    is_serial_adapter,
    resolve_ble_name,
    resolve_classic_name,
    resolve_service_ids,
    service_vendor,
)
from divescan.core.matching import match_device_name as _match_device_name
from divescan.core.model import (
    BluetoothAdvertisement,
    DeviceDescriptor,
    DeviceMatch,
    DiscoveredDevice,
    DiscoveredUSBDevice,
    Family,
    SerialPortInfo,
    Transport,
    UsbClassification,
    UsbDeviceInfo,
    UsbIdentity,
)
from divescan.core.registry import (
    DescriptorRegistry,
    default_registry,
    describe_transports,
    is_ble_only,
    supports_bluetooth,
    supports_usb,
)
from divescan.core.usb_discovery import USBDiscovery

__all__ = [
    "DivescanError",
    "CatalogLoadError",
    "CatalogValidationError",
    "ConfigError",
    "PlatformError",
    "PlatformUnavailableError",
    "Transport",
    "Family",
    "DeviceDescriptor",
    "DeviceMatch",
    "BluetoothAdvertisement",
    "DiscoveredDevice",
    "DiscoveredUSBDevice",
    "SerialPortInfo",
    "UsbClassification",
    "UsbDeviceInfo",
    "UsbIdentity",
    "DescriptorRegistry",
    "default_registry",
    "describe_transports",
    "is_ble_only",
    "supports_bluetooth",
    "supports_usb",
    "resolve_ble_name",
    "resolve_classic_name",
    "resolve_service_ids",
    "service_vendor",
    "identify_usb",
    "is_serial_adapter",
    "parse_bluetooth_address",
    "is_bluetooth_address",
    "is_ble_address",
    "format_bluetooth_address",
    "DeviceFound",
    "DeviceConnected",
    "DeviceDisconnected",
    "ScanStarted",
    "ScanStopped",
    "DiscoveryError",
    "Settings",
    "load_settings",
    "BluetoothDiscovery",
    "ScanState",
    "USBDiscovery",
    "identify",
    "match_device_name",
]


def identify(vendor_id: int, product_id: int) -> DiscoveredUSBDevice | None:
    """Identify a USB id pair without constructing a long-lived engine."""
    return USBDiscovery().identify(vendor_id, product_id)


def match_device_name(name: str) -> DeviceMatch | None:
    """Resolve an advertised Bluetooth name to a vendor/product match."""
    return _match_device_name(name)
