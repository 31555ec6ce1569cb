"""Descriptor registry: read-only queries over the dive computer catalog."""

from __future__ import annotations

import functools
from collections.abc import Iterable

from divescan.core.catalog_loader import load_catalog
from divescan.core.model import DeviceDescriptor, Family, Transport

_BLUETOOTH = Transport.BLUETOOTH_CLASSIC | Transport.BLE
_USB_ATTACHED = Transport.USB | Transport.USB_HID | Transport.SERIAL | Transport.USB_MASS_STORAGE

_TRANSPORT_LABELS = (
    (Transport.SERIAL, "SERIAL"),
    (Transport.USB, "USB"),
    (Transport.USB_HID, "USBHID"),
    (Transport.BLUETOOTH_CLASSIC, "BT"),
    (Transport.BLE, "BLE"),
    (Transport.USB_MASS_STORAGE, "USBSTORAGE"),
)


def has_transport(transports: Transport, flag: Transport) -> bool:
    return bool(transports & flag)


def supports_bluetooth(transports: Transport) -> bool:
    return bool(transports & _BLUETOOTH)


def is_ble_only(transports: Transport) -> bool:
    return bool(transports & Transport.BLE) and not transports & Transport.BLUETOOTH_CLASSIC


def supports_usb(transports: Transport) -> bool:
    # Serial counts: serial dive computers reach the host through a USB cable.
    return bool(transports & _USB_ATTACHED)


def describe_transports(transports: Transport) -> str:
    return ", ".join(label for flag, label in _TRANSPORT_LABELS if transports & flag)


class DescriptorRegistry:
    def __init__(self, descriptors: Iterable[DeviceDescriptor]) -> None:
        self._descriptors = tuple(descriptors)

    @property
    def descriptors(self) -> tuple[DeviceDescriptor, ...]:
        return self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    def vendors(self) -> list[str]:
        return sorted({d.vendor for d in self._descriptors})

    def products(self, vendor: str) -> list[str]:
        return sorted({d.product for d in self._descriptors if d.vendor == vendor})

    def find_descriptor(self, vendor: str, product: str) -> DeviceDescriptor | None:
        key = (vendor + product).lower()
        return next((d for d in self._descriptors if d.key == key), None)

    def find_by_family_and_model(self, family: Family, model: int) -> DeviceDescriptor | None:
        return next(
            (d for d in self._descriptors if d.family is family and d.model == model),
            None,
        )

    def products_with_transport(self, vendor: str, flag: Transport) -> list[str]:
        """Products of ``vendor`` whose descriptor declares ``flag``."""
        return [
            product
            for product in self.products(vendor)
            if (descriptor := self.find_descriptor(vendor, product)) is not None
            and descriptor.transports & flag
        ]

    def with_transport(self, flag: Transport) -> list[DeviceDescriptor]:
        return [d for d in self._descriptors if d.transports & flag]

    def ble_capable(self) -> list[DeviceDescriptor]:
        return self.with_transport(Transport.BLE)

    def bluetooth_capable(self) -> list[DeviceDescriptor]:
        return self.with_transport(Transport.BLUETOOTH_CLASSIC)

    def usb_capable(self) -> list[DeviceDescriptor]:
        return self.with_transport(Transport.USB | Transport.USB_HID)

    def usb_hid_capable(self) -> list[DeviceDescriptor]:
        return self.with_transport(Transport.USB_HID)

    def serial_capable(self) -> list[DeviceDescriptor]:
        return self.with_transport(Transport.SERIAL)


@functools.cache
def default_registry() -> DescriptorRegistry:
    return DescriptorRegistry(load_catalog().descriptors)
