"""USB discovery engine: serial bridges, USB-HID and direct-USB dive computers."""

from __future__ import annotations

import logging
from collections.abc import Callable

from divescan.core import matching
from divescan.core.catalog_loader import load_catalog
from divescan.core.config import USB_KEY_SERIAL, Settings
from divescan.core.events import (
    DeviceConnected,
    DeviceDisconnected,
    DiscoveryError,
    E,
    EventEmitter,
)
from divescan.core.model import DiscoveredUSBDevice, SerialPortInfo, UsbDeviceInfo
from divescan.core.registry import DescriptorRegistry, default_registry
from divescan.platforms.base import HotplugSource, SerialPortEnumerator, USBEnumerator

LOGGER = logging.getLogger(__name__)


class USBDiscovery:
    def __init__(
        self,
        *,
        enumerator: USBEnumerator | None = None,
        serial_enumerator: SerialPortEnumerator | None = None,
        registry: DescriptorRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self.enumerator = enumerator
        self.serial_enumerator = serial_enumerator
        self.registry = registry or default_registry()
        self.usb_device_key = settings.usb_device_key
        self._devices: dict[str, DiscoveredUSBDevice] = {}
        self._events = EventEmitter(
            (DeviceConnected, DeviceDisconnected, DiscoveryError),
            isolate_listeners=settings.isolate_listeners,
        )
        self._watching = False

    def on(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._events.on(event_type, handler)

    def off(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._events.off(event_type, handler)

    def device_key(self, info: UsbDeviceInfo) -> str:
        # Two identical units share "vid:pid"; only the serial-aware key tells them apart.
        key = f"{info.vendor_id}:{info.product_id}"
        if self.usb_device_key == USB_KEY_SERIAL and info.serial_number:
            key = f"{key}:{info.serial_number}"
        return key

    def identify_device(self, info: UsbDeviceInfo) -> DiscoveredUSBDevice | None:
        identity = matching.identify_usb(info.vendor_id, info.product_id, registry=self.registry)
        if not identity.identified:
            return None
        return DiscoveredUSBDevice(
            info=info,
            classification=identity.classification,
            vendor=identity.vendor,
            product=identity.product,
            descriptor=identity.descriptor,
            chip=identity.chip,
        )

    def identify(self, vendor_id: int, product_id: int) -> DiscoveredUSBDevice | None:
        return self.identify_device(UsbDeviceInfo(vendor_id=vendor_id, product_id=product_id))

    async def scan(self) -> list[DiscoveredUSBDevice]:
        """Run one enumeration pass and return the identified devices."""
        if self.enumerator is None:
            return []
        try:
            infos = await self.enumerator.list_devices()
        except Exception as exc:
            LOGGER.warning("USB enumeration failed: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="scan"))
            return []

        discovered: list[DiscoveredUSBDevice] = []
        for info in infos:
            device = self.identify_device(info)
            if device is None:
                continue
            self._devices[self.device_key(info)] = device
            discovered.append(device)
        LOGGER.info("USB scan: %d of %d devices identified", len(discovered), len(infos))
        return discovered

    def _default_filters(self) -> list[tuple[int, int]]:
        catalog = load_catalog()
        return [
            (entry.vendor_id, entry.product_id)
            for entry in (*catalog.usb_hid_devices, *catalog.usb_direct_devices)
        ]

    async def request_device(
        self,
        vendor_id: int | None = None,
        product_id: int | None = None,
    ) -> DiscoveredUSBDevice | None:
        if self.enumerator is None:
            return None
        if vendor_id is not None and product_id is not None:
            filters = [(vendor_id, product_id)]
        else:
            filters = self._default_filters()

        try:
            info = await self.enumerator.request_device(filters)
        except Exception as exc:
            LOGGER.warning("USB device request failed: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="request_device"))
            return None
        if info is None:
            return None
        return self.identify_device(info)

    def handle_connect(self, info: UsbDeviceInfo) -> DiscoveredUSBDevice | None:
        device = self.identify_device(info)
        if device is None:
            return None
        self._devices[self.device_key(info)] = device
        LOGGER.info("USB device connected: %04x:%04x", info.vendor_id, info.product_id)
        self._events.emit(DeviceConnected(device=device))
        return device

    def handle_disconnect(self, info: UsbDeviceInfo) -> DiscoveredUSBDevice | None:
        device = self._devices.pop(self.device_key(info), None)
        if device is None:
            return None
        LOGGER.info("USB device disconnected: %04x:%04x", info.vendor_id, info.product_id)
        self._events.emit(DeviceDisconnected(device=device))
        return device

    def is_watching(self) -> bool:
        return self._watching

    async def start_watching(self) -> None:
        if self._watching:
            return
        self._watching = True
        if not isinstance(self.enumerator, HotplugSource):
            LOGGER.debug("USB enumerator has no hot-plug support; feed handle_connect() directly")
            return
        try:
            await self.enumerator.watch(self.handle_connect, self.handle_disconnect)
        except Exception as exc:
            LOGGER.warning("USB hot-plug watch failed: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="start_watching"))

    async def stop_watching(self) -> None:
        if not self._watching:
            return
        self._watching = False
        if not isinstance(self.enumerator, HotplugSource):
            return
        try:
            await self.enumerator.unwatch()
        except Exception as exc:
            LOGGER.warning("USB hot-plug unwatch failed: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="stop_watching"))

    async def list_serial_ports(self) -> list[SerialPortInfo]:
        if self.serial_enumerator is None:
            return []
        try:
            return await self.serial_enumerator.list_ports()
        except Exception as exc:
            LOGGER.warning("Serial port enumeration failed: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="list_serial_ports"))
            return []

    async def find_serial_port(self, vendor_id: int, product_id: int) -> str | None:
        for port in await self.list_serial_ports():
            if port.vendor_id == vendor_id and port.product_id == product_id:
                return port.path
        return None

    def get_devices(self) -> list[DiscoveredUSBDevice]:
        return list(self._devices.values())

    def get_dive_computers(self) -> list[DiscoveredUSBDevice]:
        """Devices resolved to a product; serial adapters are excluded."""
        return [device for device in self._devices.values() if device.vendor is not None]

    def clear_devices(self) -> None:
        self._devices.clear()
