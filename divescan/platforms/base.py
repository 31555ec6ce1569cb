"""Platform interfaces consumed by the discovery engines."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

from divescan.core.model import BluetoothAdvertisement, SerialPortInfo, UsbDeviceInfo

LOGGER = logging.getLogger(__name__)

AdvertisementCallback = Callable[[BluetoothAdvertisement], object]
UsbCallback = Callable[[UsbDeviceInfo], object]


class BluetoothScanner(Protocol):
    async def start(self, callback: AdvertisementCallback) -> None:
        """Begin delivering advertisements to ``callback`` until :meth:`stop`."""

    async def stop(self) -> None:
        """Stop delivering advertisements."""


class USBEnumerator(Protocol):
    async def list_devices(self) -> list[UsbDeviceInfo]:
        """Enumerate currently attached USB devices."""

    async def request_device(self, filters: Sequence[tuple[int, int]]) -> UsbDeviceInfo | None:
        """Return one attached device matching any ``(vendor_id, product_id)`` filter."""


@runtime_checkable
class HotplugSource(Protocol):
    async def watch(self, on_connect: UsbCallback, on_disconnect: UsbCallback) -> None:
        """Deliver connect/disconnect notifications until :meth:`unwatch`."""

    async def unwatch(self) -> None:
        """Stop delivering hot-plug notifications."""


class SerialPortEnumerator(Protocol):
    async def list_ports(self) -> list[SerialPortInfo]:
        """Enumerate serial-capable ports."""


class ChainedUSBEnumerator:
    """Concatenate several enumerators, dropping repeated devices.

    A failing backend is logged and skipped; the chain raises only when every
    backend failed, re-raising the first failure.
    """

    def __init__(self, enumerators: Sequence[USBEnumerator]) -> None:
        self.enumerators = tuple(enumerators)

    async def list_devices(self) -> list[UsbDeviceInfo]:
        seen: set[tuple[int, int, str | None, str | None]] = set()
        devices: list[UsbDeviceInfo] = []
        failures: list[Exception] = []
        for enumerator in self.enumerators:
            try:
                infos = await enumerator.list_devices()
            except Exception as exc:
                LOGGER.warning("USB backend %s failed: %s", type(enumerator).__name__, exc)
                failures.append(exc)
                continue
            for info in infos:
                key = (info.vendor_id, info.product_id, info.serial_number, info.path)
                if key in seen:
                    continue
                seen.add(key)
                devices.append(info)

        if failures and len(failures) == len(self.enumerators):
            raise failures[0]
        return devices

    async def request_device(self, filters: Sequence[tuple[int, int]]) -> UsbDeviceInfo | None:
        failures: list[Exception] = []
        for enumerator in self.enumerators:
            try:
                device = await enumerator.request_device(filters)
            except Exception as exc:
                LOGGER.warning("USB backend %s failed: %s", type(enumerator).__name__, exc)
                failures.append(exc)
                continue
            if device is not None:
                return device

        if failures and len(failures) == len(self.enumerators):
            raise failures[0]
        return None
