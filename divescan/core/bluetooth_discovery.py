"""Bluetooth / BLE discovery engine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from divescan.core import matching
from divescan.core.config import Settings
from divescan.core.events import (
    DeviceFound,
    DiscoveryError,
    E,
    EventEmitter,
    ScanStarted,
    ScanStopped,
)
from divescan.core.model import (
    BluetoothAdvertisement,
    DeviceDescriptor,
    DeviceMatch,
    DiscoveredDevice,
    NameMatch,
)
from divescan.core.registry import DescriptorRegistry, default_registry
from divescan.platforms.base import BluetoothScanner

LOGGER = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    SCANNING = "scanning"


class BluetoothDiscovery:
    """Tracks Bluetooth sightings and identifies dive computers among them.

    The device map survives ``stop_scan``/``start_scan`` cycles and is only
    emptied by :meth:`clear_devices`. Listeners subscribe by event class:
    ``DeviceFound``, ``ScanStarted``, ``ScanStopped`` and ``DiscoveryError``.
    """

    def __init__(
        self,
        *,
        scanner: BluetoothScanner | None = None,
        registry: DescriptorRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self.scanner = scanner
        self.registry = registry or default_registry()
        self._state = ScanState.IDLE
        self._devices: dict[str, DiscoveredDevice] = {}
        self._events = EventEmitter(
            (DeviceFound, ScanStarted, ScanStopped, DiscoveryError),
            isolate_listeners=settings.isolate_listeners,
        )
        self._scan_timeout = settings.scan_timeout
        self._timeout_handle: asyncio.TimerHandle | None = None
        self._timeout_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> ScanState:
        return self._state

    def is_scanning(self) -> bool:
        return self._state is ScanState.SCANNING

    @property
    def scan_timeout(self) -> float | None:
        """Seconds after which a scan stops itself; ``None`` disables the timer."""
        return self._scan_timeout

    @scan_timeout.setter
    def scan_timeout(self, seconds: float | None) -> None:
        if seconds is not None and seconds < 0:
            raise ValueError("scan_timeout must be >= 0")
        self._scan_timeout = seconds or None

    def on(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._events.on(event_type, handler)

    def off(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._events.off(event_type, handler)

    async def start_scan(self) -> None:
        if self._state is ScanState.SCANNING:
            return

        self._state = ScanState.SCANNING
        LOGGER.info("BLE scan started")
        self._events.emit(ScanStarted(kind="ble"))
        self._arm_timeout()

        if self.scanner is None:
            return
        try:
            await self.scanner.start(self.handle_ble_device)
        except Exception as exc:
            LOGGER.warning("BLE scanner failed to start: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="start_scan"))

    async def stop_scan(self, *, reason: str = "requested") -> None:
        if self._state is ScanState.IDLE:
            return

        self._state = ScanState.IDLE
        self._disarm_timeout()
        LOGGER.info("BLE scan stopped (%s)", reason)
        self._events.emit(ScanStopped(reason=reason))

        if self.scanner is None:
            return
        try:
            await self.scanner.stop()
        except Exception as exc:
            LOGGER.warning("BLE scanner failed to stop: %s", exc)
            self._events.emit(DiscoveryError(error=exc, operation="stop_scan"))

    def _arm_timeout(self) -> None:
        if not self._scan_timeout:
            return
        loop = asyncio.get_running_loop()
        self._timeout_handle = loop.call_later(self._scan_timeout, self._on_scan_timeout)

    def _disarm_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _on_scan_timeout(self) -> None:
        self._timeout_handle = None
        self._timeout_task = asyncio.ensure_future(self.stop_scan(reason="timeout"))

    def get_devices(self) -> list[DiscoveredDevice]:
        return list(self._devices.values())

    def get_dive_computers(self) -> list[DiscoveredDevice]:
        return [device for device in self._devices.values() if device.identified]

    def clear_devices(self) -> None:
        self._devices.clear()

    def _record(self, device: DiscoveredDevice) -> DiscoveredDevice:
        self._devices[device.address] = device
        LOGGER.debug("Sighting %s (%s) -> %s %s", device.address, device.name, device.vendor, device.product)
        self._events.emit(DeviceFound(device=device))
        return device

    def _descriptor_for(self, match: NameMatch | None) -> DeviceDescriptor | None:
        if match is None or not match.product:
            return None
        return self.registry.find_descriptor(match.vendor, match.product)

    def handle_ble_device(self, advertisement: BluetoothAdvertisement) -> DiscoveredDevice:
        existing = self._devices.get(advertisement.address)
        # Identity is resolved from the merged name: a packet without a name
        # keeps the identity learned from an earlier packet.
        name = advertisement.name if advertisement.name is not None else (existing.name if existing else None)
        rssi = advertisement.rssi if advertisement.rssi is not None else (existing.rssi if existing else None)

        match = None
        if name:
            match = matching.resolve_ble_name(name, registry=self.registry)
        if match is None and advertisement.service_ids:
            match = matching.resolve_service_ids(advertisement.service_ids)

        return self._record(
            DiscoveredDevice(
                address=advertisement.address,
                name=name,
                rssi=rssi,
                is_ble=True,
                service_ids=advertisement.service_ids,
                vendor=match.vendor if match else None,
                product=match.product if match else None,
                descriptor=self._descriptor_for(match),
            )
        )

    def handle_bluetooth_device(self, address: str, name: str | None = None) -> DiscoveredDevice:
        existing = self._devices.get(address)
        if name is None and existing is not None:
            name = existing.name

        match = matching.resolve_classic_name(name, registry=self.registry) if name else None
        return self._record(
            DiscoveredDevice(
                address=address,
                name=name,
                rssi=existing.rssi if existing else None,
                is_ble=False,
                vendor=match.vendor if match else None,
                product=match.product if match else None,
                descriptor=self._descriptor_for(match),
            )
        )

    def match_device_name(self, name: str) -> DeviceMatch | None:
        return matching.match_device_name(name, registry=self.registry)
