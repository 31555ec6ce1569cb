"""bleak-backed BLE advertisement scanner."""

from __future__ import annotations

import logging
from typing import Any

from divescan.core.errors import PlatformError, PlatformUnavailableError
from divescan.core.model import BluetoothAdvertisement
from divescan.platforms.base import AdvertisementCallback

LOGGER = logging.getLogger(__name__)


def advertisement_from_bleak(device: Any, advertisement_data: Any) -> BluetoothAdvertisement:
    """Translate one bleak detection callback into a :class:`BluetoothAdvertisement`."""
    name = getattr(advertisement_data, "local_name", None) or getattr(device, "name", None)
    service_uuids = getattr(advertisement_data, "service_uuids", None)
    return BluetoothAdvertisement(
        address=device.address,
        name=name or None,
        rssi=getattr(advertisement_data, "rssi", None),
        service_ids=tuple(service_uuids) if service_uuids else None,
    )


class BleakBluetoothScanner:
    def __init__(self) -> None:
        self._scanner: Any = None

    async def start(self, callback: AdvertisementCallback) -> None:
        if self._scanner is not None:
            return
        try:
            from bleak import BleakScanner  # type: ignore
        except Exception as exc:  # pragma: no cover - import failure path
            raise PlatformUnavailableError(
                "BLE scanning requires 'bleak'. Install dependency and retry."
            ) from exc

        def _detection_callback(device: Any, advertisement_data: Any) -> None:
            callback(advertisement_from_bleak(device, advertisement_data))

        scanner = BleakScanner(detection_callback=_detection_callback)
        try:
            await scanner.start()
        except Exception as exc:
            raise PlatformError(f"BLE scanner failed to start: {exc}") from exc
        self._scanner = scanner
        LOGGER.debug("bleak scanner running")

    async def stop(self) -> None:
        scanner, self._scanner = self._scanner, None
        if scanner is None:
            return
        try:
            await scanner.stop()
        except Exception as exc:
            raise PlatformError(f"BLE scanner failed to stop: {exc}") from exc
