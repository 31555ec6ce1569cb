"""hidapi-backed USB-HID enumeration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from divescan.core.errors import PlatformError, PlatformUnavailableError
from divescan.core.model import UsbDeviceInfo

LOGGER = logging.getLogger(__name__)


def _enumerate() -> list[dict[str, Any]]:
    try:
        import hid  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise PlatformUnavailableError(
            "HID enumeration requires 'hidapi'. Install dependency and retry."
        ) from exc
    return list(hid.enumerate())


def device_info_from_hid(entry: dict[str, Any]) -> UsbDeviceInfo:
    path = entry.get("path")
    if isinstance(path, bytes):
        path = path.decode(errors="replace")
    return UsbDeviceInfo(
        vendor_id=entry.get("vendor_id", 0),
        product_id=entry.get("product_id", 0),
        path=path,
        serial_number=entry.get("serial_number") or None,
        manufacturer=entry.get("manufacturer_string") or None,
        product_name=entry.get("product_string") or None,
    )


class HidapiEnumerator:
    async def list_devices(self) -> list[UsbDeviceInfo]:
        try:
            entries = await asyncio.to_thread(_enumerate)
        except PlatformUnavailableError:
            raise
        except Exception as exc:
            raise PlatformError(f"HID enumeration failed: {exc}") from exc

        # hidapi reports one entry per interface; keep the first per physical device.
        devices: list[UsbDeviceInfo] = []
        seen: set[tuple[int, int, str | None]] = set()
        for entry in entries:
            info = device_info_from_hid(entry)
            key = (info.vendor_id, info.product_id, info.serial_number)
            if key in seen:
                continue
            seen.add(key)
            devices.append(info)
        LOGGER.debug("Found %d HID devices", len(devices))
        return devices

    async def request_device(self, filters: Sequence[tuple[int, int]]) -> UsbDeviceInfo | None:
        wanted = set(filters)
        for info in await self.list_devices():
            if (info.vendor_id, info.product_id) in wanted:
                return info
        return None
