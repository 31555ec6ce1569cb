"""pyserial-backed serial port and USB-serial enumeration."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from divescan.core.errors import PlatformError, PlatformUnavailableError
from divescan.core.model import SerialPortInfo, UsbDeviceInfo

LOGGER = logging.getLogger(__name__)


def _comports() -> list[Any]:
    try:
        import serial.tools.list_ports  # type: ignore
    except Exception as exc:  # pragma: no cover - import failure path
        raise PlatformUnavailableError(
            "Serial enumeration requires 'pyserial'. Install dependency and retry."
        ) from exc
    return list(serial.tools.list_ports.comports())


class PySerialEnumerator:
    """Serial ports, and the USB ids of the adapters behind them."""

    async def _ports(self) -> list[Any]:
        try:
            return await asyncio.to_thread(_comports)
        except PlatformUnavailableError:
            raise
        except Exception as exc:
            raise PlatformError(f"Serial port enumeration failed: {exc}") from exc

    async def list_ports(self) -> list[SerialPortInfo]:
        ports = [
            SerialPortInfo(
                path=port.device,
                vendor_id=port.vid,
                product_id=port.pid,
                serial_number=port.serial_number,
                description=port.description,
            )
            for port in await self._ports()
        ]
        LOGGER.debug("Found %d serial ports", len(ports))
        return ports

    async def list_devices(self) -> list[UsbDeviceInfo]:
        return [
            UsbDeviceInfo(
                vendor_id=port.vid,
                product_id=port.pid,
                path=port.device,
                serial_number=port.serial_number,
                manufacturer=port.manufacturer,
                product_name=port.product,
            )
            for port in await self._ports()
            if port.vid is not None and port.pid is not None
        ]

    async def request_device(self, filters: Sequence[tuple[int, int]]) -> UsbDeviceInfo | None:
        wanted = set(filters)
        for info in await self.list_devices():
            if (info.vendor_id, info.product_id) in wanted:
                return info
        return None
