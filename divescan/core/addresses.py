"""Bluetooth address parsing helpers."""

from __future__ import annotations

import re

_MAC_RE = re.compile(r"^(?:LE:)?((?:[0-9A-F]{2}:){5}[0-9A-F]{2})$", re.IGNORECASE)
_UUID_RE = re.compile(
    r"^\{?[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12}\}?$",
    re.IGNORECASE,
)
_NAME_ADDRESS_RE = re.compile(r"^(.+?)\s*\(([^)]+)\)$")


def parse_bluetooth_address(address: str) -> tuple[str, bool] | None:
    """Return ``(normalized_address, is_ble)`` or ``None`` if not an address.

    ``LE:``-prefixed MACs and macOS/iOS UUID identifiers are BLE.
    """
    text = address.strip()
    match = _MAC_RE.match(text)
    if match:
        return match.group(1).upper(), text[:3].upper() == "LE:"
    if _UUID_RE.match(text):
        return text.upper(), True
    return None


def is_bluetooth_address(address: str) -> bool:
    return parse_bluetooth_address(address) is not None


def is_ble_address(address: str) -> bool:
    return address.startswith("LE:") or bool(_UUID_RE.match(address))


def format_bluetooth_address(address: str) -> str:
    return address.removeprefix("LE:").upper()


def parse_bluetooth_name_address(text: str) -> tuple[str, str] | None:
    """Split ``"Name (AA:BB:CC:DD:EE:FF)"`` into ``(name, address)``.

    A bare address yields an empty name.
    """
    match = _NAME_ADDRESS_RE.match(text.strip())
    if match:
        parsed = parse_bluetooth_address(match.group(2))
        if parsed:
            return match.group(1).strip(), parsed[0]

    parsed = parse_bluetooth_address(text)
    if parsed:
        return "", parsed[0]
    return None
