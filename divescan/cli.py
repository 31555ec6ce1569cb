"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

import typer

from divescan.core.bluetooth_discovery import BluetoothDiscovery
from divescan.core.config import DEFAULT_SCAN_TIMEOUT_S, Settings, load_settings
from divescan.core.errors import DivescanError
from divescan.core.events import DiscoveryError, ScanStopped
from divescan.core.matching import match_device_name, serial_bridge_chip
from divescan.core.model import DiscoveredDevice, DiscoveredUSBDevice, UsbClassification
from divescan.core.registry import default_registry, describe_transports
from divescan.core.usb_discovery import USBDiscovery
from divescan.platforms.base import ChainedUSBEnumerator, SerialPortEnumerator, USBEnumerator
from divescan.platforms.bleak_scanner import BleakBluetoothScanner
from divescan.platforms.hid_devices import HidapiEnumerator
from divescan.platforms.serial_ports import PySerialEnumerator

app = typer.Typer(help="Identify and discover dive computers over USB, serial and Bluetooth")

_CLASSIFICATION_LABELS = {
    UsbClassification.SERIAL_ADAPTER: "serial adapter",
    UsbClassification.USB_HID: "USB-HID",
    UsbClassification.USB_DIRECT: "USB",
}


def _ble_scanner() -> BleakBluetoothScanner:
    return BleakBluetoothScanner()


def _usb_enumerator() -> USBEnumerator:
    return ChainedUSBEnumerator([HidapiEnumerator(), PySerialEnumerator()])


def _serial_enumerator() -> SerialPortEnumerator:
    return PySerialEnumerator()


def _settings(ctx: typer.Context) -> Settings:
    return ctx.obj if isinstance(ctx.obj, Settings) else Settings()


def _parse_usb_id(value: str, label: str) -> int:
    try:
        parsed = int(value, 0)
    except ValueError:
        raise typer.BadParameter(f"{label} must be a decimal or 0x-prefixed hex number") from None
    if not 0 <= parsed <= 0xFFFF:
        raise typer.BadParameter(f"{label} must be between 0 and 0xFFFF")
    return parsed


def _describe_usb(device: DiscoveredUSBDevice) -> str:
    ids = f"{device.vendor_id:04x}:{device.product_id:04x}"
    label = _CLASSIFICATION_LABELS.get(device.classification, "unidentified")
    if device.is_serial_adapter:
        return f"{ids} {label} ({device.chip})"
    return f"{ids} {device.vendor} {device.product} ({label})"


def _describe_ble(device: DiscoveredDevice) -> str:
    name = device.name or "<unnamed>"
    if device.vendor is None:
        return f"{device.address} {name} -> <no-match>"
    product = device.product or "<unknown model>"
    rssi = f" rssi={device.rssi}" if device.rssi is not None else ""
    return f"{device.address} {name} -> {device.vendor} {product}{rssi}"


def _warn_errors(errors: list[DiscoveryError]) -> None:
    for event in errors:
        typer.echo(f"Warning: {event.operation}: {event.error}", err=True)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING or ERROR"),
) -> None:
    try:
        settings = load_settings()
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    level_name = (log_level or settings.log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        raise typer.BadParameter(f"Unknown log level '{log_level}'", param_hint="--log-level")
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = settings


@app.command("vendors")
def list_vendors() -> None:
    """List every vendor in the catalog."""
    try:
        for vendor in default_registry().vendors():
            typer.echo(vendor)
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("products")
def list_products(vendor: str) -> None:
    """List the products of VENDOR."""
    try:
        products = default_registry().products(vendor)
        if not products:
            typer.echo(f"No products for vendor '{vendor}'")
            raise typer.Exit(code=1)
        for product in products:
            typer.echo(product)
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("show")
def show_descriptor(vendor: str, product: str) -> None:
    """Show the catalog entry for VENDOR PRODUCT."""
    try:
        descriptor = default_registry().find_descriptor(vendor, product)
        if descriptor is None:
            typer.echo(f"Error: no descriptor for '{vendor} {product}'", err=True)
            raise typer.Exit(code=1)
        typer.echo(f"{descriptor.vendor} {descriptor.product}")
        typer.echo(f"  family: {descriptor.family.name}")
        typer.echo(f"  model: 0x{descriptor.model:02x}")
        typer.echo(f"  transports: {describe_transports(descriptor.transports)}")
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("match")
def match_name(name: str) -> None:
    """Resolve an advertised Bluetooth NAME to a vendor and product."""
    try:
        match = match_device_name(name)
        if match is None:
            typer.echo(f"No match for '{name}'")
            raise typer.Exit(code=1)
        typer.echo(f"{match.vendor} {match.product or '<unknown model>'}")
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("identify")
def identify_usb_ids(
    ctx: typer.Context,
    vid: str = typer.Argument(..., help="USB vendor id, e.g. 0x1493"),
    pid: str = typer.Argument(..., help="USB product id, e.g. 0x0030"),
) -> None:
    """Identify a USB VID PID pair."""
    vendor_id = _parse_usb_id(vid, "VID")
    product_id = _parse_usb_id(pid, "PID")
    try:
        device = USBDiscovery(settings=_settings(ctx)).identify(vendor_id, product_id)
        if device is None:
            typer.echo(f"No match for {vendor_id:04x}:{product_id:04x}")
            raise typer.Exit(code=1)
        typer.echo(_describe_usb(device))
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


async def _scan_ble(
    settings: Settings,
) -> tuple[list[DiscoveredDevice], list[DiscoveryError]]:
    discovery = BluetoothDiscovery(scanner=_ble_scanner(), settings=settings)
    stopped = asyncio.Event()
    errors: list[DiscoveryError] = []
    discovery.on(ScanStopped, lambda _event: stopped.set())
    discovery.on(DiscoveryError, errors.append)

    await discovery.start_scan()
    if errors:
        await discovery.stop_scan(reason="error")
    else:
        await stopped.wait()
    return discovery.get_devices(), errors


@app.command("scan-ble")
def scan_ble(
    ctx: typer.Context,
    timeout: float | None = typer.Option(None, "--timeout", min=0.01, help="Scan duration in seconds"),
    show_all: bool = typer.Option(False, "--all", help="Also list devices that are not dive computers"),
) -> None:
    """Scan for BLE advertisements and list recognised dive computers."""
    settings = _settings(ctx)
    duration = timeout or settings.scan_timeout or DEFAULT_SCAN_TIMEOUT_S
    try:
        devices, errors = asyncio.run(_scan_ble(replace(settings, scan_timeout=duration)))
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    if errors:
        typer.echo(f"Error: {errors[0].error}", err=True)
        raise typer.Exit(code=1)

    shown = [d for d in devices if show_all or d.identified]
    if not shown:
        typer.echo("No dive computers found")
        return
    for device in shown:
        typer.echo(_describe_ble(device))


async def _scan_usb(settings: Settings) -> tuple[list[DiscoveredUSBDevice], list[DiscoveryError]]:
    discovery = USBDiscovery(enumerator=_usb_enumerator(), settings=settings)
    errors: list[DiscoveryError] = []
    discovery.on(DiscoveryError, errors.append)
    devices = await discovery.scan()
    return devices, errors


@app.command("scan-usb")
def scan_usb(ctx: typer.Context) -> None:
    """Enumerate attached USB devices and list recognised dive computers and serial adapters."""
    try:
        devices, errors = asyncio.run(_scan_usb(_settings(ctx)))
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    _warn_errors(errors)
    if not devices:
        typer.echo("No dive computers found")
        return
    for device in devices:
        typer.echo(_describe_usb(device))


@app.command("serial-ports")
def serial_ports(ctx: typer.Context) -> None:
    """List serial ports, marking known USB-serial bridge chips."""
    discovery = USBDiscovery(serial_enumerator=_serial_enumerator(), settings=_settings(ctx))
    errors: list[DiscoveryError] = []
    discovery.on(DiscoveryError, errors.append)
    try:
        ports = asyncio.run(discovery.list_serial_ports())
    except DivescanError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None

    _warn_errors(errors)
    if not ports:
        typer.echo("No serial ports found")
        return
    for port in ports:
        line = port.path
        if port.vendor_id is not None and port.product_id is not None:
            line += f" {port.vendor_id:04x}:{port.product_id:04x}"
            chip = serial_bridge_chip(port.vendor_id, port.product_id)
            if chip:
                line += f" [{chip}]"
        if port.description:
            line += f" {port.description}"
        typer.echo(line)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
