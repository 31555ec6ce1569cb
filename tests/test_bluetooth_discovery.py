from __future__ import annotations

import asyncio

import pytest

from divescan.core.bluetooth_discovery import BluetoothDiscovery, ScanState
from divescan.core.config import Settings
from divescan.core.events import DeviceFound, DiscoveryError, ScanStarted, ScanStopped
from divescan.core.model import BluetoothAdvertisement

SUUNTO_SERVICE = "98ae7120-e62e-11e3-badd-0002a5d5c51b"


class FakeScanner:
    def __init__(self, *, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.callback = None
        self.starts = 0
        self.stops = 0

    async def start(self, callback) -> None:
        self.starts += 1
        if self.fail_start:
            raise RuntimeError("adapter powered off")
        self.callback = callback

    async def stop(self) -> None:
        self.stops += 1


def _discovery(scanner: FakeScanner | None = None, **settings) -> BluetoothDiscovery:
    settings.setdefault("scan_timeout", None)
    return BluetoothDiscovery(scanner=scanner, settings=Settings(**settings))


def test_start_scan_is_idempotent() -> None:
    scanner = FakeScanner()
    discovery = _discovery(scanner)
    started: list[ScanStarted] = []
    discovery.on(ScanStarted, started.append)

    async def _run() -> None:
        await discovery.start_scan()
        await discovery.start_scan()

    asyncio.run(_run())
    assert discovery.state is ScanState.SCANNING
    assert discovery.is_scanning()
    assert len(started) == 1
    assert scanner.starts == 1


def test_stop_scan_when_idle_is_noop() -> None:
    scanner = FakeScanner()
    discovery = _discovery(scanner)
    stopped: list[ScanStopped] = []
    discovery.on(ScanStopped, stopped.append)

    asyncio.run(discovery.stop_scan())
    assert stopped == []
    assert scanner.stops == 0


def test_scan_lifecycle_delivers_advertisements() -> None:
    scanner = FakeScanner()
    discovery = _discovery(scanner)
    found: list[DeviceFound] = []
    stopped: list[ScanStopped] = []
    discovery.on(DeviceFound, found.append)
    discovery.on(ScanStopped, stopped.append)

    async def _run() -> None:
        await discovery.start_scan()
        scanner.callback(BluetoothAdvertisement(address="AA:00:00:00:00:01", name="EON Steel", rssi=-60))
        await discovery.stop_scan()

    asyncio.run(_run())
    assert [event.device.product for event in found] == ["EON Steel"]
    assert stopped == [ScanStopped(reason="requested")]
    assert scanner.stops == 1
    assert discovery.state is ScanState.IDLE


def test_ble_device_identified_by_name() -> None:
    discovery = _discovery()
    device = discovery.handle_ble_device(BluetoothAdvertisement(address="AA:00:00:00:00:01", name="G2 123456"))
    assert (device.vendor, device.product) == ("Scubapro", "G2")
    assert device.descriptor is not None
    assert device.identified
    assert discovery.get_dive_computers() == [device]


def test_ble_device_identified_by_service_when_name_unknown() -> None:
    discovery = _discovery()
    device = discovery.handle_ble_device(
        BluetoothAdvertisement(address="AA:00:00:00:00:02", name="XYZ", service_ids=(SUUNTO_SERVICE,))
    )
    assert device.vendor == "Suunto"
    assert device.product is None
    assert device.descriptor is None


def test_unidentified_device_is_tracked_but_not_a_dive_computer() -> None:
    discovery = _discovery()
    device = discovery.handle_ble_device(BluetoothAdvertisement(address="AA:00:00:00:00:03", name="Headphones"))
    assert not device.identified
    assert discovery.get_devices() == [device]
    assert discovery.get_dive_computers() == []


def test_repeat_advertisements_merge_latest_wins() -> None:
    discovery = _discovery()
    address = "AA:00:00:00:00:04"
    discovery.handle_ble_device(BluetoothAdvertisement(address=address, name="Perdix", rssi=-80))
    device = discovery.handle_ble_device(BluetoothAdvertisement(address=address, rssi=-50))

    assert len(discovery.get_devices()) == 1
    assert device.name == "Perdix"
    assert device.rssi == -50
    assert device.product == "Perdix"

    device = discovery.handle_ble_device(BluetoothAdvertisement(address=address, name="Perdix 2"))
    assert device.rssi == -50
    assert device.product == "Perdix 2"


def test_classic_device_identified_by_prefix() -> None:
    discovery = _discovery()
    device = discovery.handle_bluetooth_device("00:80:25:00:00:01", "OSTC 12345")
    assert device.vendor == "Heinrichs Weikamp"
    assert device.product is None
    assert device.is_ble is False


def test_device_map_survives_restart_and_clear_empties_it() -> None:
    scanner = FakeScanner()
    discovery = _discovery(scanner)

    async def _run() -> None:
        await discovery.start_scan()
        scanner.callback(BluetoothAdvertisement(address="AA:00:00:00:00:05", name="Teric"))
        await discovery.stop_scan()
        await discovery.start_scan()

    asyncio.run(_run())
    assert len(discovery.get_devices()) == 1

    discovery.clear_devices()
    assert discovery.get_devices() == []
    assert discovery.is_scanning()


def test_scan_timeout_stops_scan() -> None:
    scanner = FakeScanner()
    discovery = _discovery(scanner, scan_timeout=0.01)
    stopped: list[ScanStopped] = []
    discovery.on(ScanStopped, stopped.append)

    async def _run() -> None:
        await discovery.start_scan()
        await asyncio.sleep(0.1)

    asyncio.run(_run())
    assert stopped == [ScanStopped(reason="timeout")]
    assert discovery.state is ScanState.IDLE
    assert scanner.stops == 1


def test_scan_timeout_setter_validates() -> None:
    discovery = _discovery()
    discovery.scan_timeout = 0
    assert discovery.scan_timeout is None
    with pytest.raises(ValueError):
        discovery.scan_timeout = -1


def test_scanner_failure_becomes_error_event() -> None:
    discovery = _discovery(FakeScanner(fail_start=True))
    errors: list[DiscoveryError] = []
    discovery.on(DiscoveryError, errors.append)

    asyncio.run(discovery.start_scan())
    assert len(errors) == 1
    assert errors[0].operation == "start_scan"
    assert "adapter powered off" in str(errors[0].error)


def test_listener_failure_is_isolated() -> None:
    discovery = _discovery(isolate_listeners=True)
    seen: list[DeviceFound] = []

    def _broken(_event: DeviceFound) -> None:
        raise RuntimeError("listener bug")

    discovery.on(DeviceFound, _broken)
    discovery.on(DeviceFound, seen.append)
    discovery.handle_ble_device(BluetoothAdvertisement(address="AA:00:00:00:00:06", name="Tern"))
    assert len(seen) == 1
    assert len(discovery.get_devices()) == 1


def test_match_device_name() -> None:
    match = _discovery().match_device_name("EON Core")
    assert match is not None
    assert (match.vendor, match.product) == ("Suunto", "EON Core")
