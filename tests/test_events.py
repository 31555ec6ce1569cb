from __future__ import annotations

import logging

import pytest

from divescan.core.events import DeviceFound, EventEmitter, ScanStarted, ScanStopped
from divescan.core.model import DiscoveredDevice


def _found() -> DeviceFound:
    return DeviceFound(device=DiscoveredDevice(address="AA:BB:CC:DD:EE:FF", name="EON Steel"))


def test_handlers_run_in_registration_order() -> None:
    emitter = EventEmitter((DeviceFound,))
    calls: list[str] = []
    emitter.on(DeviceFound, lambda _event: calls.append("first"))
    emitter.on(DeviceFound, lambda _event: calls.append("second"))
    emitter.emit(_found())
    assert calls == ["first", "second"]


def test_duplicate_registration_is_ignored_and_off_removes() -> None:
    emitter = EventEmitter((ScanStarted,))
    seen: list[ScanStarted] = []
    emitter.on(ScanStarted, seen.append)
    emitter.on(ScanStarted, seen.append)
    emitter.emit(ScanStarted())
    assert len(seen) == 1

    emitter.off(ScanStarted, seen.append)
    emitter.emit(ScanStarted())
    assert len(seen) == 1


def test_unsupported_event_type_rejected() -> None:
    emitter = EventEmitter((ScanStarted,))
    with pytest.raises(ValueError, match="Unsupported event type 'ScanStopped'"):
        emitter.on(ScanStopped, lambda _event: None)


def test_isolated_listener_failure_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    emitter = EventEmitter((DeviceFound,), isolate_listeners=True)
    calls: list[str] = []

    def _broken(_event: DeviceFound) -> None:
        raise RuntimeError("boom")

    emitter.on(DeviceFound, _broken)
    emitter.on(DeviceFound, lambda _event: calls.append("ok"))
    with caplog.at_level(logging.ERROR):
        emitter.emit(_found())

    assert calls == ["ok"]
    assert "deviceFound" in caplog.text


def test_unisolated_listener_failure_propagates() -> None:
    emitter = EventEmitter((DeviceFound,), isolate_listeners=False)
    calls: list[str] = []

    def _broken(_event: DeviceFound) -> None:
        raise RuntimeError("boom")

    emitter.on(DeviceFound, _broken)
    emitter.on(DeviceFound, lambda _event: calls.append("ok"))
    with pytest.raises(RuntimeError, match="boom"):
        emitter.emit(_found())
    assert calls == []
