"""Typed discovery events and the listener registry the engines share."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import ClassVar, TypeVar, Union

from divescan.core.model import DiscoveredDevice, DiscoveredUSBDevice

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceFound:
    name: ClassVar[str] = "deviceFound"
    device: DiscoveredDevice


@dataclass(frozen=True)
class DeviceConnected:
    name: ClassVar[str] = "deviceConnected"
    device: DiscoveredUSBDevice


@dataclass(frozen=True)
class DeviceDisconnected:
    name: ClassVar[str] = "deviceDisconnected"
    device: DiscoveredUSBDevice


@dataclass(frozen=True)
class ScanStarted:
    name: ClassVar[str] = "scanStarted"
    kind: str = "ble"


@dataclass(frozen=True)
class ScanStopped:
    name: ClassVar[str] = "scanStopped"
    reason: str = "requested"


@dataclass(frozen=True)
class DiscoveryError:
    """A platform failure caught at the engine boundary."""

    name: ClassVar[str] = "error"
    error: BaseException
    operation: str


DiscoveryEvent = Union[
    DeviceFound,
    DeviceConnected,
    DeviceDisconnected,
    ScanStarted,
    ScanStopped,
    DiscoveryError,
]

E = TypeVar("E", DeviceFound, DeviceConnected, DeviceDisconnected, ScanStarted, ScanStopped, DiscoveryError)


class EventEmitter:
    """Per-event-type listener lists, invoked synchronously in registration order.

    With ``isolate_listeners`` a raising listener is logged and the remaining
    listeners still run; without it the exception propagates to the emitter's
    caller and later listeners for that event are skipped.
    """

    def __init__(self, supported: Iterable[type], *, isolate_listeners: bool = True) -> None:
        self._handlers: dict[type, list[Callable]] = {event_type: [] for event_type in supported}
        self.isolate_listeners = isolate_listeners

    def _listeners(self, event_type: type) -> list[Callable]:
        try:
            return self._handlers[event_type]
        except KeyError:
            supported = ", ".join(sorted(t.__name__ for t in self._handlers))
            raise ValueError(
                f"Unsupported event type {event_type.__name__!r}. Supported: {supported}"
            ) from None

    def on(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        listeners = self._listeners(event_type)
        if handler not in listeners:
            listeners.append(handler)

    def off(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        listeners = self._listeners(event_type)
        if handler in listeners:
            listeners.remove(handler)

    def emit(self, event: DiscoveryEvent) -> None:
        for handler in list(self._listeners(type(event))):
            if not self.isolate_listeners:
                handler(event)
                continue
            try:
                handler(event)
            except Exception:
                LOGGER.exception("Listener %r failed while handling %s", handler, event.name)
