"""
Snapshot of known devices and the diff against fresh observations.

Every udev event triggers a fresh device listing; the tracker compares it
against what it already knows and produces exactly one event per device
transition.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Generic, Iterable, Optional, TypeVar

from .models import ChangeType, DeviceChangeEvent

logger = logging.getLogger(__name__)

D = TypeVar("D")


def dedupe(devices: Iterable[D], key_func: Callable[[D], str]) -> dict[str, D]:
    """Index devices by key, keeping the first occurrence of each key."""
    indexed: dict[str, D] = {}
    for device in devices:
        key = key_func(device)
        if key not in indexed:
            indexed[key] = device
    return indexed


class DeviceTracker(Generic[D]):
    """Tracks the current device set and reports attach/detach transitions.

    Args:
        key_func: maps a device to the key that identifies it across listings
    """

    def __init__(self, key_func: Callable[[D], str]):
        self.key_func = key_func
        self._devices: dict[str, D] = {}
        self._lock = threading.Lock()

    def reset(self, devices: Iterable[D]) -> None:
        """Replace the snapshot without reporting anything."""
        with self._lock:
            self._devices = dedupe(devices, self.key_func)

    def clear(self) -> None:
        with self._lock:
            self._devices.clear()

    @property
    def devices(self) -> list[D]:
        with self._lock:
            return list(self._devices.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._devices

    def reconcile(self, observed: Iterable[D], action: Optional[str] = None) -> list[DeviceChangeEvent]:
        """Diff the observed devices against the snapshot.

        With action "add" only attaches are reported and applied, with
        "remove" only detaches; with None both.
        """
        fresh = dedupe(observed, self.key_func)
        events: list[DeviceChangeEvent] = []

        with self._lock:
            if action in (None, "add"):
                for key, device in fresh.items():
                    if key not in self._devices:
                        self._devices[key] = device
                        events.append(DeviceChangeEvent(type=ChangeType.ATTACH, device=device))

            if action in (None, "remove"):
                for key in [k for k in self._devices if k not in fresh]:
                    device = self._devices.pop(key)
                    events.append(DeviceChangeEvent(type=ChangeType.DETACH, device=device))

        if events:
            logger.debug(f"Reconciled {len(fresh)} observed devices: {len(events)} changes")

        return events
