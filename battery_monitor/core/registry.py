"""Device registry — canonical device map and scan-pass reconciliation."""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Set

from battery_monitor.core.types import (
    BatteryChanged, Device, DeviceAdded, DeviceEvent, DeviceRemoved, DeviceUpdated,
)

log = logging.getLogger(__name__)


class DeviceRegistry:
    """Id-keyed map of the devices seen in the latest scan pass.

    All mutation goes through :meth:`diff`, which holds the lock only for the
    in-memory reconcile. Readers get copies, never the stored objects.
    """

    def __init__(self):
        self._devices: Dict[str, Device] = {}
        self._lock = threading.Lock()

    def diff(self, devices: Iterable[Device]) -> List[DeviceEvent]:
        """Reconcile a scan pass into the registry and return the resulting events.

        Per device, ``BatteryChanged`` always precedes ``DeviceUpdated``. An
        unchanged device produces no events. Afterwards the registry holds
        exactly the ids of ``devices``; if an id repeats, the last one wins.
        """
        incoming: Dict[str, Device] = {}
        for device in devices:
            incoming[device.id] = device.copy()

        events: List[DeviceEvent] = []
        with self._lock:
            for device_id, device in incoming.items():
                existing = self._devices.get(device_id)
                if existing is None:
                    self._devices[device_id] = device
                    events.append(DeviceAdded(device.copy()))
                elif existing != device:
                    if existing.battery != device.battery and device.battery is not None:
                        events.append(BatteryChanged(device_id, device.battery))
                    self._devices[device_id] = device
                    events.append(DeviceUpdated(device.copy()))

            for device_id in [k for k in self._devices if k not in incoming]:
                del self._devices[device_id]
                events.append(DeviceRemoved(device_id))

            assert self._devices.keys() == incoming.keys()

        if events:
            log.debug("Scan pass produced %d events", len(events))
        return events

    def snapshot(self) -> List[Device]:
        """Point-in-time copy of every tracked device."""
        with self._lock:
            return [device.copy() for device in self._devices.values()]

    def get(self, device_id: str) -> Optional[Device]:
        with self._lock:
            device = self._devices.get(device_id)
            return device.copy() if device is not None else None

    def ids(self) -> Set[str]:
        with self._lock:
            return set(self._devices)

    def clear(self) -> None:
        with self._lock:
            self._devices.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._devices)

    def __contains__(self, device_id: str) -> bool:
        with self._lock:
            return device_id in self._devices
