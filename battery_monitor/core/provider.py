"""Abstract base class for device sources."""

from abc import ABC, abstractmethod
from typing import Callable, List

from battery_monitor.core.types import Device


class DeviceSource(ABC):
    """An independent subsystem that can enumerate devices.

    Implementations:
    - BluetoothSource: BlueZ over the D-Bus system bus
    - PeripheralSource: /sys/class/power_supply and /sys/bus/usb/devices
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name (e.g., 'bluetooth')."""
        ...

    @abstractmethod
    def scan(self) -> List[Device]:
        """Return every device the source can currently see.

        Called once per tick by the AggregateScanner. Must not raise for
        unavailable backends or bad entries; return what could be read.
        """
        ...

    def supports_hotplug(self) -> bool:
        """Whether this source can emit hotplug callbacks."""
        return False

    def start_watching(self, on_change: Callable[[], None]) -> None:
        """Start monitoring for device add/remove events.

        Args:
            on_change: Callback when devices change. May be called from any thread.
        """
        pass

    def stop_watching(self) -> None:
        """Stop monitoring for device events."""
        pass

    def close(self) -> None:
        """Clean up resources."""
        pass
