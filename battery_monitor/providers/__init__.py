"""Device source implementations."""

from battery_monitor.providers.bluez import BluetoothSource
from battery_monitor.providers.sysfs import PeripheralSource

__all__ = ["BluetoothSource", "PeripheralSource"]
