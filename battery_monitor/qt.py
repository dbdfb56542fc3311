"""Qt bridge: re-emits device events as signals for a GUI layer.

Events are dispatched on the monitoring thread; connecting these signals to
slots on GUI objects gives queued, GUI-thread delivery.
"""

from PyQt5.QtCore import QObject, pyqtSignal

from battery_monitor.core.types import (
    BatteryChanged, DeviceAdded, DeviceEvent, DeviceRemoved, DeviceUpdated,
)


class DeviceEventBridge(QObject):
    """Dispatcher subscriber that turns events into Qt signals.

    Signals:
        device_added(Device): A new device was discovered.
        device_updated(Device): A tracked device changed.
        device_removed(str): A device disappeared (emits its id).
        battery_changed(str, int): New battery level for a device id.
    """

    device_added = pyqtSignal(object)
    device_updated = pyqtSignal(object)
    device_removed = pyqtSignal(str)
    battery_changed = pyqtSignal(str, int)

    def __call__(self, event: DeviceEvent) -> None:
        if isinstance(event, DeviceAdded):
            self.device_added.emit(event.device)
        elif isinstance(event, DeviceUpdated):
            self.device_updated.emit(event.device)
        elif isinstance(event, DeviceRemoved):
            self.device_removed.emit(event.device_id)
        elif isinstance(event, BatteryChanged):
            self.battery_changed.emit(event.device_id, event.level)
