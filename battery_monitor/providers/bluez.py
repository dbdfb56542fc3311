"""BlueZ device source: paired Bluetooth devices and their batteries via D-Bus.

Uses the BlueZ object manager to enumerate org.bluez.Device1 objects and the
org.bluez.Battery1 interface (exposed by BlueZ for devices that report a
battery service) for the charge level.
"""

import logging
from typing import Callable, List, Optional

from battery_monitor.core.types import (
    ConnectionMedium, Device, detect_category,
)
from battery_monitor.core.provider import DeviceSource

log = logging.getLogger(__name__)

_BLUEZ_BUS = "org.bluez"
_BLUEZ_ROOT = "/"

_IFACE_OBJECT_MANAGER = "org.freedesktop.DBus.ObjectManager"
_IFACE_PROPS = "org.freedesktop.DBus.Properties"
_IFACE_DEVICE = "org.bluez.Device1"
_IFACE_BATTERY = "org.bluez.Battery1"

# Seconds; dbus-python's own default is 25s, far too long for a poll tick.
DEFAULT_CALL_TIMEOUT = 5.0


def _try_import_dbus():
    """Import dbus lazily so the module is loadable even without dbus-python."""
    try:
        import dbus
        return dbus
    except ImportError:
        return None


class BluetoothSource(DeviceSource):
    """Device source backed by the BlueZ daemon.

    Args:
        bus_factory: Callable returning a connected bus. Defaults to
            ``dbus.SystemBus``. The bus is created on first scan and reused.
        timeout: Per-call D-Bus timeout in seconds.
    """

    @property
    def name(self) -> str:
        return "bluetooth"

    def __init__(self, bus_factory: Optional[Callable[[], object]] = None,
                 timeout: float = DEFAULT_CALL_TIMEOUT):
        self._bus_factory = bus_factory
        self._timeout = timeout
        self._bus = None

    def _get_bus(self):
        if self._bus is None:
            factory = self._bus_factory
            if factory is None:
                dbus = _try_import_dbus()
                if dbus is None:
                    log.warning("dbus-python is not installed; Bluetooth scanning disabled")
                    return None
                factory = dbus.SystemBus
            try:
                self._bus = factory()
            except Exception as e:
                log.warning("Could not connect to system D-Bus: %s", e)
                return None
            log.info("Established D-Bus system connection for Bluetooth scanning")
        return self._bus

    def scan(self) -> List[Device]:
        bus = self._get_bus()
        if bus is None:
            return []

        try:
            manager = bus.get_object(_BLUEZ_BUS, _BLUEZ_ROOT)
            objects = manager.GetManagedObjects(
                dbus_interface=_IFACE_OBJECT_MANAGER, timeout=self._timeout,
            )
        except Exception as e:
            # Normal when bluetoothd is not running or there is no adapter.
            log.debug("BlueZ enumeration failed: %s", e)
            # Drop the connection; a dead bus would otherwise fail forever.
            self._bus = None
            return []

        results = []
        for path, interfaces in objects.items():
            device_props = interfaces.get(_IFACE_DEVICE)
            if device_props is None:
                continue
            try:
                device = self._read_device(bus, str(path), interfaces, device_props)
            except Exception:
                log.debug("Failed to read Bluetooth device %s", path, exc_info=True)
                continue
            if device is not None:
                results.append(device)

        log.debug("Found %d Bluetooth devices", len(results))
        return results

    def _read_device(self, bus, path: str, interfaces, props) -> Optional[Device]:
        """Build a Device from one object's Device1 properties, or None to skip it."""
        name = str(props.get("Name") or props.get("Alias") or "")
        if not name:
            return None

        connected = bool(props.get("Connected", False))
        device_class = props.get("Class")
        if device_class is not None:
            device_class = int(device_class)
        uuids = [str(u) for u in props.get("UUIDs", [])]

        battery = None
        if connected:
            battery = self._read_battery(bus, path, interfaces)
            if battery is not None:
                log.debug("Device %s has battery level: %d%%", name, battery)

        device = Device(
            id=path,
            name=name,
            category=detect_category(name, device_class),
            medium=ConnectionMedium.BLUETOOTH,
        )
        device.set_connected(connected)
        device.update_battery(battery)
        log.debug("Bluetooth device %s (%s) advertises %d services", name, path, len(uuids))
        return device

    def _read_battery(self, bus, path: str, interfaces) -> Optional[int]:
        battery_props = interfaces.get(_IFACE_BATTERY)
        if battery_props is not None and "Percentage" in battery_props:
            return _parse_percentage(battery_props["Percentage"])

        try:
            obj = bus.get_object(_BLUEZ_BUS, path)
            value = obj.Get(
                _IFACE_BATTERY, "Percentage",
                dbus_interface=_IFACE_PROPS, timeout=self._timeout,
            )
        except Exception:
            # Most devices have no battery service; not an error.
            return None
        return _parse_percentage(value)

    def close(self) -> None:
        self._bus = None


def _parse_percentage(value) -> Optional[int]:
    try:
        level = int(value)
    except (TypeError, ValueError):
        return None
    if not 0 <= level <= 100:
        log.debug("Ignoring out-of-range battery percentage %r", value)
        return None
    return level
