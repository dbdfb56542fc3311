"""sysfs peripheral source — power supplies and USB HID devices.

Two independent sub-scans:
- /sys/class/power_supply/*: anything the kernel reports as a "Battery"
- /sys/bus/usb/devices/*: USB devices whose device class is HID (0x03)
"""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from battery_monitor.core.types import (
    ConnectionMedium, Device, detect_category,
)
from battery_monitor.core.provider import DeviceSource

log = logging.getLogger(__name__)

POWER_SUPPLY_DIR = Path("/sys/class/power_supply")
USB_DEVICES_DIR = Path("/sys/bus/usb/devices")

_USB_CLASS_HID = 0x03

# Seconds to wait after a udev event before rescanning; sysfs attributes
# such as capacity appear some time after the add event.
HOTPLUG_DELAY = 2.0

# power_supply status values that mean the device is up and reporting.
_CONNECTED_STATUSES = ("Discharging", "Charging", "Full")


def _read_sysfs(path: Path) -> Optional[str]:
    """Read a sysfs attribute file, returning stripped content or None."""
    try:
        return path.read_text().strip()
    except (OSError, UnicodeDecodeError):
        return None


def _parse_capacity(text: Optional[str]) -> Optional[int]:
    """Lenient capacity parse: anything unusable means 'no battery value'."""
    if text is None:
        return None
    try:
        capacity = int(text)
    except ValueError:
        return None
    if not 0 <= capacity <= 100:
        return None
    return capacity


def _classify_medium(entry_name: str) -> ConnectionMedium:
    name = entry_name.lower()
    if "hid" in name or "usb" in name:
        return ConnectionMedium.USB
    if "wireless" in name or "2.4g" in name:
        return ConnectionMedium.WIRELESS_2_4G
    return ConnectionMedium.USB


class PeripheralSource(DeviceSource):
    """Device source reading kernel power-supply and USB enumeration from sysfs."""

    @property
    def name(self) -> str:
        return "peripherals"

    def __init__(self, power_supply_dir: Path = POWER_SUPPLY_DIR,
                 usb_devices_dir: Path = USB_DEVICES_DIR,
                 hotplug_delay: float = HOTPLUG_DELAY):
        self._power_supply_dir = Path(power_supply_dir)
        self._usb_devices_dir = Path(usb_devices_dir)
        self._hotplug_delay = hotplug_delay
        self._watch_callback: Optional[Callable[[], None]] = None
        self._watch_thread: Optional[threading.Thread] = None
        self._watching = False
        self._pending_wake: Optional[threading.Timer] = None
        self._wake_lock = threading.Lock()

    def scan(self) -> List[Device]:
        devices = []

        try:
            devices.extend(self.scan_power_supplies())
        except Exception as e:
            log.warning("Failed to scan power supply devices: %s", e)

        try:
            devices.extend(self.scan_usb_hid())
        except Exception as e:
            log.warning("Failed to scan USB HID devices: %s", e)

        log.debug("Found %d USB/power devices", len(devices))
        return devices

    # --- power_supply -------------------------------------------------------

    def scan_power_supplies(self) -> List[Device]:
        if not self._power_supply_dir.is_dir():
            return []

        results = []
        for entry in sorted(self._power_supply_dir.iterdir()):
            try:
                device = self._read_power_supply(entry)
            except Exception:
                log.debug("Skipping power supply %s", entry.name, exc_info=True)
                continue
            if device is not None:
                results.append(device)
        return results

    def _read_power_supply(self, ps_dir: Path) -> Optional[Device]:
        """Read one power_supply entry, returning a Device if it is a battery."""
        if _read_sysfs(ps_dir / "type") != "Battery":
            return None

        capacity = _parse_capacity(_read_sysfs(ps_dir / "capacity"))
        if capacity is None:
            # No usable level means nothing to monitor.
            return None

        status = _read_sysfs(ps_dir / "status") or "Unknown"
        entry_name = ps_dir.name
        display_name = _read_sysfs(ps_dir / "model_name") or entry_name

        device = Device(
            id=f"power_supply_{entry_name}",
            name=display_name,
            category=detect_category(display_name),
            medium=_classify_medium(entry_name),
        )
        device.update_battery(capacity)
        device.set_connected(status in _CONNECTED_STATUSES)
        return device

    # --- USB HID ------------------------------------------------------------

    def scan_usb_hid(self) -> List[Device]:
        if not self._usb_devices_dir.is_dir():
            return []

        results = []
        for entry in sorted(self._usb_devices_dir.iterdir()):
            try:
                device = self._read_usb_device(entry)
            except Exception:
                log.debug("Skipping USB device %s", entry.name, exc_info=True)
                continue
            if device is not None:
                results.append(device)
        return results

    def _read_usb_device(self, dev_dir: Path) -> Optional[Device]:
        product = _read_sysfs(dev_dir / "product")
        if product is None:
            return None

        class_str = _read_sysfs(dev_dir / "bDeviceClass")
        try:
            device_class = int(class_str, 16) if class_str else None
        except ValueError:
            device_class = None
        if device_class != _USB_CLASS_HID:
            return None

        manufacturer = _read_sysfs(dev_dir / "manufacturer") or ""
        display_name = f"{manufacturer} {product}" if manufacturer else product

        device = Device(
            id=f"usb_{dev_dir.name}",
            name=display_name,
            category=detect_category(display_name),
            medium=ConnectionMedium.USB,
        )
        device.set_connected(True)
        device.update_battery(self._read_usb_battery(dev_dir))
        return device

    @staticmethod
    def _read_usb_battery(dev_dir: Path) -> Optional[int]:
        """Capacity from the first power/supply* sub-entry that has a valid one."""
        power_dir = dev_dir / "power"
        if not power_dir.is_dir():
            return None
        try:
            entries = sorted(power_dir.iterdir())
        except OSError:
            return None
        for entry in entries:
            if not entry.name.startswith("supply"):
                continue
            capacity = _parse_capacity(_read_sysfs(entry / "capacity"))
            if capacity is not None:
                return capacity
        return None

    # --- hotplug ------------------------------------------------------------

    def supports_hotplug(self) -> bool:
        try:
            import pyudev  # noqa: F401
            return True
        except ImportError:
            return False

    def start_watching(self, on_change: Callable[[], None]) -> None:
        try:
            import pyudev
        except ImportError:
            return
        if self._watching:
            return

        self._watch_callback = on_change
        self._watching = True

        try:
            context = pyudev.Context()
            monitor = pyudev.Monitor.from_netlink(context)
            monitor.filter_by(subsystem="power_supply")
            monitor.filter_by(subsystem="usb")
            monitor.start()
        except Exception as e:
            log.debug("udev monitor unavailable: %s", e)
            self._watching = False
            self._watch_callback = None
            return

        def _watch():
            while self._watching:
                # Short poll timeout so stop_watching() takes effect promptly.
                device = monitor.poll(timeout=1.0)
                if device is None or not self._watching:
                    continue
                log.debug("udev %s event on %s", device.action, device.sys_name)
                self._schedule_wake()

        self._watch_thread = threading.Thread(target=_watch, name="udev-watch", daemon=True)
        self._watch_thread.start()

    def _schedule_wake(self) -> None:
        """(Re)arm the debounce timer; a burst of events yields one callback."""
        with self._wake_lock:
            if self._pending_wake is not None:
                self._pending_wake.cancel()
            timer = threading.Timer(self._hotplug_delay, self._fire_wake)
            timer.daemon = True
            self._pending_wake = timer
            timer.start()

    def _fire_wake(self) -> None:
        with self._wake_lock:
            if self._pending_wake is threading.current_thread():
                self._pending_wake = None
        callback = self._watch_callback
        if callback:
            callback()

    def stop_watching(self) -> None:
        self._watching = False
        self._watch_callback = None
        with self._wake_lock:
            if self._pending_wake is not None:
                self._pending_wake.cancel()
                self._pending_wake = None

    def close(self) -> None:
        self.stop_watching()
