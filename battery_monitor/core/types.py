"""Core data types for the device discovery and battery monitoring pipeline."""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union


class DeviceCategory(Enum):
    """What kind of peripheral a device is."""
    MOUSE = "mouse"
    KEYBOARD = "keyboard"
    MOBILE = "mobile"
    BUDS = "buds"
    HEADPHONES = "headphones"
    TABLET = "tablet"
    UNKNOWN = "unknown"


class ConnectionMedium(Enum):
    """How the device reaches the host."""
    BLUETOOTH = "bluetooth"
    USB = "usb"
    WIRELESS_2_4G = "wireless-2.4g"


class ConnectionStatus(Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


# Bluetooth class-of-device codes that identify a category outright.
_CLASS_CATEGORIES = {
    0x002580: DeviceCategory.MOUSE,
    0x002540: DeviceCategory.KEYBOARD,
    0x240404: DeviceCategory.HEADPHONES,
}

# Checked in order; first substring hit wins.
_NAME_CATEGORIES = (
    (("mouse",), DeviceCategory.MOUSE),
    (("keyboard",), DeviceCategory.KEYBOARD),
    (("headphone", "headset"), DeviceCategory.HEADPHONES),
    (("buds", "airpods"), DeviceCategory.BUDS),
    (("phone", "mobile"), DeviceCategory.MOBILE),
    (("tablet", "ipad"), DeviceCategory.TABLET),
)


def detect_category(name: str, device_class: Optional[int] = None) -> DeviceCategory:
    """Guess a device category from its class code, falling back to its name."""
    if device_class is not None and device_class in _CLASS_CATEGORIES:
        return _CLASS_CATEGORIES[device_class]

    name_lower = name.lower()
    for keywords, category in _NAME_CATEGORIES:
        for kw in keywords:
            if kw in name_lower:
                return category
    return DeviceCategory.UNKNOWN


@dataclass
class Device:
    """A tracked peripheral.

    ``id`` comes from the source's own stable identifier (BlueZ object path,
    sysfs entry name) so the same physical device keeps its key across scans.
    ``last_seen`` is excluded from equality: two scans of an unchanged device
    compare equal even though they were taken at different times.
    """
    id: str
    name: str
    category: DeviceCategory = DeviceCategory.UNKNOWN
    medium: ConnectionMedium = ConnectionMedium.USB
    battery: Optional[int] = None
    connection: ConnectionStatus = ConnectionStatus.DISCONNECTED
    last_seen: float = field(default_factory=time.time, compare=False)

    def __post_init__(self):
        _check_battery(self.battery)

    @property
    def is_connected(self) -> bool:
        return self.connection is ConnectionStatus.CONNECTED

    def update_battery(self, level: Optional[int]) -> None:
        _check_battery(level)
        self.battery = level
        self.last_seen = time.time()

    def set_connected(self, connected: bool) -> None:
        self.connection = (
            ConnectionStatus.CONNECTED if connected else ConnectionStatus.DISCONNECTED
        )
        self.last_seen = time.time()

    def copy(self) -> "Device":
        return replace(self)


def _check_battery(level: Optional[int]) -> None:
    if level is not None and not 0 <= level <= 100:
        raise ValueError(f"battery level out of range: {level}")


# --- Events ---------------------------------------------------------------


@dataclass(frozen=True)
class DeviceAdded:
    device: Device


@dataclass(frozen=True)
class DeviceUpdated:
    device: Device


@dataclass(frozen=True)
class DeviceRemoved:
    device_id: str


@dataclass(frozen=True)
class BatteryChanged:
    device_id: str
    level: int


DeviceEvent = Union[DeviceAdded, DeviceUpdated, DeviceRemoved, BatteryChanged]
