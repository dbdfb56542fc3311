"""Core abstractions for device discovery and battery monitoring."""

from battery_monitor.core.types import (
    DeviceCategory,
    ConnectionMedium,
    ConnectionStatus,
    Device,
    DeviceAdded,
    DeviceUpdated,
    DeviceRemoved,
    BatteryChanged,
    DeviceEvent,
    detect_category,
)
from battery_monitor.core.errors import (
    BatteryMonitorError,
    SchedulerError,
    SchedulerAlreadyRunningError,
    SchedulerStoppedError,
)
from battery_monitor.core.provider import DeviceSource
from battery_monitor.core.scanner import AggregateScanner
from battery_monitor.core.registry import DeviceRegistry
from battery_monitor.core.dispatcher import EventDispatcher
from battery_monitor.core.scheduler import MonitoringScheduler, SchedulerState

__all__ = [
    "DeviceCategory",
    "ConnectionMedium",
    "ConnectionStatus",
    "Device",
    "DeviceAdded",
    "DeviceUpdated",
    "DeviceRemoved",
    "BatteryChanged",
    "DeviceEvent",
    "detect_category",
    "BatteryMonitorError",
    "SchedulerError",
    "SchedulerAlreadyRunningError",
    "SchedulerStoppedError",
    "DeviceSource",
    "AggregateScanner",
    "DeviceRegistry",
    "EventDispatcher",
    "MonitoringScheduler",
    "SchedulerState",
]
