"""Application wiring — sources, registry, scheduler and notifications."""

import logging
from typing import List, Optional

from battery_monitor.config import Config
from battery_monitor.core.dispatcher import EventDispatcher, Subscriber
from battery_monitor.core.provider import DeviceSource
from battery_monitor.core.registry import DeviceRegistry
from battery_monitor.core.scanner import AggregateScanner
from battery_monitor.core.scheduler import MonitoringScheduler
from battery_monitor.core.types import Device, DeviceEvent
from battery_monitor.notifications import (
    DesktopNotifier, NotificationGate, NotificationPolicy,
)
from battery_monitor.providers.bluez import BluetoothSource
from battery_monitor.providers.sysfs import PeripheralSource

log = logging.getLogger(__name__)


def create_sources(config: Config) -> List[DeviceSource]:
    """Instantiate the sources enabled in the ``scanning`` section."""
    scanning = config.scanning
    sources: List[DeviceSource] = []
    if scanning.get("bluetooth", True):
        sources.append(BluetoothSource())
    if scanning.get("peripherals", True):
        sources.append(PeripheralSource())
    return sources


class BatteryMonitorApp:
    """Owns one monitoring pipeline.

    Sources feed the scanner, the scheduler reconciles scan passes into the
    registry and dispatches the events, and the notification policy is the
    first subscriber. One-shot callers pass ``notifications=False`` so a
    single status query never raises desktop notifications.
    """

    def __init__(self, config: Config, sources: Optional[List[DeviceSource]] = None,
                 notifier=None, notifications: bool = True):
        self._config = config
        settings = config.notifications
        scanning = config.scanning

        self.registry = DeviceRegistry()
        self.dispatcher = EventDispatcher()
        self.scanner = AggregateScanner(
            sources if sources is not None else create_sources(config),
            concurrent=scanning.get("concurrent", True),
            source_timeout=float(scanning.get("source_timeout_seconds", 10)),
        )
        self.gate = NotificationGate(
            notifier if notifier is not None else DesktopNotifier(),
            enabled=settings["enabled"],
            suppression_seconds=config.suppression_seconds,
            log_size=settings.get("log_size", 1000),
        )
        self.policy = NotificationPolicy(
            self.gate,
            self.registry.get,
            low_battery_threshold=settings["low_battery_threshold"],
            show_connect_disconnect=settings["show_connect_disconnect"],
        )
        if notifications:
            self.dispatcher.subscribe(self.policy)
        self.scheduler = self._new_scheduler()

        log.info("Battery Monitor application initialized with %d source(s)",
                 len(self.scanner.sources))

    @property
    def config(self) -> Config:
        return self._config

    def _new_scheduler(self) -> MonitoringScheduler:
        return MonitoringScheduler(self.scanner, self.registry, self.dispatcher)

    def subscribe(self, callback: Subscriber) -> None:
        self.dispatcher.subscribe(callback)

    def start(self) -> None:
        """Start periodic monitoring. Raises SchedulerError on misuse."""
        self.scheduler.start(self._config.polling_interval)

    def stop(self) -> None:
        self.scheduler.stop()

    def close(self) -> None:
        self.stop()
        self.scanner.close()

    @property
    def is_running(self) -> bool:
        return self.scheduler.is_running

    def refresh(self) -> List[DeviceEvent]:
        """Run one scan cycle now, outside the periodic schedule."""
        return self.scheduler.run_cycle()

    def devices(self) -> List[Device]:
        return self.registry.snapshot()

    def update_config(self, config: Config) -> None:
        """Apply new settings; a running scheduler is replaced if the interval changed."""
        old_interval = self._config.polling_interval
        self._config = config

        settings = config.notifications
        self.gate.enabled = settings["enabled"]
        self.gate.suppression_seconds = config.suppression_seconds
        self.policy.low_battery_threshold = settings["low_battery_threshold"]
        self.policy.show_connect_disconnect = settings["show_connect_disconnect"]

        if self.scheduler.is_running and config.polling_interval != old_interval:
            self.scheduler.stop()
            self.scheduler = self._new_scheduler()
            self.scheduler.start(config.polling_interval)

        log.info("Configuration updated")
