"""Desktop notifications with per-device suppression.

The NotificationGate decides whether a notification goes out; the
DesktopNotifier delivers it through ``notify-send``; the NotificationPolicy
turns registry events into notifications.
"""

import logging
import subprocess
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Optional, Set, Tuple

from battery_monitor.core.errors import NotifierError
from battery_monitor.core.types import (
    BatteryChanged, Device, DeviceAdded, DeviceCategory, DeviceEvent,
    DeviceRemoved, DeviceUpdated,
)

log = logging.getLogger(__name__)

APP_NAME = "Battery Monitor"
DEFAULT_SUPPRESSION_SECONDS = 300
DEFAULT_LOG_SIZE = 1000


class NotificationKind(Enum):
    LOW_BATTERY = "low-battery"
    DEVICE_CONNECTED = "device-connected"
    DEVICE_DISCONNECTED = "device-disconnected"


class NotificationClassification(Enum):
    """Suppression bucket; connect and disconnect share one."""
    LOW_BATTERY = "low-battery"
    CONNECTIVITY_CHANGE = "connectivity-change"


class NotificationOutcome(Enum):
    SENT = "sent"
    SUPPRESSED = "suppressed"
    DISABLED = "disabled"
    FAILED = "failed"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    device: Device
    threshold: Optional[int] = None

    @property
    def classification(self) -> NotificationClassification:
        if self.kind is NotificationKind.LOW_BATTERY:
            return NotificationClassification.LOW_BATTERY
        return NotificationClassification.CONNECTIVITY_CHANGE


@dataclass(frozen=True)
class NotificationRecord:
    timestamp: float
    classification: NotificationClassification
    sent: bool
    notification: Optional[Notification] = field(default=None, compare=False)


# --- Delivery -------------------------------------------------------------

_CATEGORY_ICONS = {
    DeviceCategory.MOUSE: "input-mouse",
    DeviceCategory.KEYBOARD: "input-keyboard",
    DeviceCategory.MOBILE: "phone",
    DeviceCategory.BUDS: "audio-headphones",
    DeviceCategory.HEADPHONES: "audio-headphones",
    DeviceCategory.TABLET: "computer-tablet",
    DeviceCategory.UNKNOWN: "battery",
}


def device_icon(category: DeviceCategory) -> str:
    return _CATEGORY_ICONS.get(category, "battery")


def format_notification(notification: Notification) -> Tuple[str, str, str, str]:
    """Return (summary, body, icon, urgency) for a notification."""
    device = notification.device
    icon = device_icon(device.category)

    if notification.kind is NotificationKind.LOW_BATTERY:
        level = f"{device.battery}%" if device.battery is not None else "Unknown"
        summary = f"Low Battery: {device.name}"
        body = f"Battery level is {level} (below {notification.threshold}% threshold)"
        return summary, body, icon, "normal"

    if notification.kind is NotificationKind.DEVICE_CONNECTED:
        return "Device Connected", f"{device.name} is now connected", icon, "low"
    return "Device Disconnected", f"{device.name} has been disconnected", icon, "low"


class DesktopNotifier:
    """Shows notifications with notify-send (libnotify)."""

    def __init__(self, app_name: str = APP_NAME, expire_ms: int = 5000,
                 timeout: float = 5.0):
        self._app_name = app_name
        self._expire_ms = expire_ms
        self._timeout = timeout

    def notify(self, notification: Notification) -> None:
        summary, body, icon, urgency = format_notification(notification)
        cmd = [
            "notify-send",
            "-a", self._app_name,
            "-u", urgency,
            "-i", icon,
            "-t", str(self._expire_ms),
            summary,
            body,
        ]
        try:
            result = subprocess.run(
                cmd, check=False, capture_output=True, timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise NotifierError("notify-send not available") from e
        except subprocess.TimeoutExpired as e:
            raise NotifierError(f"notify-send timed out after {self._timeout}s") from e

        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise NotifierError(f"notify-send exited with {result.returncode}: {stderr}")


# --- Gate -----------------------------------------------------------------


class NotificationGate:
    """Forwards notifications unless disabled or inside the suppression window.

    The window is tracked per (device id, classification) from the last
    notification that was actually sent. Every call lands in a bounded audit
    log, oldest entries evicted first.
    """

    def __init__(self, notifier, enabled: bool = True,
                 suppression_seconds: float = DEFAULT_SUPPRESSION_SECONDS,
                 log_size: int = DEFAULT_LOG_SIZE,
                 clock: Callable[[], float] = time.monotonic):
        self._notifier = notifier
        self._enabled = enabled
        self._suppression = suppression_seconds
        self._clock = clock
        self._last_sent: Dict[Tuple[str, NotificationClassification], float] = {}
        self._log: Deque[NotificationRecord] = deque(maxlen=log_size)
        self._in_flight: Set[Tuple[str, NotificationClassification]] = set()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value
        log.info("Notifications %s", "enabled" if value else "disabled")

    @property
    def suppression_seconds(self) -> float:
        return self._suppression

    @suppression_seconds.setter
    def suppression_seconds(self, seconds: float) -> None:
        self._suppression = seconds
        log.info("Notification suppression window set to %ss", seconds)

    def send(self, notification: Notification) -> NotificationOutcome:
        key = (notification.device.id, notification.classification)

        with self._lock:
            if not self._enabled:
                self._record(notification, sent=False)
                return NotificationOutcome.DISABLED

            now = self._clock()
            last = self._last_sent.get(key)
            if key in self._in_flight or (last is not None and now - last < self._suppression):
                self._record(notification, sent=False)
                log.debug("Suppressed %s notification for %s",
                          notification.classification.value, notification.device.id)
                return NotificationOutcome.SUPPRESSED
            self._in_flight.add(key)

        # notify-send can take seconds; the key stays reserved meanwhile.
        try:
            self._notifier.notify(notification)
        except NotifierError as e:
            with self._lock:
                self._in_flight.discard(key)
                self._record(notification, sent=False)
            log.error("Failed to send notification: %s", e)
            return NotificationOutcome.FAILED
        except Exception:
            with self._lock:
                self._in_flight.discard(key)
            raise

        with self._lock:
            self._in_flight.discard(key)
            self._last_sent[key] = now
            self._record(notification, sent=True)
        log.info("Sent %s notification for %s",
                 notification.kind.value, notification.device.name)
        return NotificationOutcome.SENT

    def _record(self, notification: Notification, sent: bool) -> None:
        self._log.append(NotificationRecord(
            timestamp=time.time(),
            classification=notification.classification,
            sent=sent,
            notification=notification,
        ))

    def records(self) -> List[NotificationRecord]:
        with self._lock:
            return list(self._log)

    def clear(self) -> None:
        """Forget the audit log and all suppression state."""
        with self._lock:
            self._log.clear()
            self._last_sent.clear()
        log.info("Notification log cleared")


# --- Policy ---------------------------------------------------------------


class NotificationPolicy:
    """Dispatcher subscriber mapping device events to gate calls.

    Args:
        gate: Where notifications go.
        lookup: Returns the current record for a device id (usually
            ``DeviceRegistry.get``); used to describe battery changes.
        low_battery_threshold: Levels at or below this raise a low-battery alert.
        show_connect_disconnect: Whether connectivity changes are announced.
    """

    def __init__(self, gate: NotificationGate,
                 lookup: Callable[[str], Optional[Device]],
                 low_battery_threshold: int = 20,
                 show_connect_disconnect: bool = True):
        self._gate = gate
        self._lookup = lookup
        self.low_battery_threshold = low_battery_threshold
        self.show_connect_disconnect = show_connect_disconnect
        # Last copy seen per id, so removed devices can still be named.
        self._known: Dict[str, Device] = {}

    def __call__(self, event: DeviceEvent) -> None:
        if isinstance(event, DeviceAdded):
            self._on_added(event.device)
        elif isinstance(event, DeviceUpdated):
            self._on_updated(event.device)
        elif isinstance(event, DeviceRemoved):
            self._on_removed(event.device_id)
        elif isinstance(event, BatteryChanged):
            self._on_battery_changed(event.device_id, event.level)

    def _on_added(self, device: Device) -> None:
        log.info("Device added: %s (%s)", device.name, device.id)
        self._known[device.id] = device
        if device.is_connected:
            self._connectivity(NotificationKind.DEVICE_CONNECTED, device)

    def _on_updated(self, device: Device) -> None:
        log.debug("Device updated: %s (%s)", device.name, device.id)
        previous = self._known.get(device.id)
        self._known[device.id] = device
        if previous is not None and previous.connection != device.connection:
            kind = (NotificationKind.DEVICE_CONNECTED if device.is_connected
                    else NotificationKind.DEVICE_DISCONNECTED)
            self._connectivity(kind, device)

    def _on_removed(self, device_id: str) -> None:
        log.info("Device removed: %s", device_id)
        device = self._known.pop(device_id, None)
        if device is not None:
            self._connectivity(NotificationKind.DEVICE_DISCONNECTED, device)

    def _on_battery_changed(self, device_id: str, level: int) -> None:
        log.debug("Battery changed for %s: %d%%", device_id, level)
        if level > self.low_battery_threshold:
            return
        device = self._lookup(device_id) or self._known.get(device_id)
        if device is None:
            return
        outcome = self._gate.send(Notification(
            NotificationKind.LOW_BATTERY, device, self.low_battery_threshold,
        ))
        log.debug("Low battery notification for %s: %s", device_id, outcome.value)

    def _connectivity(self, kind: NotificationKind, device: Device) -> None:
        if not self.show_connect_disconnect:
            return
        outcome = self._gate.send(Notification(kind, device))
        log.debug("%s notification for %s: %s", kind.value, device.id, outcome.value)
