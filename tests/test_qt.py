"""Tests for the Qt signal bridge."""

import pytest

pytest.importorskip("PyQt5")

from battery_monitor.core.types import (  # noqa: E402
    BatteryChanged, DeviceAdded, DeviceRemoved, DeviceUpdated,
)
from battery_monitor.qt import DeviceEventBridge  # noqa: E402

from conftest import make_device  # noqa: E402


class TestDeviceEventBridge:

    def test_events_become_signals(self):
        bridge = DeviceEventBridge()
        received = []
        bridge.device_added.connect(lambda d: received.append(("added", d.id)))
        bridge.device_updated.connect(lambda d: received.append(("updated", d.id)))
        bridge.device_removed.connect(lambda i: received.append(("removed", i)))
        bridge.battery_changed.connect(lambda i, lvl: received.append(("battery", i, lvl)))

        bridge(DeviceAdded(make_device("a")))
        bridge(BatteryChanged("a", 12))
        bridge(DeviceUpdated(make_device("a", battery=12)))
        bridge(DeviceRemoved("a"))

        assert received == [
            ("added", "a"),
            ("battery", "a", 12),
            ("updated", "a"),
            ("removed", "a"),
        ]
