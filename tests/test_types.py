"""Tests for the device model and category heuristic."""

import pytest

from battery_monitor.core.types import (
    ConnectionStatus, Device, DeviceCategory, detect_category,
)


class TestDetectCategory:

    @pytest.mark.parametrize("name, device_class, expected", [
        ("Logitech Mouse", 0x002580, DeviceCategory.MOUSE),
        ("Apple Magic Keyboard", 0x002540, DeviceCategory.KEYBOARD),
        ("Sony WH-1000XM4", 0x240404, DeviceCategory.HEADPHONES),
        ("AirPods Pro", None, DeviceCategory.BUDS),
        ("Galaxy Buds2", None, DeviceCategory.BUDS),
        ("iPhone 13", None, DeviceCategory.MOBILE),
        ("Pixel Mobile", None, DeviceCategory.MOBILE),
        ("Gaming Headset", None, DeviceCategory.HEADPHONES),
        ("iPad Air", None, DeviceCategory.TABLET),
        ("Unknown Device", None, DeviceCategory.UNKNOWN),
    ])
    def test_detection(self, name, device_class, expected):
        assert detect_category(name, device_class) is expected

    def test_class_code_beats_name(self):
        assert detect_category("Some Keyboard", 0x002580) is DeviceCategory.MOUSE

    def test_unmatched_class_falls_back_to_name(self):
        assert detect_category("MX Mouse", 0x000104) is DeviceCategory.MOUSE


class TestDevice:

    def test_battery_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            Device(id="x", name="X", battery=101)
        with pytest.raises(ValueError):
            Device(id="x", name="X", battery=-1)

    def test_equality_ignores_last_seen(self):
        a = Device(id="x", name="X", battery=40, last_seen=1.0)
        b = Device(id="x", name="X", battery=40, last_seen=2.0)
        assert a == b

    def test_mutators_refresh_last_seen(self):
        device = Device(id="x", name="X", last_seen=0.0)
        device.update_battery(30)
        assert device.battery == 30
        assert device.last_seen > 0.0

        device.last_seen = 0.0
        device.set_connected(True)
        assert device.connection is ConnectionStatus.CONNECTED
        assert device.last_seen > 0.0

    def test_update_battery_validates(self):
        device = Device(id="x", name="X")
        with pytest.raises(ValueError):
            device.update_battery(200)

    def test_copy_is_independent(self):
        device = Device(id="x", name="X", battery=10)
        clone = device.copy()
        clone.update_battery(90)
        assert device.battery == 10
