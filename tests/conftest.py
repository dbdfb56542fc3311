"""Pytest configuration and fixtures."""

import pytest

from battery_monitor.core.provider import DeviceSource
from battery_monitor.core.types import (
    ConnectionMedium, ConnectionStatus, Device, DeviceCategory,
)


def make_device(device_id="dev-a", name="Test Mouse", battery=50, connected=True,
                category=DeviceCategory.MOUSE, medium=ConnectionMedium.BLUETOOTH):
    return Device(
        id=device_id,
        name=name,
        category=category,
        medium=medium,
        battery=battery,
        connection=ConnectionStatus.CONNECTED if connected else ConnectionStatus.DISCONNECTED,
    )


class FakeSource(DeviceSource):
    """Source returning scripted results; an Exception instance is raised instead."""

    def __init__(self, name="fake", results=None):
        self._name = name
        self.results = list(results or [])
        self.default = []
        self.calls = 0

    @property
    def name(self):
        return self._name

    def scan(self):
        self.calls += 1
        result = self.results.pop(0) if self.results else self.default
        if isinstance(result, Exception):
            raise result
        return [d.copy() for d in result]


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.error = None

    def notify(self, notification):
        if self.error is not None:
            raise self.error
        self.sent.append(notification)


@pytest.fixture
def device_factory():
    return make_device


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n")


@pytest.fixture
def sysfs(tmp_path):
    """Builder for a fake /sys tree under tmp_path."""

    class Sysfs:
        power_supply = tmp_path / "class" / "power_supply"
        usb_devices = tmp_path / "bus" / "usb" / "devices"

        def add_power_supply(self, name, **attrs):
            entry = self.power_supply / name
            entry.mkdir(parents=True, exist_ok=True)
            for key, value in attrs.items():
                _write(entry / key, str(value))
            return entry

        def add_usb_device(self, name, supplies=None, **attrs):
            entry = self.usb_devices / name
            entry.mkdir(parents=True, exist_ok=True)
            for key, value in attrs.items():
                _write(entry / key, str(value))
            for supply_name, capacity in (supplies or {}).items():
                _write(entry / "power" / supply_name / "capacity", str(capacity))
            return entry

    return Sysfs()
