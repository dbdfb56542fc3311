"""Tests for the BlueZ source against a fake D-Bus bus."""

from battery_monitor.core.types import ConnectionMedium, DeviceCategory
from battery_monitor.providers.bluez import BluetoothSource

DEVICE1 = "org.bluez.Device1"
BATTERY1 = "org.bluez.Battery1"


class FakeObject:
    def __init__(self, bus, path):
        self._bus = bus
        self._path = path

    def GetManagedObjects(self, dbus_interface=None, timeout=None):
        self._bus.calls.append(("GetManagedObjects", self._path, timeout))
        if self._bus.enumerate_error:
            raise self._bus.enumerate_error
        return self._bus.objects

    def Get(self, interface, prop, dbus_interface=None, timeout=None):
        self._bus.calls.append(("Get", self._path, interface, prop))
        try:
            return self._bus.properties[self._path][interface][prop]
        except KeyError:
            raise RuntimeError("org.freedesktop.DBus.Error.InvalidArgs")


class FakeBus:
    def __init__(self, objects=None, properties=None):
        self.objects = objects or {}
        self.properties = properties or {}
        self.enumerate_error = None
        self.calls = []

    def get_object(self, bus_name, path):
        assert bus_name == "org.bluez"
        return FakeObject(self, path)


def _device_path(n):
    return f"/org/bluez/hci0/dev_00_11_22_33_44_{n:02d}"


class TestBluetoothSource:

    def test_connected_device_with_battery_interface(self):
        path = _device_path(1)
        bus = FakeBus({
            "/org/bluez/hci0": {"org.bluez.Adapter1": {"Name": "hci0"}},
            path: {
                DEVICE1: {"Name": "MX Anywhere", "Connected": True, "Class": 0x002580,
                          "UUIDs": ["00001812-0000-1000-8000-00805f9b34fb"]},
                BATTERY1: {"Percentage": 77},
            },
        })

        devices = BluetoothSource(bus_factory=lambda: bus).scan()

        assert len(devices) == 1
        dev = devices[0]
        assert dev.id == path
        assert dev.name == "MX Anywhere"
        assert dev.battery == 77
        assert dev.is_connected
        assert dev.category is DeviceCategory.MOUSE
        assert dev.medium is ConnectionMedium.BLUETOOTH

    def test_battery_falls_back_to_properties_query(self):
        path = _device_path(2)
        bus = FakeBus(
            {path: {DEVICE1: {"Name": "AirPods Pro", "Connected": True}}},
            {path: {BATTERY1: {"Percentage": 42}}},
        )

        dev = BluetoothSource(bus_factory=lambda: bus).scan()[0]

        assert dev.battery == 42
        assert dev.category is DeviceCategory.BUDS

    def test_missing_battery_capability_is_not_an_error(self):
        path = _device_path(3)
        bus = FakeBus({path: {DEVICE1: {"Name": "Speaker", "Connected": True}}})

        dev = BluetoothSource(bus_factory=lambda: bus).scan()[0]

        assert dev.battery is None
        assert dev.is_connected

    def test_disconnected_device_not_queried_for_battery(self):
        path = _device_path(4)
        bus = FakeBus(
            {path: {DEVICE1: {"Name": "Phone", "Connected": False}}},
            {path: {BATTERY1: {"Percentage": 90}}},
        )

        dev = BluetoothSource(bus_factory=lambda: bus).scan()[0]

        assert dev.battery is None
        assert not dev.is_connected
        assert not any(call[0] == "Get" for call in bus.calls)

    def test_nameless_devices_skipped(self):
        bus = FakeBus({
            _device_path(5): {DEVICE1: {"Connected": True}},
            _device_path(6): {DEVICE1: {"Name": "", "Connected": True}},
            _device_path(7): {DEVICE1: {"Name": "Keyboard K380"}},
        })

        devices = BluetoothSource(bus_factory=lambda: bus).scan()

        assert [d.name for d in devices] == ["Keyboard K380"]

    def test_bad_item_skipped(self):
        bus = FakeBus({
            _device_path(8): {DEVICE1: {"Name": "Broken", "Class": "not-a-number"}},
            _device_path(9): {DEVICE1: {"Name": "Fine Mouse"}},
        })

        devices = BluetoothSource(bus_factory=lambda: bus).scan()

        assert [d.name for d in devices] == ["Fine Mouse"]

    def test_out_of_range_percentage_ignored(self):
        path = _device_path(10)
        bus = FakeBus({path: {
            DEVICE1: {"Name": "Odd Mouse", "Connected": True},
            BATTERY1: {"Percentage": 255},
        }})

        assert BluetoothSource(bus_factory=lambda: bus).scan()[0].battery is None

    def test_connection_failure_returns_empty(self):
        def factory():
            raise RuntimeError("no system bus")

        assert BluetoothSource(bus_factory=factory).scan() == []

    def test_enumeration_failure_returns_empty_and_reconnects(self):
        bus = FakeBus({_device_path(11): {DEVICE1: {"Name": "Mouse"}}})
        bus.enumerate_error = RuntimeError("org.freedesktop.DBus.Error.ServiceUnknown")
        created = []

        def factory():
            created.append(1)
            return bus

        source = BluetoothSource(bus_factory=factory)
        assert source.scan() == []

        bus.enumerate_error = None
        assert len(source.scan()) == 1
        assert len(created) == 2

    def test_connection_reused(self):
        bus = FakeBus({})
        created = []

        def factory():
            created.append(1)
            return bus

        source = BluetoothSource(bus_factory=factory)
        source.scan()
        source.scan()

        assert len(created) == 1

    def test_calls_are_time_bounded(self):
        bus = FakeBus({})
        BluetoothSource(bus_factory=lambda: bus, timeout=1.5).scan()

        assert bus.calls == [("GetManagedObjects", "/", 1.5)]
