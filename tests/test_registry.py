"""Tests for registry reconciliation."""

from battery_monitor.core.registry import DeviceRegistry
from battery_monitor.core.types import (
    BatteryChanged, DeviceAdded, DeviceRemoved, DeviceUpdated,
)

from conftest import make_device


def _events_for(events, device_id):
    result = []
    for event in events:
        event_id = getattr(event, "device_id", None)
        if event_id is None:
            event_id = event.device.id
        if event_id == device_id:
            result.append(event)
    return result


class TestDiff:

    def test_new_device_added_once(self):
        registry = DeviceRegistry()
        events = registry.diff([make_device("a")])

        assert len(events) == 1
        assert isinstance(events[0], DeviceAdded)
        assert events[0].device.id == "a"
        assert registry.ids() == {"a"}

    def test_unchanged_device_emits_nothing(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", battery=50)])

        assert registry.diff([make_device("a", battery=50)]) == []

    def test_battery_drop_emits_battery_changed_then_updated(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", battery=30)])

        events = registry.diff([make_device("a", battery=15)])

        assert len(events) == 2
        assert events[0] == BatteryChanged("a", 15)
        assert isinstance(events[1], DeviceUpdated)
        assert events[1].device.battery == 15
        assert registry.get("a").battery == 15

    def test_battery_lost_emits_only_updated(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", battery=30)])

        events = registry.diff([make_device("a", battery=None)])

        assert len(events) == 1
        assert isinstance(events[0], DeviceUpdated)

    def test_connection_change_emits_updated(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", connected=True)])

        events = registry.diff([make_device("a", connected=False)])

        assert [type(e) for e in events] == [DeviceUpdated]
        assert not events[0].device.is_connected

    def test_absent_device_removed(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a"), make_device("b")])

        events = registry.diff([make_device("b")])

        assert events == [DeviceRemoved("a")]
        assert "a" not in registry
        assert registry.ids() == {"b"}

    def test_empty_pass_removes_everything(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a"), make_device("b")])

        events = registry.diff([])

        assert sorted(e.device_id for e in events) == ["a", "b"]
        assert len(registry) == 0

    def test_id_set_matches_each_pass(self):
        registry = DeviceRegistry()
        passes = [
            ["a", "b"],
            ["b", "c"],
            [],
            ["c", "d", "e"],
            ["e"],
        ]
        for ids in passes:
            registry.diff([make_device(i) for i in ids])
            assert registry.ids() == set(ids)

    def test_mixed_pass_per_device_ordering(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", battery=80), make_device("b")])

        events = registry.diff([make_device("a", battery=70), make_device("c")])

        a_events = _events_for(events, "a")
        assert a_events[0] == BatteryChanged("a", 70)
        assert isinstance(a_events[1], DeviceUpdated)
        assert [type(e) for e in _events_for(events, "c")] == [DeviceAdded]
        assert _events_for(events, "b") == [DeviceRemoved("b")]

    def test_duplicate_id_last_wins(self):
        registry = DeviceRegistry()
        events = registry.diff([make_device("a", battery=10), make_device("a", battery=20)])

        assert len(events) == 1
        assert registry.get("a").battery == 20


class TestSnapshot:

    def test_snapshot_returns_copies(self):
        registry = DeviceRegistry()
        registry.diff([make_device("a", battery=40)])

        snapshot = registry.snapshot()
        snapshot[0].update_battery(5)

        assert registry.get("a").battery == 40

    def test_event_devices_are_copies(self):
        registry = DeviceRegistry()
        events = registry.diff([make_device("a", battery=40)])

        events[0].device.update_battery(1)

        assert registry.get("a").battery == 40

    def test_input_devices_not_aliased(self):
        registry = DeviceRegistry()
        device = make_device("a", battery=40)
        registry.diff([device])

        device.update_battery(2)

        assert registry.get("a").battery == 40

    def test_get_unknown(self):
        assert DeviceRegistry().get("missing") is None
