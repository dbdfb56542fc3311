#!/usr/bin/env python3
"""Command-line interface for the Bluetooth/USB battery monitor."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from battery_monitor import __version__
from battery_monitor import config as config_mod
from battery_monitor.app import BatteryMonitorApp
from battery_monitor.config import Config, ConfigError
from battery_monitor.core.types import (
    Device, DeviceAdded, DeviceEvent, DeviceRemoved, DeviceUpdated,
)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


def _device_dict(dev: Device) -> dict:
    return {
        "id": dev.id,
        "name": dev.name,
        "category": dev.category.value,
        "medium": dev.medium.value,
        "battery_percent": dev.battery,
        "connected": dev.is_connected,
        "last_seen": dev.last_seen,
    }


def _battery_text(dev: Device) -> str:
    return f"{dev.battery}%" if dev.battery is not None else "N/A"


def _event_dict(event: DeviceEvent) -> dict:
    if isinstance(event, (DeviceAdded, DeviceUpdated)):
        kind = "added" if isinstance(event, DeviceAdded) else "updated"
        return {"event": kind, "device": _device_dict(event.device)}
    if isinstance(event, DeviceRemoved):
        return {"event": "removed", "id": event.device_id}
    return {"event": "battery", "id": event.device_id, "battery_percent": event.level}


def _event_text(event: DeviceEvent) -> str:
    if isinstance(event, DeviceAdded):
        return f"+ {event.device.name}: {_battery_text(event.device)}"
    if isinstance(event, DeviceUpdated):
        state = "" if event.device.is_connected else " (disconnected)"
        return f"~ {event.device.name}: {_battery_text(event.device)}{state}"
    if isinstance(event, DeviceRemoved):
        return f"- {event.device_id}"
    return f"  {event.device_id}: battery {event.level}%"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="battery-monitor",
        description="Battery Monitor — Bluetooth and USB peripheral battery levels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  %(prog)s              Show battery status for all devices
  %(prog)s --json       Output as JSON (for scripts/status bars)
  %(prog)s --list       List all detected devices with details
  %(prog)s --watch      Monitor continuously with desktop notifications
  %(prog)s --device ID  Filter to a specific device id
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--list", "-l", action="store_true", help="List all detected devices")
    parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    parser.add_argument("--watch", "-w", action="store_true",
                        help="Run the monitor until interrupted")
    parser.add_argument("--device", "-d", type=str, default=None,
                        help="Filter to a specific device id")
    parser.add_argument("--interval", "-i", type=int, default=None,
                        help="Polling interval in seconds (default: from config)")
    parser.add_argument("--config", type=Path, default=None, help="Use an alternate config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Only show warnings and errors")
    parser.add_argument("--show-config", action="store_true",
                        help="Show configuration file path and exit")
    parser.add_argument("--check-config", action="store_true",
                        help="Validate configuration file and exit")
    parser.add_argument("--print-default-config", action="store_true",
                        help="Print default configuration and exit")
    parser.add_argument("--reset-config", action="store_true",
                        help="Reset configuration to defaults")
    return parser


def _check_config(path: Path) -> int:
    if not path.exists():
        print(f"No config file at {path}; defaults will be used.")
        return 0
    try:
        with open(path, "r") as f:
            data = json.load(f)
        config_mod.validate_config(config_mod._deep_merge(config_mod.DEFAULTS, data))
    except (OSError, json.JSONDecodeError, ConfigError, AttributeError) as e:
        print(f"Invalid configuration in {path}: {e}")
        return 1
    print(f"Configuration at {path} is valid.")
    return 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose, args.quiet)

    config_path = args.config or config_mod.get_config_path()

    if args.show_config:
        print(config_path)
        return 0
    if args.print_default_config:
        print(json.dumps(config_mod.DEFAULTS, indent=2))
        return 0
    if args.check_config:
        return _check_config(config_path)
    if args.reset_config:
        if not config_mod.save_config(config_mod.DEFAULTS, config_path):
            return 1
        print(f"Configuration reset to defaults at {config_path}")
        return 0

    config = Config(path=config_path)
    if args.interval is not None:
        try:
            config["monitoring.polling_interval_seconds"] = args.interval
        except ConfigError as e:
            print(f"Error: {e}")
            return 2

    # Only the long-running monitor notifies; one-shot queries would re-announce
    # every device on each run.
    app = BatteryMonitorApp(config, notifications=args.watch)

    def get_devices():
        devices = app.devices()
        if args.device:
            devices = [d for d in devices if d.id == args.device]
        return sorted(devices, key=lambda d: d.name.lower())

    if args.list:
        app.refresh()
        devices = get_devices()
        app.close()
        if not devices:
            print("No devices found.")
            print("\nTroubleshooting:")
            print("  1. Make sure Bluetooth devices are paired and connected")
            print("  2. Check that bluetoothd is running (systemctl status bluetooth)")
            print("  3. For USB devices, make sure the receiver is plugged in")
            return 0

        print(f"Found {len(devices)} device(s):\n")
        for dev in devices:
            print(f"  {dev.name}")
            print(f"    Id:         {dev.id}")
            print(f"    Category:   {dev.category.value}")
            print(f"    Battery:    {_battery_text(dev)}")
            print(f"    Connection: {dev.connection.value} ({dev.medium.value})")
            print()
        return 0

    def print_status(devices):
        if args.json:
            result = [_device_dict(dev) for dev in devices]
            print(json.dumps(result))
        elif not devices:
            if args.device:
                print(f"Error: Device '{args.device}' not found.")
            else:
                print("Error: No devices found. Run with --list for troubleshooting.")
        else:
            for dev in devices:
                state = "" if dev.is_connected else " (disconnected)"
                print(f"{dev.name}: {_battery_text(dev)}{state}")
        return bool(devices)

    if args.watch:
        def on_event(event):
            if args.json:
                print(json.dumps(_event_dict(event)))
            else:
                print(_event_text(event))

        app.subscribe(on_event)
        print(f"Monitoring devices (every {config.polling_interval:.0f}s, Ctrl+C to stop)...\n")
        app.start()
        try:
            while app.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nStopped.")
        finally:
            app.close()
        return 0

    app.refresh()
    devices = get_devices()
    app.close()
    return 0 if print_status(devices) else 1


if __name__ == "__main__":
    sys.exit(main())
