"""Monitoring scheduler — drives the periodic scan → diff → dispatch cycle."""

import logging
import threading
import time
from enum import Enum
from typing import List, Optional

from battery_monitor.core.dispatcher import EventDispatcher
from battery_monitor.core.errors import SchedulerAlreadyRunningError, SchedulerStoppedError
from battery_monitor.core.registry import DeviceRegistry
from battery_monitor.core.scanner import AggregateScanner
from battery_monitor.core.types import DeviceEvent

log = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class MonitoringScheduler:
    """Runs scan cycles on a background thread at a fixed cadence.

    The first tick fires immediately. Ticks that are missed because a cycle
    overran are skipped, not replayed. Stopping is one-way: a stopped
    scheduler cannot be started again.
    """

    def __init__(self, scanner: AggregateScanner, registry: DeviceRegistry,
                 dispatcher: EventDispatcher):
        self._scanner = scanner
        self._registry = registry
        self._dispatcher = dispatcher

        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        # Serializes cycles between the loop thread and run_cycle() callers.
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._wake_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._interval: Optional[float] = None

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def interval(self) -> Optional[float]:
        return self._interval

    def start(self, interval: float) -> None:
        """Begin monitoring every ``interval`` seconds.

        Raises:
            SchedulerAlreadyRunningError: the loop is already running.
            SchedulerStoppedError: this instance was stopped.
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        with self._state_lock:
            if self._state is SchedulerState.RUNNING:
                raise SchedulerAlreadyRunningError()
            if self._state is SchedulerState.STOPPED:
                raise SchedulerStoppedError()
            self._state = SchedulerState.RUNNING
            self._interval = interval
            self._thread = threading.Thread(
                target=self._run, name="battery-monitor", daemon=True,
            )
            self._scanner.start_watching(self.request_scan)
            self._thread.start()

        log.info("Device monitoring started with interval %.1fs", interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the loop. Safe to call any number of times, from any thread."""
        with self._state_lock:
            if self._state is SchedulerState.STOPPED:
                return
            self._state = SchedulerState.STOPPED
            thread = self._thread

        self._stop_event.set()
        self._wake_event.set()
        self._scanner.stop_watching()

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                log.warning("Monitoring thread did not finish within %ss", timeout)
        log.info("Device monitoring stopped")

    def request_scan(self) -> None:
        """Pull the next tick forward, e.g. after a hotplug event."""
        self._wake_event.set()

    def run_cycle(self) -> List[DeviceEvent]:
        """Scan, reconcile and dispatch once. Returns the events dispatched.

        If a stop is requested while the scan is in flight its result is
        abandoned and nothing is dispatched.
        """
        with self._cycle_lock:
            devices = self._scanner.scan_all()
            if self._stop_event.is_set():
                log.debug("Stop requested during scan; discarding %d devices", len(devices))
                return []
            events = self._registry.diff(devices)
        self._dispatcher.dispatch(events)
        return events

    def _run(self) -> None:
        interval = self._interval
        deadline = time.monotonic()

        while not self._stop_event.is_set():
            try:
                self.run_cycle()
            except Exception:
                log.exception("Error during monitoring cycle")

            deadline = self._next_deadline(deadline, interval, time.monotonic())
            self._wake_event.wait(max(0.0, deadline - time.monotonic()))
            if self._wake_event.is_set() and not self._stop_event.is_set():
                # Woken early: restart the cadence from now.
                deadline = time.monotonic()
            self._wake_event.clear()

        log.debug("Monitoring loop exited")

    @staticmethod
    def _next_deadline(deadline: float, interval: float, now: float) -> float:
        deadline += interval
        if deadline <= now:
            missed = int((now - deadline) // interval) + 1
            log.debug("Skipping %d missed tick(s)", missed)
            deadline += missed * interval
        return deadline
