"""Aggregate scanner — one scan pass across every registered source."""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Dict, List, Sequence

from battery_monitor.core.types import Device
from battery_monitor.core.provider import DeviceSource

log = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 10.0


class AggregateScanner:
    """Runs all sources and concatenates their devices.

    A source that raises or overruns ``source_timeout`` contributes nothing
    to the pass; the other sources are unaffected. With ``concurrent`` the
    sources run on a thread pool so a pass costs as long as the slowest one.
    A source whose previous scan is still running is not resubmitted and
    contributes nothing until that scan returns.
    """

    def __init__(self, sources: Sequence[DeviceSource], concurrent: bool = True,
                 source_timeout: float = DEFAULT_SOURCE_TIMEOUT):
        self._sources: List[DeviceSource] = list(sources)
        self._concurrent = concurrent and len(self._sources) > 1
        self._source_timeout = source_timeout
        self._executor = None
        self._pending: Dict[int, Future] = {}
        self._pending_lock = threading.Lock()
        if self._concurrent:
            self._executor = ThreadPoolExecutor(
                max_workers=len(self._sources), thread_name_prefix="scan",
            )

    @property
    def sources(self) -> List[DeviceSource]:
        return list(self._sources)

    def scan_all(self) -> List[Device]:
        if self._executor is not None:
            results = self._scan_concurrent()
        else:
            results = [self._scan_one(source) for source in self._sources]

        devices = [device for found in results for device in found]
        log.debug("Found %d devices total", len(devices))
        return devices

    def _scan_concurrent(self) -> List[List[Device]]:
        futures = []
        with self._pending_lock:
            for index, source in enumerate(self._sources):
                previous = self._pending.get(index)
                if previous is not None and not previous.done():
                    # One worker per source; a hung scan is not queued behind again.
                    log.warning("%s scan still running from an earlier pass; skipping",
                                source.name)
                    futures.append((source, None))
                    continue
                future = self._executor.submit(source.scan)
                self._pending[index] = future
                futures.append((source, future))

        deadline = time.monotonic() + self._source_timeout
        results = []
        for source, future in futures:
            if future is None:
                results.append([])
                continue
            remaining = max(0.0, deadline - time.monotonic())
            try:
                results.append(list(future.result(timeout=remaining)))
            except FutureTimeout:
                # The worker keeps running; its late result is discarded.
                log.warning("%s scan timed out after %.1fs", source.name, self._source_timeout)
                results.append([])
            except Exception:
                log.exception("%s scan failed", source.name)
                results.append([])
        return results

    @staticmethod
    def _scan_one(source: DeviceSource) -> List[Device]:
        try:
            return list(source.scan())
        except Exception:
            log.exception("%s scan failed", source.name)
            return []

    def start_watching(self, on_change: Callable[[], None]) -> None:
        for source in self._sources:
            if source.supports_hotplug():
                source.start_watching(on_change)

    def stop_watching(self) -> None:
        for source in self._sources:
            try:
                source.stop_watching()
            except Exception:
                log.debug("stop_watching failed for %s", source.name, exc_info=True)

    def close(self) -> None:
        """Stop watching and clean up all sources."""
        self.stop_watching()
        for source in self._sources:
            try:
                source.close()
            except Exception:
                log.debug("close failed for %s", source.name, exc_info=True)
        if self._executor is not None:
            self._executor.shutdown(wait=False)
