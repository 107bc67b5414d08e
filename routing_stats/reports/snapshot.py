#!/usr/bin/env python3
"""
Snapshot publication for the long-running daemon

The SnapshotHolder owns the currently published Dataset. A reload builds a
complete new Dataset without touching the published one and then swaps the
reference under a lock. Readers take one Snapshot per request and never see
a half-built dataset.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from routing_stats.reports.dataset import Dataset
from routing_stats.reports.service import ReportService
from routing_stats.utils.error_handling import SnapshotUnavailable
from routing_stats.utils.logging import get_logger

logger = get_logger('routing-stats.snapshot')

DatasetLoader = Callable[[], Dataset]


@dataclass(frozen=True)
class Snapshot:
    """A published dataset with its version number"""
    dataset: Dataset
    version: int
    published_at: datetime
    service: ReportService

    def to_dict(self) -> dict:
        result = self.dataset.summary()
        result['version'] = self.version
        result['published_at'] = self.published_at.isoformat()
        return result


class SnapshotHolder:
    """Versioned reference to the current Dataset"""

    def __init__(self, loader: Optional[DatasetLoader] = None):
        self.loader = loader
        self._lock = threading.Lock()
        self._reload_lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._version = 0
        self._stop_event = threading.Event()
        self._reload_thread: Optional[threading.Thread] = None

    def publish(self, dataset: Dataset) -> Snapshot:
        """Make dataset the current snapshot and return it"""
        service = ReportService(dataset)
        with self._lock:
            self._version += 1
            snapshot = Snapshot(dataset, self._version, datetime.now(timezone.utc), service)
            self._snapshot = snapshot
        logger.bind(snapshot_version=snapshot.version).info(
            "Published snapshot", extra={"records": len(dataset.validated)})
        return snapshot

    def current(self) -> Snapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise SnapshotUnavailable("No dataset has been loaded yet")
        return snapshot

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def reload(self) -> Snapshot:
        """
        Build a new dataset with the loader and publish it

        Concurrent reloads are serialised. When the build fails the error is
        logged and re-raised and the previous snapshot stays published.
        """
        if self.loader is None:
            raise SnapshotUnavailable("No dataset loader configured")

        with self._reload_lock:
            logger.info("Reloading dataset")
            try:
                dataset = self.loader()
            except Exception as e:
                logger.bind(snapshot_version=self._version).error(
                    f"Dataset reload failed, keeping current snapshot: {e}")
                raise
            return self.publish(dataset)

    def _reload_loop(self, interval_seconds: float):
        while not self._stop_event.wait(interval_seconds):
            try:
                self.reload()
            except Exception as e:
                # already logged by reload(); the loop keeps the old snapshot
                logger.debug(f"Periodic reload skipped: {e}")

    def start_periodic_reload(self, minutes: float) -> Optional[threading.Thread]:
        """Reload every `minutes` on a daemon thread; 0 disables"""
        if minutes <= 0:
            return None
        if self._reload_thread is not None and self._reload_thread.is_alive():
            return self._reload_thread

        self._stop_event.clear()
        self._reload_thread = threading.Thread(
            target=self._reload_loop, args=(minutes * 60,),
            name="routing-stats-reload", daemon=True,
        )
        self._reload_thread.start()
        logger.info(f"Periodic reload every {minutes} minutes")
        return self._reload_thread

    def stop(self, timeout: float = 5.0):
        self._stop_event.set()
        if self._reload_thread is not None:
            self._reload_thread.join(timeout)
            self._reload_thread = None
