"""Server statistics and recently analyzed regions.

Tracks in-memory counters and a sliding window of regions that were
analyzed recently. No framework dependencies.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

# Region key used for datasets uploaded by the caller.
UPLOADED_REGION = "upload"


@dataclass
class RegionActivity:
    """Tracks a single region's recent analysis activity."""
    last_seen: float          # time.monotonic() timestamp
    source: str               # "synthetic" or "upload"
    runs: int = 0


class ServerStats:
    """Thread-safe server statistics with active-region tracking.

    Clustering runs execute on worker threads, so every mutation takes the
    lock. A region is "active" if it was analyzed within
    ``active_window_seconds`` (default 600s).
    """

    def __init__(self, active_window_seconds: float = 600.0) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()
        self._active_window = active_window_seconds

        # Counters
        self.runs_completed: int = 0
        self.runs_rejected: int = 0
        self.runs_cancelled: int = 0
        self.points_received: int = 0
        self.points_clustered: int = 0
        self.hotspots_reported: int = 0
        self.clusters_discarded: int = 0
        self.distance_evaluations: int = 0
        self.classifications: int = 0
        self.classifier_failures: int = 0
        self.last_run_ms: float = 0.0
        self.max_run_ms: float = 0.0

        # Region tracking: region_id → RegionActivity
        self._regions: dict[str, RegionActivity] = {}

    def record_run(self, region_id: str, *, points: int, clustered: int, hotspots: int,
                   discarded: int, distance_evaluations: int, duration_ms: float) -> None:
        """Record a completed clustering run."""
        now = time.monotonic()
        source = "upload" if region_id == UPLOADED_REGION else "synthetic"
        with self._lock:
            self.runs_completed += 1
            self.points_received += points
            self.points_clustered += clustered
            self.hotspots_reported += hotspots
            self.clusters_discarded += discarded
            self.distance_evaluations += distance_evaluations
            self.last_run_ms = duration_ms
            if duration_ms > self.max_run_ms:
                self.max_run_ms = duration_ms
            if region_id in self._regions:
                activity = self._regions[region_id]
                activity.last_seen = now
                activity.runs += 1
            else:
                self._regions[region_id] = RegionActivity(last_seen=now, source=source, runs=1)

    def record_rejected(self) -> None:
        with self._lock:
            self.runs_rejected += 1

    def record_cancelled(self) -> None:
        with self._lock:
            self.runs_cancelled += 1

    def record_classification(self, *, failed: bool) -> None:
        with self._lock:
            self.classifications += 1
            if failed:
                self.classifier_failures += 1

    def _prune_stale_regions(self, now: float) -> None:
        """Remove regions not analyzed within the active window. Caller holds lock."""
        cutoff = now - self._active_window
        stale = [rid for rid, act in self._regions.items() if act.last_seen < cutoff]
        for rid in stale:
            del self._regions[rid]

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all stats."""
        now_mono = time.monotonic()
        with self._lock:
            self._prune_stale_regions(now_mono)

            synthetic = sum(1 for act in self._regions.values() if act.source == "synthetic")
            uploaded = sum(1 for act in self._regions.values() if act.source == "upload")

            return {
                "uptime_seconds": round(time.time() - self._started_at, 1),
                "runs_completed": self.runs_completed,
                "runs_rejected": self.runs_rejected,
                "runs_cancelled": self.runs_cancelled,
                "points_received": self.points_received,
                "points_clustered": self.points_clustered,
                "hotspots_reported": self.hotspots_reported,
                "clusters_discarded": self.clusters_discarded,
                "distance_evaluations": self.distance_evaluations,
                "classifications": self.classifications,
                "classifier_failures": self.classifier_failures,
                "last_run_ms": round(self.last_run_ms, 1),
                "max_run_ms": round(self.max_run_ms, 1),
                "active_regions": {
                    "total": len(self._regions),
                    "synthetic": synthetic,
                    "uploaded": uploaded,
                    "window_seconds": self._active_window,
                },
            }
