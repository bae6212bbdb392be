"""Accident clustering — groups dense neighborhoods of accidents into hotspots.

Density-based region growing over the "closer than epsilon" relation:

- Points are scanned in ascending id order. A point with at least
  ``min_pts`` neighbors (itself included) that is not yet in a cluster seeds
  a new cluster.
- The cluster grows breadth-first. Every admitted point is queried; if it is
  dense too, its neighbors are scheduled. Non-dense points reached this way
  are admitted as border points but do not extend the cluster.
- A point belongs to at most one cluster. Points that are never reached stay
  unclustered; there is no permanent noise label during the scan.

``ClusterMode.SIMPLE`` keeps the older single-pass behavior where a dense
seed's unclustered neighbors form the whole cluster.
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Callable, Sequence
from enum import Enum

import structlog

from hotspot_server.core.aggregation import HotspotAggregator
from hotspot_server.core.errors import ClusteringCancelled, InvalidParameterError
from hotspot_server.core.geo import neighbors
from hotspot_server.core.models import AccidentPoint, ClusteringResult, Hotspot

log = structlog.get_logger()


class ClusterMode(str, Enum):
    EXPANDING = "expanding"
    SIMPLE = "simple"


def validate_parameters(epsilon_km: float, min_pts: int) -> None:
    """Reject parameters the scan cannot work with."""
    if isinstance(epsilon_km, bool) or not isinstance(epsilon_km, (int, float)):
        raise InvalidParameterError(f"epsilon_km must be a number, got {epsilon_km!r}")
    if not math.isfinite(epsilon_km) or epsilon_km <= 0:
        raise InvalidParameterError(f"epsilon_km must be > 0, got {epsilon_km}")
    if isinstance(min_pts, bool) or not isinstance(min_pts, int):
        raise InvalidParameterError(f"min_pts must be an integer, got {min_pts!r}")
    if min_pts < 1:
        raise InvalidParameterError(f"min_pts must be >= 1, got {min_pts}")


def _check_unique_ids(points: Sequence[AccidentPoint]) -> None:
    seen: set[int] = set()
    for p in points:
        if p.id in seen:
            raise InvalidParameterError(f"duplicate point id {p.id}")
        seen.add(p.id)


class _ClusteringRun:
    """State of a single run. Never shared between runs."""

    def __init__(
        self,
        points: list[AccidentPoint],
        epsilon_km: float,
        min_pts: int,
        should_cancel: Callable[[], bool] | None = None,
    ) -> None:
        self.points = points
        self.epsilon_km = epsilon_km
        self.min_pts = min_pts
        self.should_cancel = should_cancel
        self.visited: set[int] = set()
        self.distance_evaluations = 0

    def check_cancelled(self) -> None:
        if self.should_cancel is None or not self.should_cancel():
            return
        log.warning("clustering_cancelled", points=len(self.points),
                    clustered=len(self.visited),
                    distance_evaluations=self.distance_evaluations)
        raise ClusteringCancelled(
            f"cancelled after clustering {len(self.visited)} of {len(self.points)} points"
        )

    def query(self, point: AccidentPoint) -> list[AccidentPoint]:
        self.distance_evaluations += len(self.points)
        return neighbors(point, self.points, self.epsilon_km)

    def expand(self, seed_neighbors: list[AccidentPoint]) -> list[AccidentPoint]:
        """Grow a cluster breadth-first from a dense seed's neighborhood."""
        members: list[AccidentPoint] = []
        queue = deque(seed_neighbors)
        frontier = {p.id for p in seed_neighbors}

        while queue:
            current = queue.popleft()
            if current.id in self.visited:
                continue
            self.check_cancelled()
            self.visited.add(current.id)
            members.append(current)

            current_neighbors = self.query(current)
            if len(current_neighbors) >= self.min_pts:
                for n in current_neighbors:
                    if n.id not in frontier:
                        frontier.add(n.id)
                        queue.append(n)

        return members

    def take_unvisited(self, seed_neighbors: list[AccidentPoint]) -> list[AccidentPoint]:
        members = [p for p in seed_neighbors if p.id not in self.visited]
        self.visited.update(p.id for p in members)
        return members


def cluster_accidents(
    points: Sequence[AccidentPoint],
    epsilon_km: float,
    min_pts: int,
    *,
    mode: ClusterMode = ClusterMode.EXPANDING,
    should_cancel: Callable[[], bool] | None = None,
) -> ClusteringResult:
    """Cluster accident points and return the reported hotspots.

    ``should_cancel`` is polled before each unclustered seed is queried and
    before each point admitted during expansion; when it returns True the
    run stops with ClusteringCancelled. Once every point has been handled
    it is not polled again, so a finished run is never discarded.
    """
    validate_parameters(epsilon_km, min_pts)
    _check_unique_ids(points)
    try:
        mode = ClusterMode(mode)
    except ValueError:
        raise InvalidParameterError(f"unknown clustering mode {mode!r}") from None

    ordered = sorted(points, key=lambda p: p.id)
    run = _ClusteringRun(ordered, epsilon_km, min_pts, should_cancel)
    aggregator = HotspotAggregator(min_pts)

    for seed in ordered:
        if seed.id in run.visited:
            continue
        run.check_cancelled()

        seed_neighbors = run.query(seed)
        if len(seed_neighbors) < min_pts:
            continue

        if mode is ClusterMode.SIMPLE:
            members = run.take_unvisited(seed_neighbors)
        else:
            members = run.expand(seed_neighbors)
        aggregator.offer(members)

    result = ClusteringResult(
        hotspots=aggregator.hotspots,
        points_total=len(ordered),
        points_clustered=len(run.visited),
        clusters_found=aggregator.clusters_found,
        clusters_discarded=aggregator.clusters_discarded,
        distance_evaluations=run.distance_evaluations,
    )
    log.debug("clustering_complete", mode=mode.value, epsilon_km=epsilon_km,
              min_pts=min_pts, **result.run_summary())
    return result


def find_hotspots(
    points: Sequence[AccidentPoint],
    epsilon_km: float,
    min_pts: int,
) -> list[Hotspot]:
    """Shorthand for the default expanding run when only hotspots matter."""
    return cluster_accidents(points, epsilon_km, min_pts).hotspots


def hotspots_to_geojson(hotspots: Sequence[Hotspot]) -> dict:
    """Convert hotspots to a GeoJSON FeatureCollection."""
    return {
        "type": "FeatureCollection",
        "features": [h.to_geojson_feature() for h in hotspots],
    }
