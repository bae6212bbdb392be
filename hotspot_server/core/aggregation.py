"""Hotspot aggregation — turns a finished cluster into a reported hotspot.

A cluster is summarized (centroid, mean severity, merged factors) and then
passed through the inclusion filter. Only clusters that are large enough, or
that hold enough high-severity accidents, are reported.
"""

from __future__ import annotations

from collections.abc import Sequence

from hotspot_server.core.models import AccidentPoint, Centroid, Hotspot

# A cluster with at least this many accidents is always reported.
MIN_REPORTED_ACCIDENTS = 4

# Severity at or above which an accident counts as high-severity.
HIGH_SEVERITY = 4

FACTOR_SEPARATOR = ", "


def merge_factors(members: Sequence[AccidentPoint]) -> str:
    """Union of member factors, in first-appearance order, comma-joined."""
    seen: dict[str, None] = {}
    for p in members:
        for factor in p.factors:
            seen.setdefault(factor, None)
    return FACTOR_SEPARATOR.join(seen)


def high_severity_count(members: Sequence[AccidentPoint]) -> int:
    return sum(1 for p in members if p.severity >= HIGH_SEVERITY)


def is_reportable(members: Sequence[AccidentPoint], min_pts: int) -> bool:
    """Inclusion filter: big enough, or enough high-severity accidents."""
    if len(members) >= MIN_REPORTED_ACCIDENTS:
        return True
    return high_severity_count(members) >= min_pts


def summarize_cluster(members: Sequence[AccidentPoint], hotspot_id: str) -> Hotspot:
    count = len(members)
    lat = sum(p.lat for p in members) / count
    lng = sum(p.lng for p in members) / count
    severity_avg = sum(p.severity for p in members) / count
    return Hotspot(
        id=hotspot_id,
        centroid=Centroid(lat=lat, lng=lng),
        accident_count=count,
        average_severity=round(severity_avg, 2),
        contributing_factors=merge_factors(members),
        members=tuple(members),
    )


class HotspotAggregator:
    """Collects finished clusters of one run and numbers reported hotspots."""

    def __init__(self, min_pts: int) -> None:
        self._min_pts = min_pts
        self._next_id = 0
        self.hotspots: list[Hotspot] = []
        self.clusters_found = 0
        self.clusters_discarded = 0

    def offer(self, members: Sequence[AccidentPoint]) -> Hotspot | None:
        """Summarize a finished cluster. Returns the hotspot if it is reported."""
        if len(members) < self._min_pts:
            return None
        self.clusters_found += 1
        if not is_reportable(members, self._min_pts):
            self.clusters_discarded += 1
            return None

        hotspot = summarize_cluster(members, f"hotspot-{self._next_id}")
        self._next_id += 1
        self.hotspots.append(hotspot)
        return hotspot
