"""Tests for hotspot summaries and the inclusion filter."""

from __future__ import annotations

import pytest

from hotspot_server.core.aggregation import (
    HotspotAggregator,
    is_reportable,
    merge_factors,
    summarize_cluster,
)
from hotspot_server.core.models import AccidentPoint


def _points(severities, factors=None):
    factors = factors or [("speeding",)] * len(severities)
    return [
        AccidentPoint(id=i, lat=45.0 + i * 0.001, lng=5.0 + i * 0.002,
                      severity=s, factors=f)
        for i, (s, f) in enumerate(zip(severities, factors))
    ]


def test_merge_factors_first_appearance_order():
    members = _points([1, 1, 1], [("speeding",), ("poor visibility", "speeding"), ()])
    assert merge_factors(members) == "speeding, poor visibility"


def test_merge_factors_empty():
    assert merge_factors(_points([1, 2], [(), ()])) == ""


def test_summarize_cluster():
    members = _points([1, 2, 2])
    hotspot = summarize_cluster(members, "hotspot-7")

    assert hotspot.id == "hotspot-7"
    assert hotspot.centroid.lat == pytest.approx(45.001)
    assert hotspot.centroid.lng == pytest.approx(5.002)
    assert hotspot.accident_count == 3
    assert hotspot.average_severity == 1.67
    assert hotspot.contributing_factors == "speeding"
    assert hotspot.members == tuple(members)


def test_to_dict_uses_wire_names():
    data = summarize_cluster(_points([4, 4, 4, 4]), "hotspot-0").to_dict()
    assert data["accidentCount"] == 4
    assert data["averageSeverity"] == 4.0
    assert data["contributingFactors"] == "speeding"
    assert [a["id"] for a in data["accidents"]] == [0, 1, 2, 3]


def test_size_arm_reports_low_severity_cluster():
    assert is_reportable(_points([1, 1, 1, 1]), min_pts=10)


def test_high_severity_arm():
    assert is_reportable(_points([4, 5, 4]), min_pts=3)
    assert not is_reportable(_points([4, 4, 1]), min_pts=3)
    assert not is_reportable(_points([2, 2, 2]), min_pts=3)


def test_aggregator_numbers_only_reported_hotspots():
    agg = HotspotAggregator(min_pts=3)

    assert agg.offer(_points([2, 2, 2])) is None          # dense, not noteworthy
    first = agg.offer(_points([1, 1, 1, 1]))
    second = agg.offer(_points([5, 5, 5]))

    assert first.id == "hotspot-0"
    assert second.id == "hotspot-1"
    assert agg.clusters_found == 3
    assert agg.clusters_discarded == 1
    assert [h.id for h in agg.hotspots] == ["hotspot-0", "hotspot-1"]


def test_aggregator_drops_clusters_below_min_pts():
    agg = HotspotAggregator(min_pts=5)
    assert agg.offer(_points([5, 5, 5, 5])) is None
    assert agg.offer([]) is None
    assert agg.clusters_found == 0
    assert agg.hotspots == []
