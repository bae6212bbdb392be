"""Tests for the density-based accident clustering."""

from __future__ import annotations

import random

import pytest

from conftest import make_cluster
from hotspot_server.core.clustering import (
    ClusterMode,
    cluster_accidents,
    find_hotspots,
    hotspots_to_geojson,
)
from hotspot_server.core.errors import ClusteringCancelled, InvalidParameterError
from hotspot_server.core.models import AccidentPoint
from hotspot_server.core.regions import generate_accidents, get_region


def _line(n: int, step_deg: float, severity: int = 2) -> list[AccidentPoint]:
    return [AccidentPoint(id=i, lat=45.0 + i * step_deg, lng=5.0, severity=severity)
            for i in range(n)]


def test_tight_cluster_yields_one_hotspot(tight_five):
    hotspots = find_hotspots(tight_five, epsilon_km=0.5, min_pts=4)

    assert len(hotspots) == 1
    assert hotspots[0].id == "hotspot-0"
    assert hotspots[0].accident_count == 5
    assert hotspots[0].member_ids == {0, 1, 2, 3, 4}


def test_isolated_points_yield_nothing():
    points = [AccidentPoint(id=i, lat=45.0 + i * 0.1, lng=5.0, severity=5) for i in range(3)]
    assert find_hotspots(points, epsilon_km=0.5, min_pts=4) == []


def test_two_separated_clusters():
    points = make_cluster(0, 45.764, 4.835, 4) + make_cluster(4, 45.864, 4.835, 4)
    hotspots = find_hotspots(points, epsilon_km=0.5, min_pts=4)

    assert len(hotspots) == 2
    assert hotspots[0].member_ids == {0, 1, 2, 3}
    assert hotspots[1].member_ids == {4, 5, 6, 7}
    assert hotspots[0].centroid.lat == pytest.approx(45.7643)


def test_empty_dataset():
    result = cluster_accidents([], epsilon_km=0.5, min_pts=4)
    assert result.hotspots == []
    assert result.points_total == 0


def test_run_counters(tight_five):
    result = cluster_accidents(tight_five, epsilon_km=0.5, min_pts=4)

    assert result.points_total == 5
    assert result.points_clustered == 5
    assert result.clusters_found == 1
    assert result.clusters_discarded == 0
    # One seed query plus one query per admitted point.
    assert result.distance_evaluations == 6 * 5


@pytest.mark.parametrize("epsilon_km", [0, -0.5, float("nan"), float("inf"), "0.5", None])
def test_invalid_epsilon_rejected(tight_five, epsilon_km):
    with pytest.raises(InvalidParameterError):
        cluster_accidents(tight_five, epsilon_km=epsilon_km, min_pts=4)


@pytest.mark.parametrize("min_pts", [0, -1, 2.5, True, None])
def test_invalid_min_pts_rejected(tight_five, min_pts):
    with pytest.raises(InvalidParameterError):
        cluster_accidents(tight_five, epsilon_km=0.5, min_pts=min_pts)


def test_duplicate_ids_rejected(tight_five):
    with pytest.raises(InvalidParameterError):
        cluster_accidents(tight_five + [tight_five[0]], epsilon_km=0.5, min_pts=4)


def test_unknown_mode_rejected(tight_five):
    with pytest.raises(InvalidParameterError):
        cluster_accidents(tight_five, epsilon_km=0.5, min_pts=4, mode="kmeans")


def test_min_pts_one_clusters_every_point():
    """Every point is its own cluster; only severe singletons are reported."""
    points = [AccidentPoint(id=i, lat=45.0 + i * 0.1, lng=5.0, severity=s)
              for i, s in enumerate([5, 2, 4])]
    result = cluster_accidents(points, epsilon_km=0.5, min_pts=1)

    assert result.points_clustered == 3
    assert result.clusters_found == 3
    assert [h.member_ids for h in result.hotspots] == [{0}, {2}]
    assert [h.id for h in result.hotspots] == ["hotspot-0", "hotspot-1"]


def test_dense_cluster_below_size_filter_is_not_reported():
    points = make_cluster(0, 45.0, 5.0, 3, severity=2)
    result = cluster_accidents(points, epsilon_km=0.5, min_pts=3)

    assert result.hotspots == []
    assert result.clusters_found == 1
    assert result.clusters_discarded == 1


def test_high_severity_cluster_below_size_filter_is_reported():
    points = make_cluster(0, 45.0, 5.0, 3, severity=4)
    hotspots = find_hotspots(points, epsilon_km=0.5, min_pts=3)

    assert len(hotspots) == 1
    assert hotspots[0].accident_count == 3


def test_expansion_follows_dense_chain():
    # 333 m spacing: inner points have 3 neighbors, the ends only 2.
    points = _line(6, 0.003)
    hotspots = find_hotspots(points, epsilon_km=0.5, min_pts=3)

    assert len(hotspots) == 1
    assert hotspots[0].member_ids == {0, 1, 2, 3, 4, 5}


def test_simple_mode_does_not_expand():
    points = _line(6, 0.003)
    result = cluster_accidents(points, epsilon_km=0.5, min_pts=3, mode=ClusterMode.SIMPLE)

    # Seed 1 takes {0, 1, 2} (too small to report); seed 3 is left with {3, 4}.
    assert result.hotspots == []
    assert result.clusters_found == 1
    assert result.points_clustered == 5


def test_border_point_does_not_extend_cluster():
    core = [AccidentPoint(id=i, lat=45.0 + i * 0.0005, lng=5.0) for i in range(4)]
    border = AccidentPoint(id=4, lat=45.0057, lng=5.0)   # 467 m from the last core point
    beyond = AccidentPoint(id=5, lat=45.0099, lng=5.0)   # 467 m from the border point
    hotspots = find_hotspots(core + [border, beyond], epsilon_km=0.5, min_pts=4)

    assert len(hotspots) == 1
    assert hotspots[0].member_ids == {0, 1, 2, 3, 4}


def test_contested_border_point_goes_to_first_cluster():
    first = make_cluster(0, 45.0, 5.0, 4, step_deg=0.00018)
    border = AccidentPoint(id=4, lat=45.00494, lng=5.0)
    second = make_cluster(5, 45.00934, 5.0, 4, step_deg=0.00018)
    hotspots = find_hotspots(first + [border] + second, epsilon_km=0.5, min_pts=4)

    assert [h.member_ids for h in hotspots] == [{0, 1, 2, 3, 4}, {5, 6, 7, 8}]


def test_input_order_does_not_matter(tight_five):
    points = make_cluster(10, 45.9, 5.0, 4) + tight_five
    shuffled = points[:]
    random.Random(3).shuffle(shuffled)

    assert find_hotspots(points, 0.5, 4) == find_hotspots(shuffled, 0.5, 4)


@pytest.fixture
def synthetic():
    return generate_accidents(get_region("sf"), 500, seed=7)


def test_determinism(synthetic):
    first = cluster_accidents(synthetic, epsilon_km=0.5, min_pts=5)
    second = cluster_accidents(synthetic, epsilon_km=0.5, min_pts=5)
    assert first == second


def test_invariants_on_synthetic_data(synthetic):
    min_pts = 5
    hotspots = find_hotspots(synthetic, epsilon_km=0.5, min_pts=min_pts)
    all_ids = {p.id for p in synthetic}

    seen: set[int] = set()
    for h in hotspots:
        assert h.accident_count == len(h.members)
        assert h.accident_count >= min_pts
        assert h.accident_count >= 4 or h.high_severity_count >= min_pts
        assert h.member_ids <= all_ids
        assert not (h.member_ids & seen)
        seen |= h.member_ids
    assert [h.id for h in hotspots] == [f"hotspot-{i}" for i in range(len(hotspots))]


def _cancel_after(limit: int, calls: list):
    def should_cancel() -> bool:
        calls.append(1)
        return len(calls) > limit
    return should_cancel


def test_cancellation_during_expansion():
    # One connected chain: the whole run is a single expansion.
    points = make_cluster(0, 45.0, 5.0, 300)
    calls: list = []

    with pytest.raises(ClusteringCancelled):
        cluster_accidents(points, epsilon_km=0.5, min_pts=4,
                          should_cancel=_cancel_after(50, calls))
    # Seed check plus one poll per admitted point, stopping well before 300.
    assert len(calls) == 51


def test_finished_run_is_not_cancelled(tight_five):
    calls: list = []
    # Seed check plus five admissions; the remaining seeds are already clustered.
    result = cluster_accidents(tight_five, 0.5, 4, should_cancel=_cancel_after(6, calls))

    assert len(result.hotspots) == 1
    assert len(calls) == 6


def test_cancellation_never_triggered(tight_five):
    result = cluster_accidents(tight_five, 0.5, 4, should_cancel=lambda: False)
    assert len(result.hotspots) == 1


def test_hotspots_to_geojson(tight_five):
    collection = hotspots_to_geojson(find_hotspots(tight_five, 0.5, 4))

    assert collection["type"] == "FeatureCollection"
    feature = collection["features"][0]
    assert feature["id"] == "hotspot-0"
    lng, lat = feature["geometry"]["coordinates"]
    assert lat == pytest.approx(45.7644)
    assert lng == pytest.approx(4.835)
    assert feature["properties"]["accidentCount"] == 5
    assert feature["properties"]["accidentIds"] == [0, 1, 2, 3, 4]
