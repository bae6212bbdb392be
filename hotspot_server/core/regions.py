"""Region catalog and synthetic accident datasets.

Each region has a synthetic dataset scattered around a handful of random
sub-centers near the region center, so that clustering has something to find.
Datasets are reproducible for a given seed.
"""

from __future__ import annotations

import random

from hotspot_server.core.models import AccidentPoint, Region

ACCIDENT_FACTORS = (
    "speeding",
    "poor visibility",
    "road design",
    "distracted driving",
    "weather conditions",
    "traffic congestion",
)

REGIONS: tuple[Region, ...] = (
    Region("sf", "San Francisco", 37.7749, -122.4194, 12, 500),
    Region("nyc", "New York City", 40.7128, -74.0060, 11, 800),
    Region("london", "London", 51.5074, -0.1278, 11, 600),
    Region("tokyo", "Tokyo", 35.6895, 139.6917, 11, 900),
    Region("paris", "Paris", 48.8566, 2.3522, 12, 550),
    Region("sydney", "Sydney", -33.8688, 151.2093, 11, 450),
    Region("delhi", "Delhi, India", 28.7041, 77.1025, 11, 750),
    Region("mumbai", "Mumbai, India", 19.0760, 72.8777, 11, 850),
    Region("bangalore", "Bangalore, India", 12.9716, 77.5946, 11, 700),
    Region("kochi", "Kochi, India", 9.9312, 76.2673, 12, 400),
    Region("trivandrum", "Trivandrum, India", 8.5241, 76.9366, 12, 350),
    Region("cairo", "Cairo, Egypt", 30.0444, 31.2357, 11, 650),
    Region("rio", "Rio de Janeiro, Brazil", -22.9068, -43.1729, 11, 600),
)

_REGIONS_BY_ID = {r.id: r for r in REGIONS}

# Roughly one sub-center per this many accidents.
_POINTS_PER_CENTER = 40

# Sub-center spread around the region center, and per-point jitter (degrees).
_CENTER_SPREAD_LAT = 0.1
_CENTER_SPREAD_LNG = 0.2
_JITTER_LAT = 0.01
_JITTER_LNG = 0.02


def get_region(region_id: str) -> Region | None:
    return _REGIONS_BY_ID.get(region_id)


def generate_accidents(region: Region, count: int | None = None,
                       seed: int | None = None) -> list[AccidentPoint]:
    """Generate a synthetic accident dataset around ``region``.

    Ids run from 0 to count - 1. The same seed gives the same dataset.
    """
    rng = random.Random(seed)
    if count is None:
        count = region.accident_count

    centers = [
        (region.center_lat + (rng.random() - 0.5) * _CENTER_SPREAD_LAT,
         region.center_lng + (rng.random() - 0.5) * _CENTER_SPREAD_LNG)
        for _ in range(max(1, count // _POINTS_PER_CENTER))
    ]

    accidents: list[AccidentPoint] = []
    for i in range(count):
        center_lat, center_lng = rng.choice(centers)
        accidents.append(AccidentPoint(
            id=i,
            lat=center_lat + (rng.random() - 0.5) * _JITTER_LAT,
            lng=center_lng + (rng.random() - 0.5) * _JITTER_LNG,
            severity=rng.randint(1, 5),
            factors=(rng.choice(ACCIDENT_FACTORS),),
        ))
    return accidents
