"""Great-circle distance and brute-force neighborhood search."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hotspot_server.core.models import AccidentPoint

# Earth radius in kilometers (for Haversine).
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometers between two points."""
    rlat1, rlat2 = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * math.cos(rlat2) * math.sin(dlng / 2) ** 2
    # Rounding can push ``a`` past 1 for near-antipodal points. NaN passes through.
    if a > 1.0:
        a = 1.0
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(a: AccidentPoint, b: AccidentPoint) -> float:
    return haversine_km(a.lat, a.lng, b.lat, b.lng)


def neighbors(
    point: AccidentPoint,
    all_points: Sequence[AccidentPoint],
    epsilon_km: float,
) -> list[AccidentPoint]:
    """Return every point strictly closer than ``epsilon_km`` to ``point``.

    The query point itself is included (its distance is 0). Order follows
    ``all_points``.
    """
    return [p for p in all_points if distance_km(point, p) < epsilon_km]
