"""Great-circle distance between coordinates."""

from __future__ import annotations

import math

from carcare._constants import EARTH_RADIUS_KM
from carcare.models.user import Coords


def _radians(degrees: float) -> float:
    return degrees * math.pi / 180


def distance(a: Coords, b: Coords) -> float:
    """Haversine distance between *a* and *b* in kilometers.

    Uses a mean Earth radius of 6371 km. Symmetric in its arguments.
    """
    lat1 = _radians(a.lat)
    lat2 = _radians(b.lat)
    dlat = lat2 - lat1
    dlon = _radians(b.lon) - _radians(a.lon)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    # rounding can push h marginally past 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def within_radius(km: float, radius_km: float) -> bool:
    """Boundary-inclusive proximity check."""
    return km <= radius_km
