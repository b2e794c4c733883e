"""
Pure geographic helpers used to pre-filter and rank hotels.

The bounding box is a cheap rectangular pre-filter that the datastore can
evaluate on plain latitude/longitude columns. It uses a flat 111 km per
degree of latitude, so it over-includes near the poles and at large radii;
final membership is always decided by haversine_distance_km().
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0
DISTANCE_DECIMALS = 2
# ~11 m; coordinates in cache keys and queries are normalized to this.
COORDINATE_DECIMALS = 4

# Below this cos(lat) the longitude span covers the whole globe.
_MIN_COS_LAT = 1e-12


class BoundingBox(NamedTuple):
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.lat_min <= latitude <= self.lat_max and self.lon_min <= longitude <= self.lon_max


def is_valid_coordinate(latitude, longitude) -> bool:
    """True for finite numbers within [-90, 90] x [-180, 180]."""
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def bounding_box(latitude: float, longitude: float, radius_km: float) -> BoundingBox:
    """
    Approximate a circle of ``radius_km`` around a point with a lat/lon box.

    lat_delta = r / 111
    lon_delta = r / (111 * cos(lat))
    """
    lat_delta = radius_km / KM_PER_DEGREE
    cos_lat = math.cos(math.radians(latitude))
    if abs(cos_lat) < _MIN_COS_LAT:
        lon_delta = 360.0
    else:
        lon_delta = radius_km / (KM_PER_DEGREE * abs(cos_lat))
    return BoundingBox(
        lat_min=latitude - lat_delta,
        lat_max=latitude + lat_delta,
        lon_min=longitude - lon_delta,
        lon_max=longitude + lon_delta,
    )


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km, rounded to 2 decimal places."""
    if lat1 == lat2 and lon1 == lon2:
        return 0.0

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # Float error can push a slightly outside [0, 1] for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, DISTANCE_DECIMALS)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def overall_access_score(tourist: float | None, business: float | None, transport: float | None) -> int:
    """Mean of the three access scores, rounded half-up. Missing scores count as 0."""
    total = (tourist or 0) + (business or 0) + (transport or 0)
    return round_half_up(total / 3)


def normalize_coordinate(value: float) -> float:
    return round(float(value), COORDINATE_DECIMALS)
