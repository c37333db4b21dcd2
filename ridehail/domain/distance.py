"""
Distance calculation using the Haversine formula.

Assumption
----------
Great-circle distance on a spherical Earth (R = 6371 km) is used as the
driver-to-passenger distance.  It ignores the road network, which is fine
for ranking nearby drivers and for the coarse pickup ETA.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(a, b) -> float:
    """Distance in km between two objects exposing latitude / longitude."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def is_valid_coordinate(lat, lng) -> bool:
    """True when both values are finite numbers inside the WGS84 ranges."""
    if lat is None or lng is None:
        return False
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
