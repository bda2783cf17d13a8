"""Great-circle distance and walking-time helpers."""

import math

# Earth's radius in kilometres for haversine calculation
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points in kilometres.

    Args:
        lat1, lon1: First point coordinates in degrees.
        lat2, lon2: Second point coordinates in degrees.

    Returns:
        Distance in kilometres.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def walk_minutes(distance_km: float, speed_kmh: float) -> int:
    """Minutes needed to walk a distance, rounded up, never less than one."""
    return max(1, math.ceil(distance_km / speed_kmh * 60))


def degrees_latitude(distance_km: float) -> float:
    """Latitude span covering a north-south distance."""
    return math.degrees(distance_km / EARTH_RADIUS_KM)
