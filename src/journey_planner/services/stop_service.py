"""Stop search over the in-memory network."""

import math

from journey_planner.matching.normalizers import normalize_query
from journey_planner.models.network import Stop, TransitNetwork
from journey_planner.models.responses import SearchStopsResponse, StopResult
from journey_planner.services.geo import degrees_latitude, haversine_km


def _to_stop_result(network: TransitNetwork, stop: Stop, distance_km: float | None = None) -> StopResult:
    return StopResult(
        stop_id=stop.stop_id,
        stop_name=stop.name,
        stop_lat=stop.lat if stop.has_coordinates else None,
        stop_lon=stop.lon if stop.has_coordinates else None,
        routes=list(network.routes_for_stop(stop.stop_id)),
        distance_meters=round(distance_km * 1000, 1) if distance_km is not None else None,
    )


def stops_near(
    network: TransitNetwork,
    lat: float,
    lon: float,
    max_distance_km: float,
) -> list[tuple[Stop, float]]:
    """Located stops within a radius, nearest first (ties by stop id).

    Uses a latitude band to skip distant stops before computing exact
    haversine distances.
    """
    lat_delta = degrees_latitude(max_distance_km) * (1 + 1e-9)
    found: list[tuple[Stop, float]] = []
    for stop in network.stops:
        if not stop.has_coordinates or abs(stop.lat - lat) > lat_delta:
            continue
        distance = haversine_km(lat, lon, stop.lat, stop.lon)
        if distance <= max_distance_km:
            found.append((stop, distance))
    found.sort(key=lambda item: (item[1], item[0].stop_id))
    return found


def find_nearest_stop(
    network: TransitNetwork,
    lat: float,
    lon: float,
    max_distance_km: float,
) -> tuple[Stop, float] | None:
    """Nearest located stop within ``max_distance_km`` and its distance in km."""
    if not (math.isfinite(lat) and math.isfinite(lon)) or max_distance_km < 0:
        return None
    nearby = stops_near(network, lat, lon, max_distance_km)
    return nearby[0] if nearby else None


def search_stops_by_text(network: TransitNetwork, query: str, limit: int = 20) -> SearchStopsResponse:
    """Stops whose name contains the query, ordered by name."""
    needle = normalize_query(query)
    matches = sorted(
        (stop for stop in network.stops if needle and needle in stop.name),
        key=lambda stop: (stop.name, stop.stop_id),
    )
    stops = [_to_stop_result(network, stop) for stop in matches[:limit]]
    return SearchStopsResponse(stops=stops, count=len(stops), total_matches=len(matches))


def search_stops_by_location(
    network: TransitNetwork,
    lat: float,
    lon: float,
    radius_meters: int = 500,
    limit: int = 20,
) -> SearchStopsResponse:
    """Stops near a geographic location, sorted by distance."""
    nearby = stops_near(network, lat, lon, radius_meters / 1000)
    stops = [_to_stop_result(network, stop, distance) for stop, distance in nearby[:limit]]
    return SearchStopsResponse(stops=stops, count=len(stops), total_matches=len(nearby))


def search_stops(
    network: TransitNetwork,
    query: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    radius_meters: int = 500,
    limit: int = 20,
) -> SearchStopsResponse:
    """Search for stops by name or location.

    If both are given, geo search takes priority.

    Raises:
        ValueError: If neither a query nor a lat/lon pair is provided.
    """
    if lat is not None and lon is not None:
        return search_stops_by_location(network, lat, lon, radius_meters, limit)
    if query:
        return search_stops_by_text(network, query, limit)
    raise ValueError("Must provide either query or lat/lon")
