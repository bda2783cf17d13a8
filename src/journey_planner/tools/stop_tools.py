"""MCP tools for searching and resolving stops."""

from journey_planner.app import mcp
from journey_planner.data.store import NetworkStore
from journey_planner.matching.models import StopResolutionResponse
from journey_planner.matching.stop_matcher import resolve_stop as _resolve_stop
from journey_planner.models.responses import SearchStopsResponse
from journey_planner.services.stop_service import search_stops as _search_stops


@mcp.tool()
async def search_stops(
    query: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    radius_meters: int = 500,
    limit: int = 20,
) -> SearchStopsResponse:
    """Search for train stations and bus stops.

    Supports two search modes:
    - Text search: Find stops by name (e.g., "Mowbray", "Civic Centre")
    - Geo search: Find stops near coordinates within a radius

    Args:
        query: Text to search for in stop names (case-insensitive partial match).
        lat: Latitude for geographic search (requires lon).
        lon: Longitude for geographic search (requires lat).
        radius_meters: Search radius for geo search (default 500m).
        limit: Maximum number of results to return (default 20, max 100).

    Returns:
        SearchStopsResponse with matching stops and the routes serving them.
    """
    # Validate limit
    if limit < 1:
        limit = 1
    elif limit > 100:
        limit = 100

    # Validate radius
    if radius_meters < 1:
        radius_meters = 1
    elif radius_meters > 10000:
        radius_meters = 10000

    network = await NetworkStore.get_instance()
    return _search_stops(
        network,
        query=query,
        lat=lat,
        lon=lon,
        radius_meters=radius_meters,
        limit=limit,
    )


@mcp.tool()
async def resolve_stop(query: str, limit: int = 5) -> StopResolutionResponse:
    """Resolve a free-text stop name to ranked candidate stops.

    Args:
        query: Stop name as a rider would type it (e.g., "mowbray station").
        limit: Maximum candidates to return (1-10, default 5).

    Returns:
        StopResolutionResponse; resolved=True means the best match is safe to use.
    """
    limit = max(1, min(limit, 10))
    network = await NetworkStore.get_instance()
    return _resolve_stop(network, query, limit=limit)
