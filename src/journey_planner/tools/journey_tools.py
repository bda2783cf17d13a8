from journey_planner.app import mcp
from journey_planner.models.responses import PlanJourneyResponse
from journey_planner.services.journey_planner import plan_journey as _plan_journey


@mcp.tool()
async def plan_journey(
    origin: str | None = None,
    destination: str | None = None,
    departure_time: str | None = None,
    date: str | None = None,
    modes: str | None = None,
    max_walk_meters: float | None = None,
    origin_lat: float | None = None,
    origin_lon: float | None = None,
    destination_lat: float | None = None,
    destination_lon: float | None = None,
) -> PlanJourneyResponse:
    """Plan the earliest-arriving journey between two stops or two locations.

    Combines Metrorail trains, MyCiTi and Golden Arrow buses, and short walks
    between nearby stops. Returns a single best itinerary.

    Examples:
        plan_journey(origin="Cape Town", destination="Mowbray", departure_time="07:30")
        plan_journey(origin="Civic Centre", destination="Table View", modes="bus")
        plan_journey(origin_lat=-33.92, origin_lon=18.42,
                     destination_lat=-33.95, destination_lon=18.47)

    Args:
        origin: Origin stop name (fuzzy matched).
        destination: Destination stop name (fuzzy matched).
        departure_time: Departure in HH:MM, hours past 23 allowed (default: now).
        date: ISO date like "2025-04-18" or "saturday" (default: today).
                Public holidays use the holiday timetable.
        modes: Comma-separated allow-list, e.g. "train" or "bus,train".
        max_walk_meters: Walking limit; 0 disables walking.
        origin_lat, origin_lon: Start coordinates instead of an origin name.
        destination_lat, destination_lon: End coordinates instead of a destination name.

    Returns:
        PlanJourneyResponse with steps, legs and a summary. An empty itinerary
        with success=True means no route was found.
    """
    return await _plan_journey(
        origin=origin,
        destination=destination,
        departure_time=departure_time,
        date=date,
        modes=modes,
        max_walk_meters=max_walk_meters,
        origin_lat=origin_lat,
        origin_lon=origin_lon,
        destination_lat=destination_lat,
        destination_lon=destination_lon,
    )
