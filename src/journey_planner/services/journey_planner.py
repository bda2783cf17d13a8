"""Journey query orchestration.

Resolves endpoints and day type, picks a search engine, reconstructs the
itinerary and enforces the walking budget before anything is returned.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from journey_planner.data.config import PlannerConfig, get_config
from journey_planner.data.store import NetworkStore
from journey_planner.errors import PlannerInputError
from journey_planner.matching.stop_matcher import resolve_stop
from journey_planner.models.network import DayType, TransitNetwork, TransportMode, Trip
from journey_planner.models.preferences import QueryPreferences
from journey_planner.models.responses import (
    ItineraryStep,
    JourneyLeg,
    JourneySummary,
    LegStop,
    PlanJourneyResponse,
    StopResolutionInfo,
)
from journey_planner.services.calendar import resolve_day_type
from journey_planner.services.csa import run_connection_scan
from journey_planner.services.geo import haversine_km, walk_minutes
from journey_planner.services.path_builder import (
    PathSegment,
    PathStep,
    flatten_steps,
    reconstruct_segments,
    walking_totals,
    within_walking_budget,
)
from journey_planner.services.raptor import run_raptor
from journey_planner.services.schedule_service import (
    clock_time_to_minutes,
    format_clock_time,
    minutes_to_clock_time,
)
from journey_planner.services.search import WALK_TRIP_ID
from journey_planner.services.stop_service import find_nearest_stop

logger = logging.getLogger(__name__)

# Synthetic stops for coordinate endpoints
START_LOCATION_ID = -1
DESTINATION_LOCATION_ID = -2
START_LOCATION_NAME = "Start location"
DESTINATION_LOCATION_NAME = "Destination"


@dataclass
class JourneyPlan:
    """Result of one query. No segments means no route was found."""

    source: int
    target: int
    departure_time: int
    day_type: DayType
    algorithm: str
    segments: list[PathSegment] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.segments)

    @property
    def steps(self) -> list[PathStep]:
        return flatten_steps(self.segments)


def parse_departure_time(time_str: str) -> int:
    """Parse "HH:MM" into minutes since midnight.

    Raises:
        PlannerInputError: If the time is not HH:MM with minutes 0-59.
    """
    try:
        return clock_time_to_minutes(time_str)
    except ValueError as e:
        raise PlannerInputError(f"Invalid departure time {time_str!r}, expected HH:MM") from e


def select_trips(
    network: TransitNetwork,
    day_type: DayType,
    preferences: QueryPreferences,
) -> tuple[DayType, list[Trip]]:
    """Trips for a day type, mode-filtered when connection scan will run.

    Holidays fall back to the Sunday timetable when the dataset publishes no
    holiday service at all.
    """
    modes = preferences.allowed_modes if preferences.requires_connection_scan else None
    trips = network.filter_trips(day_type, modes)
    if not trips and day_type == DayType.PUBLIC_HOLIDAY and not network.has_trips_for(day_type):
        logger.info("No public holiday timetable, using Sunday service")
        day_type = DayType.SUNDAY
        trips = network.filter_trips(day_type, modes)
    return day_type, trips


def plan_between_stops(
    network: TransitNetwork,
    source: int,
    target: int,
    departure_time: int,
    date: str | None = None,
    preferences: QueryPreferences | None = None,
    config: PlannerConfig | None = None,
) -> JourneyPlan:
    """Find the earliest-arrival itinerary between two stops.

    Round-based search serves default preferences; connection scan runs
    whenever the caller restricted modes or walking. An itinerary that
    breaks the walking budget is discarded.

    Args:
        network: Network snapshot to search.
        source: Origin stop id.
        target: Destination stop id.
        departure_time: Minutes since midnight.
        date: ISO date or free text used to pick the day type.
        preferences: Query preferences. Defaults to the baseline.
        config: Planner configuration.

    Returns:
        JourneyPlan, empty when no compliant route exists.
    """
    config = config or get_config()
    preferences = preferences or QueryPreferences.baseline(config)
    day_type, trips = select_trips(network, resolve_day_type(date), preferences)

    algorithm = "csa" if preferences.requires_connection_scan else "raptor"
    plan = JourneyPlan(
        source=source,
        target=target,
        departure_time=departure_time,
        day_type=day_type,
        algorithm=algorithm,
    )
    if not trips:
        logger.info(f"No {day_type.value} trips match the query")
        return plan

    if preferences.requires_connection_scan:
        state = run_connection_scan(network, source, target, departure_time, trips, preferences)
    else:
        state = run_raptor(
            network, source, departure_time, trips, preferences, max_rounds=config.max_rounds
        )

    segments = reconstruct_segments(network, state, target)
    if segments and not within_walking_budget(
        segments, preferences.max_cumulative_walk_km, preferences.max_consecutive_walk_km
    ):
        logger.info(f"Discarding {algorithm} result from {source} to {target}: walking budget exceeded")
        return plan

    plan.segments = segments
    return plan


def _resolve_stop_id(network: TransitNetwork, query: str) -> tuple[int | None, StopResolutionInfo]:
    result = resolve_stop(network, query, limit=1)
    match = result.best_match
    if match is None:
        return None, StopResolutionInfo(
            query=query, resolved=False, error="No matching stop found"
        )
    return match.stop_id, StopResolutionInfo(
        query=query,
        resolved_stop_id=match.stop_id,
        resolved_stop_name=match.stop_name,
        confidence=match.confidence.value,
        match_type=match.match_type.value,
        resolved=result.resolved,
    )


def plan_by_names(
    network: TransitNetwork,
    origin: str,
    destination: str,
    departure_time: str,
    date: str | None = None,
    modes: str | None = None,
    max_walk_meters: str | float | None = None,
    config: PlannerConfig | None = None,
) -> tuple[JourneyPlan, StopResolutionInfo, StopResolutionInfo]:
    """Plan between two named stops.

    The best match for each name is used even when its confidence is too
    low to count as resolved; the returned resolution info says so.

    Raises:
        PlannerInputError: If either name matches no stop, or the time or
            preferences are invalid.
    """
    config = config or get_config()
    preferences = QueryPreferences.from_raw_inputs(modes, max_walk_meters, config)
    departure = parse_departure_time(departure_time)

    source, origin_info = _resolve_stop_id(network, origin)
    target, destination_info = _resolve_stop_id(network, destination)
    if source is None or target is None:
        unresolved = [q for q, stop in ((origin, source), (destination, target)) if stop is None]
        raise PlannerInputError(f"Invalid stop name(s): {', '.join(unresolved)}")

    plan = plan_between_stops(network, source, target, departure, date, preferences, config)
    return plan, origin_info, destination_info


def _location_step(stop_id: int, name: str, lat: float, lon: float, time: int, distance_km: float) -> PathStep:
    return PathStep(
        trip_id=WALK_TRIP_ID,
        stop_id=stop_id,
        stop_name=name,
        time=time,
        lat=lat,
        lon=lon,
        mode=TransportMode.WALK,
        walking=True,
        distance_km=distance_km,
    )


def _endpoint_walk_fits(distance_km: float, preferences: QueryPreferences, config: PlannerConfig) -> bool:
    if distance_km < config.endpoint_walk_threshold_km or not preferences.walking_allowed:
        return False
    if preferences.max_single_walk_km is not None and distance_km > preferences.max_single_walk_km:
        return False
    return (
        distance_km <= preferences.max_consecutive_walk_km
        and distance_km <= preferences.max_cumulative_walk_km
    )


def _nearest_stop_info(
    network: TransitNetwork,
    lat: float,
    lon: float,
    radius_km: float,
) -> tuple[int | None, float, StopResolutionInfo]:
    query = f"{lat},{lon}"
    nearest = find_nearest_stop(network, lat, lon, radius_km)
    if nearest is None:
        return None, 0.0, StopResolutionInfo(
            query=query, resolved=False, error="No nearby stop within walking distance"
        )
    stop, distance = nearest
    return stop.stop_id, distance, StopResolutionInfo(
        query=query,
        resolved_stop_id=stop.stop_id,
        resolved_stop_name=stop.name,
        distance_meters=round(distance * 1000, 1),
        resolved=True,
    )


def plan_by_coordinates(
    network: TransitNetwork,
    origin_lat: float,
    origin_lon: float,
    destination_lat: float,
    destination_lon: float,
    departure_time: str,
    date: str | None = None,
    modes: str | None = None,
    max_walk_meters: str | float | None = None,
    config: PlannerConfig | None = None,
) -> tuple[JourneyPlan, StopResolutionInfo, StopResolutionInfo]:
    """Plan between two points, walking to and from the nearest stops.

    Each point snaps to the nearest located stop within the lookup radius
    (capped by the consecutive walking limit, zero when walking is off).
    Walks to and from those stops are added as "Start location" and
    "Destination" steps when long enough to matter.

    Raises:
        PlannerInputError: If a point has no stop in range, or the time or
            preferences are invalid.
    """
    config = config or get_config()
    preferences = QueryPreferences.from_raw_inputs(modes, max_walk_meters, config)
    departure = parse_departure_time(departure_time)

    if preferences.walking_allowed:
        radius_km = min(config.stop_lookup_radius_km, preferences.max_consecutive_walk_km)
    else:
        radius_km = 0.0

    source, origin_km, origin_info = _nearest_stop_info(network, origin_lat, origin_lon, radius_km)
    target, destination_km, destination_info = _nearest_stop_info(
        network, destination_lat, destination_lon, radius_km
    )
    if source is None or target is None:
        raise PlannerInputError("No nearby stop within walking distance")

    plan = plan_between_stops(network, source, target, departure, date, preferences, config)
    if not plan.found:
        return plan, origin_info, destination_info

    segments = list(plan.segments)
    if _endpoint_walk_fits(origin_km, preferences, config):
        first = segments[0].steps[0]
        minutes = walk_minutes(origin_km, config.walking_speed_kmh)
        start = _location_step(
            START_LOCATION_ID,
            START_LOCATION_NAME,
            origin_lat,
            origin_lon,
            max(0, first.time - minutes),
            origin_km,
        )
        arrive = _location_step(
            first.stop_id, first.stop_name, first.lat, first.lon, first.time, origin_km
        )
        segments.insert(
            0,
            PathSegment(
                trip_id=WALK_TRIP_ID,
                mode=TransportMode.WALK,
                walking=True,
                distance_km=origin_km,
                steps=[start, arrive],
            ),
        )

    if _endpoint_walk_fits(destination_km, preferences, config):
        last = segments[-1].steps[-1]
        minutes = walk_minutes(destination_km, config.walking_speed_kmh)
        leave = _location_step(
            last.stop_id, last.stop_name, last.lat, last.lon, last.time, destination_km
        )
        end = _location_step(
            DESTINATION_LOCATION_ID,
            DESTINATION_LOCATION_NAME,
            destination_lat,
            destination_lon,
            last.time + minutes,
            destination_km,
        )
        segments.append(
            PathSegment(
                trip_id=WALK_TRIP_ID,
                mode=TransportMode.WALK,
                walking=True,
                distance_km=destination_km,
                steps=[leave, end],
            )
        )

    if not within_walking_budget(
        segments, preferences.max_cumulative_walk_km, preferences.max_consecutive_walk_km
    ):
        logger.info("Discarding coordinate itinerary: walking to and from stops exceeds budget")
        plan.segments = []
    else:
        plan.segments = segments
    return plan, origin_info, destination_info


# ============= Rider-facing output =============


def _to_itinerary_step(step: PathStep) -> ItineraryStep:
    return ItineraryStep(
        trip_id=step.trip_id,
        stop_id=step.stop_id,
        stop_name=step.stop_name,
        time=minutes_to_clock_time(step.time),
        lat=step.lat,
        lon=step.lon,
        walking=step.walking,
        walk_distance_km=round(step.distance_km, 4) if step.walking else 0.0,
        mode=step.mode.value,
    )


def _ride_distance_km(steps: list[PathStep]) -> float:
    total = 0.0
    for a, b in zip(steps, steps[1:]):
        if (a.lat, a.lon) != (0.0, 0.0) and (b.lat, b.lon) != (0.0, 0.0):
            total += haversine_km(a.lat, a.lon, b.lat, b.lon)
    return total


def build_legs(network: TransitNetwork, segments: list[PathSegment]) -> list[JourneyLeg]:
    """Group itinerary segments into rider-facing legs (source marker skipped)."""
    legs: list[JourneyLeg] = []
    for segment in segments:
        if segment.is_source_marker or not segment.steps:
            continue
        first = segment.steps[0]
        last = segment.steps[-1]

        operator = None
        line = None
        if segment.is_transit:
            trip = network.trips[segment.trip_id]
            operator = network.operator_for(trip)
            line = trip.route_id
            distance = _ride_distance_km(segment.steps)
        else:
            distance = segment.distance_km

        legs.append(
            JourneyLeg(
                trip_id=segment.trip_id,
                mode=segment.mode.value,
                operator=operator,
                line=line,
                from_stop_name=first.stop_name,
                to_stop_name=last.stop_name,
                departure_time=minutes_to_clock_time(first.time),
                departure_time_formatted=format_clock_time(first.time),
                arrival_time=minutes_to_clock_time(last.time),
                arrival_time_formatted=format_clock_time(last.time),
                duration_minutes=last.time - first.time,
                distance_km=round(distance, 3),
                stops=[
                    LegStop(
                        stop_id=step.stop_id,
                        stop_name=step.stop_name,
                        time=minutes_to_clock_time(step.time),
                        lat=step.lat,
                        lon=step.lon,
                    )
                    for step in segment.steps
                ],
            )
        )
    return legs


def build_summary(plan: JourneyPlan) -> JourneySummary | None:
    steps = plan.steps
    if not steps:
        return None
    rides = sum(1 for segment in plan.segments if segment.is_transit)
    total_walk, _ = walking_totals(plan.segments)
    return JourneySummary(
        departure_time=minutes_to_clock_time(steps[0].time),
        arrival_time=minutes_to_clock_time(steps[-1].time),
        duration_minutes=steps[-1].time - steps[0].time,
        transfers=max(0, rides - 1),
        total_walk_km=round(total_walk, 3),
        day_type=plan.day_type.value,
        algorithm=plan.algorithm,
    )


def to_response(
    network: TransitNetwork,
    plan: JourneyPlan,
    origin_info: StopResolutionInfo,
    destination_info: StopResolutionInfo,
    departure_time: str,
    date: str | None,
) -> PlanJourneyResponse:
    steps = [_to_itinerary_step(step) for step in plan.steps]
    return PlanJourneyResponse(
        origin_resolution=origin_info,
        destination_resolution=destination_info,
        steps=steps,
        legs=build_legs(network, plan.segments),
        summary=build_summary(plan),
        departure_time=departure_time,
        date=date,
        count=len(steps),
        success=True,
    )


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
    """Plan a journey by stop names or by coordinates.

    Coordinates win when both a lat and lon are given for an endpoint pair.
    Departure time and date default to now.

    Returns:
        PlanJourneyResponse. Input problems come back with error_type "input",
        unexpected failures with "internal"; an empty itinerary with
        success=True means no route was found.
    """
    now = datetime.now()
    if departure_time is None:
        departure_time = now.strftime("%H:%M")
    if date is None:
        date = now.date().isoformat()

    try:
        network = await NetworkStore.get_instance()
        use_coordinates = None not in (origin_lat, origin_lon, destination_lat, destination_lon)
        if use_coordinates:
            plan, origin_info, destination_info = plan_by_coordinates(
                network,
                origin_lat,
                origin_lon,
                destination_lat,
                destination_lon,
                departure_time,
                date,
                modes,
                max_walk_meters,
            )
        elif origin and destination:
            plan, origin_info, destination_info = plan_by_names(
                network, origin, destination, departure_time, date, modes, max_walk_meters
            )
        else:
            raise PlannerInputError(
                "Provide origin and destination names, or both coordinate pairs"
            )
        return to_response(network, plan, origin_info, destination_info, departure_time, date)
    except PlannerInputError as e:
        return PlanJourneyResponse(
            departure_time=departure_time,
            date=date,
            success=False,
            error=str(e),
            error_type="input",
        )
    except Exception as e:
        logger.exception("Journey planning failed")
        return PlanJourneyResponse(
            departure_time=departure_time,
            date=date,
            success=False,
            error=str(e),
            error_type="internal",
        )
