"""Itinerary reconstruction from a search's label chains."""

from dataclasses import dataclass, field

from journey_planner.models.network import Stop, TransitNetwork, TransportMode, Trip
from journey_planner.services.search import WALK_EPSILON, Predecessor, SearchState

SOURCE_TRIP_ID = "SOURCE"


@dataclass
class PathStep:
    """One stop visit in an itinerary. ``time`` is minutes since midnight."""

    trip_id: str
    stop_id: int
    stop_name: str
    time: int
    lat: float
    lon: float
    mode: TransportMode
    walking: bool = False
    distance_km: float = 0.0


@dataclass
class PathSegment:
    """A ride on one trip, one footpath, or the synthetic source marker."""

    trip_id: str
    mode: TransportMode
    walking: bool = False
    distance_km: float = 0.0
    steps: list[PathStep] = field(default_factory=list)

    @property
    def is_source_marker(self) -> bool:
        return self.trip_id == SOURCE_TRIP_ID

    @property
    def is_transit(self) -> bool:
        return not self.walking and not self.is_source_marker


def _step(
    stop: Stop,
    trip_id: str,
    time: int,
    mode: TransportMode,
    walking: bool = False,
    distance_km: float = 0.0,
) -> PathStep:
    return PathStep(
        trip_id=trip_id,
        stop_id=stop.stop_id,
        stop_name=stop.name,
        time=time,
        lat=stop.lat,
        lon=stop.lon,
        mode=mode,
        walking=walking,
        distance_km=distance_km,
    )


def _locate_ride(trip: Trip, predecessor: Predecessor, alight_stop: int) -> tuple[int, int]:
    """Board and alight positions of a ride on ``trip``."""
    board = predecessor.board_index
    alight = predecessor.alight_index
    stop_times = trip.stop_times
    if (
        board is not None
        and alight is not None
        and 0 <= board < alight < len(stop_times)
        and stop_times[board].stop_id == predecessor.from_stop
        and stop_times[alight].stop_id == alight_stop
    ):
        return board, alight

    for i, stop_time in enumerate(stop_times):
        if stop_time.stop_id == predecessor.from_stop and stop_time.minutes == predecessor.board_time:
            for j in range(i + 1, len(stop_times)):
                if stop_times[j].stop_id == alight_stop and stop_times[j].minutes == predecessor.arrival_time:
                    return i, j
    raise RuntimeError(
        f"Trip {trip.trip_id} does not run from stop {predecessor.from_stop} to {alight_stop}"
    )


def _segment_for(network: TransitNetwork, predecessor: Predecessor, stop_id: int) -> PathSegment:
    if predecessor.walking:
        return PathSegment(
            trip_id=predecessor.trip_id,
            mode=TransportMode.WALK,
            walking=True,
            distance_km=predecessor.distance_km,
            steps=[
                _step(
                    network.stop(predecessor.from_stop),
                    predecessor.trip_id,
                    predecessor.board_time,
                    TransportMode.WALK,
                    walking=True,
                    distance_km=predecessor.distance_km,
                ),
                _step(
                    network.stop(stop_id),
                    predecessor.trip_id,
                    predecessor.arrival_time,
                    TransportMode.WALK,
                    walking=True,
                    distance_km=predecessor.distance_km,
                ),
            ],
        )

    trip = network.trips[predecessor.trip_id]
    board, alight = _locate_ride(trip, predecessor, stop_id)
    return PathSegment(
        trip_id=trip.trip_id,
        mode=trip.mode,
        steps=[
            _step(network.stop(stop_time.stop_id), trip.trip_id, stop_time.minutes, trip.mode)
            for stop_time in trip.stop_times[board : alight + 1]
        ],
    )


def reconstruct_segments(network: TransitNetwork, state: SearchState, target: int) -> list[PathSegment]:
    """Follow the target's best label back to the origin as forward-ordered segments.

    Consecutive hops on the same trip are merged into one ride. If the result
    does not start at the query's source, a "SOURCE" marker segment is put
    first. An unreached target yields an empty list.

    Raises:
        RuntimeError: If a ride does not match its trip's timetable.
    """
    source = state.source
    label = state.best_label(target) if source is not None else None
    if label is None:
        return []

    reversed_segments: list[PathSegment] = []
    while label.predecessor is not None and label.parent is not None:
        segment = _segment_for(network, label.predecessor, label.stop)
        if (
            reversed_segments
            and segment.is_transit
            and reversed_segments[-1].trip_id == segment.trip_id
        ):
            later = reversed_segments[-1]
            later.steps = segment.steps[:-1] + later.steps
        else:
            reversed_segments.append(segment)
        label = label.parent

    segments = list(reversed(reversed_segments))
    if not segments or segments[0].steps[0].stop_id != source:
        start_time = segments[0].steps[0].time if segments else state.departure_time
        segments.insert(
            0,
            PathSegment(
                trip_id=SOURCE_TRIP_ID,
                mode=TransportMode.UNKNOWN,
                steps=[_step(network.stop(source), SOURCE_TRIP_ID, start_time, TransportMode.UNKNOWN)],
            ),
        )
    return segments


def flatten_steps(segments: list[PathSegment]) -> list[PathStep]:
    return [step for segment in segments for step in segment.steps]


def walking_totals(segments: list[PathSegment]) -> tuple[float, float]:
    """Total walking distance and the longest unbroken walking run, in km.

    Each footpath counts once, however many steps it produced.
    """
    total = 0.0
    longest_run = 0.0
    run = 0.0
    for segment in segments:
        if segment.walking:
            total += segment.distance_km
            run += segment.distance_km
            longest_run = max(longest_run, run)
        elif segment.is_transit:
            run = 0.0
    return total, longest_run


def within_walking_budget(
    segments: list[PathSegment],
    max_cumulative_km: float,
    max_consecutive_km: float,
) -> bool:
    total, longest_run = walking_totals(segments)
    return (
        total <= max_cumulative_km + WALK_EPSILON
        and longest_run <= max_consecutive_km + WALK_EPSILON
    )
