"""Round-based earliest-arrival search (RAPTOR) with walking transfers."""

import logging
from collections.abc import Iterable

from journey_planner.models.network import TransitNetwork, Trip
from journey_planner.models.preferences import QueryPreferences
from journey_planner.services.search import (
    Label,
    SearchState,
    cheapest_boarding,
    ride_label,
    walk_from,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 5


def group_trips_by_route(trips: Iterable[Trip]) -> dict[str, list[Trip]]:
    by_route: dict[str, list[Trip]] = {}
    for trip in trips:
        by_route.setdefault(trip.route_id, []).append(trip)
    return by_route


def _scan_route(
    state: SearchState,
    labels: list[Label],
    route_trips: list[Trip],
    improved: list[Label],
) -> None:
    """Board every usable trip of one route from ``labels`` and ride it to the end.

    All of ``labels`` sit at the same stop. A trip visiting that stop more
    than once can be boarded at each visit.
    """
    stop = labels[0].stop
    boardable: list[tuple[int, str, int, Trip]] = []
    for trip in route_trips:
        for board_index in trip.positions_of(stop):
            boardable.append(
                (trip.stop_times[board_index].minutes, trip.trip_id, board_index, trip)
            )
    boardable.sort(key=lambda item: item[:3])

    for board_time, _, board_index, trip in boardable:
        parent = cheapest_boarding(labels, board_time)
        if parent is None:
            continue

        stop_times = trip.stop_times
        if board_index + 1 >= len(stop_times) or stop_times[board_index + 1].minutes <= board_time:
            continue

        for alight_index in range(board_index + 1, len(stop_times)):
            stop_time = stop_times[alight_index]
            # Hops that do not move forward in time cannot be ridden
            if stop_time.minutes <= stop_times[alight_index - 1].minutes:
                break
            label = ride_label(
                parent,
                trip.trip_id,
                trip.mode,
                board_time,
                board_index,
                stop_time.stop_id,
                stop_time.minutes,
                alight_index,
            )
            if state.add(label):
                improved.append(label)


def run_raptor(
    network: TransitNetwork,
    source: int,
    departure_time: int,
    trips: Iterable[Trip],
    preferences: QueryPreferences,
    max_rounds: int = DEFAULT_MAX_ROUNDS,
) -> SearchState:
    """Compute earliest arrivals from ``source`` with at most ``max_rounds`` boardings.

    Footpaths from the source are followed first. Each round then boards
    trips from the labels the previous round produced and follows footpaths
    from every stop it improved, so a round adds exactly one vehicle
    boarding. The search stops early once a round improves nothing.

    Args:
        network: The transit network snapshot.
        source: Origin stop id.
        departure_time: Minutes since midnight.
        trips: Trips running on the query's day type.
        preferences: Walking caps applied to footpaths.
        max_rounds: Upper bound on rounds.

    Returns:
        The search state with earliest arrivals and labels.
    """
    state = SearchState(network.stop_count, algorithm="raptor")
    origin = state.seed(source, departure_time)
    trips_by_route = group_trips_by_route(trips)

    frontier = [origin, *walk_from(network, state, [origin], preferences)]
    for round_number in range(1, max_rounds + 1):
        by_stop: dict[int, list[Label]] = {}
        for label in frontier:
            by_stop.setdefault(label.stop, []).append(label)

        improved: list[Label] = []
        for stop in sorted(by_stop):
            for route_id in network.routes_for_stop(stop):
                route_trips = trips_by_route.get(route_id)
                if route_trips:
                    _scan_route(state, by_stop[stop], route_trips, improved)
        improved.extend(walk_from(network, state, list(improved), preferences))

        logger.debug(f"Round {round_number}: {len(improved)} labels improved")
        if not improved:
            break
        frontier = improved

    return state
