"""Connection Scan Algorithm with interleaved footpath propagation."""

import logging
from collections.abc import Iterable
from typing import NamedTuple

from journey_planner.models.network import TransitNetwork, TransportMode, Trip
from journey_planner.models.preferences import QueryPreferences
from journey_planner.services.search import (
    UNREACHED,
    SearchState,
    cheapest_boarding,
    ride_label,
    walk_from,
)

logger = logging.getLogger(__name__)


class Connection(NamedTuple):
    """One hop between consecutive stops of a trip."""

    departure_time: int
    arrival_time: int
    trip_id: str
    board_index: int
    from_stop: int
    to_stop: int
    mode: TransportMode


def build_connections(trips: Iterable[Trip], preferences: QueryPreferences) -> list[Connection]:
    """Flatten trips into connections sorted by (departure, arrival).

    Hops that do not move forward in time and hops on disallowed modes are
    dropped.
    """
    connections: list[Connection] = []
    for trip in trips:
        if not preferences.allows_mode(trip.mode):
            continue
        stop_times = trip.stop_times
        for i in range(len(stop_times) - 1):
            depart = stop_times[i]
            arrive = stop_times[i + 1]
            if arrive.minutes <= depart.minutes:
                continue
            connections.append(
                Connection(
                    departure_time=depart.minutes,
                    arrival_time=arrive.minutes,
                    trip_id=trip.trip_id,
                    board_index=i,
                    from_stop=depart.stop_id,
                    to_stop=arrive.stop_id,
                    mode=trip.mode,
                )
            )
    connections.sort()
    return connections


def run_connection_scan(
    network: TransitNetwork,
    source: int,
    target: int,
    departure_time: int,
    trips: Iterable[Trip],
    preferences: QueryPreferences,
) -> SearchState:
    """Compute earliest arrivals by scanning time-sorted connections once.

    Footpaths are followed breadth-first right after seeding and after every
    connection that adds a label, never onward from the target.

    Args:
        network: The transit network snapshot.
        source: Origin stop id.
        target: Destination stop id; the scan stops once no connection can
            improve it.
        departure_time: Minutes since midnight.
        trips: Trips running on the query's day type.
        preferences: Mode filter and walking caps.

    Returns:
        The search state with earliest arrivals and labels.
    """
    state = SearchState(network.stop_count, algorithm="csa")
    origin = state.seed(source, departure_time)
    walk_from(network, state, [origin], preferences, target=target)

    connections = build_connections(trips, preferences)
    logger.debug(f"Scanning {len(connections)} connections")

    for connection in connections:
        best_target = state.earliest_arrival[target]
        if best_target != UNREACHED and connection.departure_time > best_target:
            break

        parent = cheapest_boarding(state.labels_at(connection.from_stop), connection.departure_time)
        if parent is None:
            continue

        label = ride_label(
            parent,
            connection.trip_id,
            connection.mode,
            connection.departure_time,
            connection.board_index,
            connection.to_stop,
            connection.arrival_time,
            connection.board_index + 1,
        )
        if state.add(label) and connection.to_stop != target:
            walk_from(network, state, [label], preferences, target=target)

    return state
