"""Per-query search state shared by both route-finding engines.

Each stop keeps a bag of labels that do not dominate one another on
(arrival, cumulative walk, consecutive walk). A label links back to the
label it was extended from, so every arrival is backed by a real sequence
of rides and walks.
"""

import math
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

from journey_planner.models.network import TransitNetwork, TransportMode
from journey_planner.models.preferences import QueryPreferences

UNREACHED = math.inf

# Tolerance when comparing walking distances
WALK_EPSILON = 1e-6

WALK_TRIP_ID = "WALK"


@dataclass(frozen=True)
class Predecessor:
    """The hop that produced a label.

    Transit hops record the trip and the board/alight positions on it;
    walking hops record the footpath distance and use the "WALK" trip id.
    """

    trip_id: str
    from_stop: int
    arrival_time: int
    board_time: int
    mode: TransportMode
    walking: bool = False
    distance_km: float = 0.0
    board_index: int | None = None
    alight_index: int | None = None


def is_better_state(
    arrival: float,
    total_walk: float,
    consecutive_walk: float,
    best_arrival: float,
    best_total_walk: float,
    best_consecutive_walk: float,
) -> bool:
    """Three-way dominance: earlier arrival, then less walking, then shorter walk run."""
    if arrival < best_arrival:
        return True
    if arrival > best_arrival:
        return False
    if total_walk < best_total_walk - WALK_EPSILON:
        return True
    if total_walk > best_total_walk + WALK_EPSILON:
        return False
    return consecutive_walk < best_consecutive_walk - WALK_EPSILON


@dataclass(frozen=True, eq=False)
class Label:
    """One way of reaching a stop. The query origin has no predecessor."""

    stop: int
    arrival: int
    total_walk: float
    consecutive_walk: float
    predecessor: Predecessor | None = None
    parent: "Label | None" = None

    def dominates(self, other: "Label") -> bool:
        return (
            self.arrival <= other.arrival
            and self.total_walk <= other.total_walk + WALK_EPSILON
            and self.consecutive_walk <= other.consecutive_walk + WALK_EPSILON
        )

    def is_better_than(self, other: "Label | None") -> bool:
        if other is None:
            return True
        return is_better_state(
            self.arrival,
            self.total_walk,
            self.consecutive_walk,
            other.arrival,
            other.total_walk,
            other.consecutive_walk,
        )


class SearchState:
    """Labels and earliest arrivals for one query.

    ``bags`` is an arena keyed by stop id. ``earliest_arrival`` and ``best``
    track the three-way best label seen at each stop. A fresh instance is
    created for every query.
    """

    def __init__(self, stop_count: int, algorithm: str) -> None:
        self.algorithm = algorithm
        self.earliest_arrival: list[float] = [UNREACHED] * stop_count
        self.best: list[Label | None] = [None] * stop_count
        self.bags: dict[int, list[Label]] = {}
        self.source: int | None = None
        self.departure_time: int | None = None

    def seed(self, source: int, departure_time: int) -> Label:
        self.source = source
        self.departure_time = departure_time
        origin = Label(stop=source, arrival=departure_time, total_walk=0.0, consecutive_walk=0.0)
        self.add(origin)
        return origin

    def add(self, label: Label) -> bool:
        """Keep ``label`` unless a label already at its stop dominates it."""
        bag = self.bags.setdefault(label.stop, [])
        if any(existing.dominates(label) for existing in bag):
            return False
        bag[:] = [existing for existing in bag if not label.dominates(existing)]
        bag.append(label)

        if label.arrival < self.earliest_arrival[label.stop]:
            self.earliest_arrival[label.stop] = label.arrival
        if label.is_better_than(self.best[label.stop]):
            self.best[label.stop] = label
        return True

    def holds(self, label: Label) -> bool:
        return any(existing is label for existing in self.bags.get(label.stop, ()))

    def labels_at(self, stop: int) -> list[Label]:
        return list(self.bags.get(stop, ()))

    def best_label(self, stop: int) -> Label | None:
        return self.best[stop]

    def is_reached(self, stop: int) -> bool:
        return self.earliest_arrival[stop] != UNREACHED

    def arrival_at(self, stop: int) -> int | None:
        arrival = self.earliest_arrival[stop]
        return None if arrival == UNREACHED else int(arrival)


def cheapest_boarding(labels: Iterable[Label], board_time: int) -> Label | None:
    """The label that makes a departure at ``board_time`` with the least walking so far."""
    chosen: Label | None = None
    for label in labels:
        if label.arrival > board_time:
            continue
        if chosen is None or (label.total_walk, label.arrival) < (chosen.total_walk, chosen.arrival):
            chosen = label
    return chosen


def ride_label(
    parent: Label,
    trip_id: str,
    mode: TransportMode,
    board_time: int,
    board_index: int,
    alight_stop: int,
    alight_time: int,
    alight_index: int,
) -> Label:
    """Extend ``parent`` by a ride. Riding adds no walking and ends any walking run."""
    return Label(
        stop=alight_stop,
        arrival=alight_time,
        total_walk=parent.total_walk,
        consecutive_walk=0.0,
        predecessor=Predecessor(
            trip_id=trip_id,
            from_stop=parent.stop,
            arrival_time=alight_time,
            board_time=board_time,
            mode=mode,
            board_index=board_index,
            alight_index=alight_index,
        ),
        parent=parent,
    )


def within_walking_limits(
    preferences: QueryPreferences,
    distance_km: float,
    total_walk: float,
    consecutive_walk: float,
) -> bool:
    """Check a footpath against the single, cumulative and consecutive caps."""
    if not preferences.walking_allowed:
        return False
    single = preferences.max_single_walk_km
    if single is not None and distance_km > single + WALK_EPSILON:
        return False
    if total_walk > preferences.max_cumulative_walk_km + WALK_EPSILON:
        return False
    return consecutive_walk <= preferences.max_consecutive_walk_km + WALK_EPSILON


def walk_from(
    network: TransitNetwork,
    state: SearchState,
    labels: Iterable[Label],
    preferences: QueryPreferences,
    target: int | None = None,
) -> list[Label]:
    """Extend labels breadth-first over footpaths within the walking caps.

    Labels that reach ``target`` are not extended further.

    Returns:
        Every label added on the way.
    """
    added: list[Label] = []
    if not preferences.walking_allowed:
        return added

    queue = deque(labels)
    while queue:
        label = queue.popleft()
        if not state.holds(label):
            continue
        for edge in network.edges_from(label.stop):
            total = label.total_walk + edge.distance_km
            consecutive = label.consecutive_walk + edge.distance_km
            if not within_walking_limits(preferences, edge.distance_km, total, consecutive):
                continue
            arrival = label.arrival + edge.minutes
            walked = Label(
                stop=edge.to_stop,
                arrival=arrival,
                total_walk=total,
                consecutive_walk=consecutive,
                predecessor=Predecessor(
                    trip_id=WALK_TRIP_ID,
                    from_stop=label.stop,
                    arrival_time=arrival,
                    board_time=label.arrival,
                    mode=TransportMode.WALK,
                    walking=True,
                    distance_km=edge.distance_km,
                ),
                parent=label,
            )
            if state.add(walked):
                added.append(walked)
                if edge.to_stop != target:
                    queue.append(walked)
    return added
