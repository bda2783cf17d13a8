"""In-memory transit network records.

Stops, trips and walking edges are created once per dataset load and never
mutated afterwards; a ``TransitNetwork`` bundles them into one snapshot that
every query reads from.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class TransportMode(str, Enum):
    """Mode label carried by trips and itinerary steps."""

    TRAIN = "TRAIN"
    BUS = "BUS"
    UNKNOWN = "UNKNOWN"
    WALK = "WALK"  # itinerary steps only, never a trip


# Modes a rider can restrict a query to
TRANSIT_MODES = frozenset({TransportMode.TRAIN, TransportMode.BUS})


class DayType(str, Enum):
    """Service calendar bucket a trip operates under."""

    WEEKDAY = "WEEKDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"
    PUBLIC_HOLIDAY = "PUBLIC_HOLIDAY"


@dataclass(frozen=True)
class Stop:
    """A boarding location. (0, 0) coordinates mean "unresolved"."""

    stop_id: int
    name: str
    lat: float = 0.0
    lon: float = 0.0

    @property
    def has_coordinates(self) -> bool:
        return not (self.lat == 0.0 and self.lon == 0.0)


class StopTime(NamedTuple):
    stop_id: int
    minutes: int  # since midnight, may exceed 1440


@dataclass(frozen=True)
class Trip:
    """One scheduled vehicle run."""

    trip_id: str
    route_id: str
    day_type: DayType
    mode: TransportMode
    stop_times: tuple[StopTime, ...]

    def positions_of(self, stop_id: int) -> list[int]:
        """Every position at which the trip visits a stop, in travel order."""
        return [i for i, stop_time in enumerate(self.stop_times) if stop_time.stop_id == stop_id]


@dataclass(frozen=True)
class WalkingEdge:
    from_stop: int
    to_stop: int
    minutes: int
    distance_km: float


@dataclass(frozen=True)
class TransitNetwork:
    """Immutable snapshot of stops, routes, trips and footpaths.

    Stop ids are dense, so ``stops[i].stop_id == i``.
    """

    stops: tuple[Stop, ...]
    stop_ids_by_name: dict[str, int]
    routes: dict[str, tuple[int, ...]]  # route_id -> ordered stop ids
    stop_routes: dict[int, tuple[str, ...]]  # stop_id -> route ids
    trips: dict[str, Trip]
    walking_edges: dict[int, tuple[WalkingEdge, ...]]
    route_operators: dict[str, str] = field(default_factory=dict)
    purged_routes: frozenset[str] = frozenset()

    @property
    def stop_count(self) -> int:
        return len(self.stops)

    def stop(self, stop_id: int) -> Stop:
        return self.stops[stop_id]

    def stop_by_name(self, name: str) -> Stop | None:
        stop_id = self.stop_ids_by_name.get(name.strip().upper())
        return self.stops[stop_id] if stop_id is not None else None

    def routes_for_stop(self, stop_id: int) -> tuple[str, ...]:
        return self.stop_routes.get(stop_id, ())

    def edges_from(self, stop_id: int) -> tuple[WalkingEdge, ...]:
        return self.walking_edges.get(stop_id, ())

    def operator_for(self, trip: Trip) -> str | None:
        return self.route_operators.get(trip.route_id)

    def filter_trips(
        self,
        day_type: DayType,
        modes: frozenset[TransportMode] | None = None,
    ) -> list[Trip]:
        """Trips running on a day type, optionally restricted to some modes."""
        return [
            trip
            for trip in self.trips.values()
            if trip.day_type == day_type
            and trip.route_id not in self.purged_routes
            and (modes is None or trip.mode in modes)
        ]

    def has_trips_for(self, day_type: DayType) -> bool:
        return any(trip.day_type == day_type for trip in self.trips.values())

    def stats(self) -> dict[str, int]:
        return {
            "stops": len(self.stops),
            "routes": len(self.routes),
            "trips": len(self.trips),
            "walking_edges": sum(len(edges) for edges in self.walking_edges.values()),
            "purged_routes": len(self.purged_routes),
        }
