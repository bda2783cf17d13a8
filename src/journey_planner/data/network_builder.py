"""Transit network construction from timetable rows.

Turns per-trip timetable rows into a deduplicated stop table, route and
trip indexes and a walking-transfer graph, then freezes everything into an
immutable ``TransitNetwork``.
"""

import logging
import math
from collections.abc import Sequence
from pathlib import Path

from journey_planner.data.config import PlannerConfig, get_config
from journey_planner.matching.coordinate_matcher import CoordinateResolver
from journey_planner.matching.normalizers import (
    is_via_marker,
    normalize_day_type,
    normalize_stop_name,
)
from journey_planner.models.network import (
    DayType,
    Stop,
    StopTime,
    TransitNetwork,
    TransportMode,
    Trip,
    WalkingEdge,
)
from journey_planner.services.geo import degrees_latitude, haversine_km, walk_minutes
from journey_planner.services.schedule_service import (
    MAX_TIMETABLE_HOUR,
    clock_time_to_minutes,
    is_timetable_time,
)

logger = logging.getLogger(__name__)

# Train timetable columns; stop columns start after these
TRAIN_TRIP_ID_COL = 0
TRAIN_DAY_TYPE_COL = 1
TRAIN_DIRECTION_COL = 2
TRAIN_ROUTE_COL = 3
TRAIN_FIRST_STOP_COL = 4

TRAIN_OPERATOR = "METRORAIL"

# A drop larger than this between consecutive times is read as a midnight wrap
MIDNIGHT_WRAP_THRESHOLD_MINUTES = 12 * 60


def _cell(row: Sequence[str], index: int) -> str:
    return row[index].strip() if index < len(row) and row[index] is not None else ""


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def interpolate_via_times(minutes: list[int | None], via_markers: list[bool]) -> None:
    """Fill VIA cells in place by interpolating between known times.

    Each maximal run of unfilled VIA cells bounded by known times on both
    sides gets linearly spaced times. An estimate that does not exceed the
    previous value in the run is bumped to previous + 1, and a cell whose
    estimate reaches the next known time stays unset. Runs missing either
    bound stay unset. A run spanning midnight is interpolated past 1440.
    """
    n = len(minutes)
    i = 0
    while i < n:
        if not via_markers[i] or minutes[i] is not None:
            i += 1
            continue

        start = i
        while i < n and via_markers[i] and minutes[i] is None:
            i += 1

        prev_idx = start - 1
        while prev_idx >= 0 and minutes[prev_idx] is None:
            prev_idx -= 1
        next_idx = i
        while next_idx < n and minutes[next_idx] is None:
            next_idx += 1
        if prev_idx < 0 or next_idx >= n:
            continue

        prev_val = minutes[prev_idx]
        next_val = minutes[next_idx]
        if prev_val - next_val > MIDNIGHT_WRAP_THRESHOLD_MINUTES:
            next_val += 1440
        gap = next_idx - prev_idx
        step = (next_val - prev_val) / gap
        last_value = prev_val
        for offset in range(1, gap):
            idx = prev_idx + offset
            if not via_markers[idx] or minutes[idx] is not None:
                if minutes[idx] is not None:
                    last_value = minutes[idx]
                continue
            estimate = _round_half_up(prev_val + step * offset)
            if estimate <= last_value:
                estimate = last_value + 1
            if estimate >= next_val:
                # No room before the next known time; the cell stays unset
                continue
            minutes[idx] = estimate
            last_value = estimate


def _enforce_monotonic(stop_times: list[StopTime]) -> list[StopTime] | None:
    """Return stop times in non-decreasing order, or None if they cannot be.

    Midnight wraps ("23:50" followed by "00:10") are carried past 1440.
    """
    fixed: list[StopTime] = []
    offset = 0
    previous: int | None = None
    for stop_time in stop_times:
        value = stop_time.minutes + offset
        if previous is not None and value < previous:
            if previous - value <= MIDNIGHT_WRAP_THRESHOLD_MINUTES:
                return None
            offset += 1440
            value += 1440
        fixed.append(StopTime(stop_time.stop_id, value))
        previous = value
    return fixed


class NetworkBuilder:
    """Accumulates timetable rows into a transit network.

    Usage:
        builder = NetworkBuilder(resolver)
        builder.add_train_rows(rows)
        builder.add_bus_rows(rows, "T01.csv", "MYCITI")
        network = builder.build()  # purges invalid routes, builds footpaths

    Coordinate tables must be loaded into the resolver before timetable rows
    are added, since a stop's coordinates are fixed when it is first seen.
    """

    def __init__(
        self,
        resolver: CoordinateResolver | None = None,
        config: PlannerConfig | None = None,
    ) -> None:
        self.config = config or get_config()
        self.resolver = resolver or CoordinateResolver(
            min_contains_length=self.config.match_min_contains_length,
            max_prefix_length_diff=self.config.match_max_prefix_length_diff,
        )

        self.stops: list[Stop] = []
        self.stop_ids_by_name: dict[str, int] = {}
        self.routes: dict[str, list[int]] = {}  # route_id -> ordered stop ids
        self.stop_routes: dict[int, list[str]] = {}  # stop_id -> route ids
        self.trips: dict[str, Trip] = {}
        self.route_operators: dict[str, str] = {}
        self.invalid_routes: set[str] = set()
        self.purged_routes: set[str] = set()
        self.walking_edges: dict[int, list[WalkingEdge]] = {}

        self._purged = False
        self._edges_built = False

    # ============= Stops and routes =============

    def stop_id_for(self, name: str) -> int:
        """Return the id for a stop name, allocating a new stop on first sight."""
        normalized = normalize_stop_name(name)
        stop_id = self.stop_ids_by_name.get(normalized)
        if stop_id is not None:
            return stop_id

        coords = self.resolver.resolve(normalized)
        lat, lon = coords if coords is not None else (0.0, 0.0)
        stop_id = len(self.stops)
        self.stops.append(Stop(stop_id=stop_id, name=normalized, lat=lat, lon=lon))
        self.stop_ids_by_name[normalized] = stop_id
        if coords is None:
            logger.debug(f"No coordinates for stop {normalized!r}")
        return stop_id

    def _attach(self, route_id: str, stop_id: int) -> None:
        route_stops = self.routes.setdefault(route_id, [])
        if stop_id not in route_stops:
            route_stops.append(stop_id)
        stop_routes = self.stop_routes.setdefault(stop_id, [])
        if route_id not in stop_routes:
            stop_routes.append(route_id)
        if not self.stops[stop_id].has_coordinates:
            self.invalid_routes.add(route_id)

    def _add_trip(
        self,
        trip_id: str,
        route_id: str,
        day_type: DayType,
        mode: TransportMode,
        stop_times: list[StopTime],
    ) -> bool:
        if trip_id in self.trips:
            logger.warning(f"Duplicate trip id {trip_id}, keeping the first occurrence")
            return False
        if len(stop_times) < 2:
            logger.debug(f"Skipping trip {trip_id} with fewer than two stop times")
            return False

        ordered = _enforce_monotonic(stop_times)
        if ordered is None:
            logger.warning(f"Skipping trip {trip_id}: stop times run backwards")
            return False

        for stop_time in ordered:
            self._attach(route_id, stop_time.stop_id)
        self.trips[trip_id] = Trip(
            trip_id=trip_id,
            route_id=route_id,
            day_type=day_type,
            mode=mode,
            stop_times=tuple(ordered),
        )
        return True

    # ============= Train timetables =============

    def add_train_rows(self, rows: Sequence[Sequence[str]]) -> int:
        """Ingest train timetable rows.

        Row layout: [trip id, day type, direction, route id, time...], with
        stop names as column headers from the fifth column onward. Inbound
        rows are reversed into travel order.

        Returns:
            Number of trips added.
        """
        if not rows:
            return 0
        headers = rows[0]
        added = 0

        for row in rows[1:]:
            if len(row) < TRAIN_FIRST_STOP_COL:
                continue
            base_trip_id = _cell(row, TRAIN_TRIP_ID_COL)
            route_id = _cell(row, TRAIN_ROUTE_COL)
            if not base_trip_id or not route_id:
                continue

            day_type = normalize_day_type(_cell(row, TRAIN_DAY_TYPE_COL))
            direction = _cell(row, TRAIN_DIRECTION_COL)

            stop_times: list[StopTime] = []
            for col in range(TRAIN_FIRST_STOP_COL, min(len(row), len(headers))):
                stop_name = _cell(headers, col)
                value = _cell(row, col)
                if not stop_name or not value:
                    continue
                if not is_timetable_time(value):
                    logger.debug(f"Ignoring non-time cell {value!r} in train {base_trip_id}")
                    continue
                stop_id = self.stop_id_for(stop_name)
                stop_times.append(StopTime(stop_id, clock_time_to_minutes(value)))

            if direction.lower() == "inbound":
                stop_times.reverse()

            trip_id = f"{base_trip_id}_{day_type.value}"
            if self._add_trip(trip_id, route_id, day_type, TransportMode.TRAIN, stop_times):
                self.route_operators.setdefault(route_id, TRAIN_OPERATOR)
                added += 1

        return added

    # ============= Bus timetables =============

    def add_bus_rows(
        self,
        rows: Sequence[Sequence[str]],
        route_file_name: str,
        operator: str | None = None,
    ) -> int:
        """Ingest one bus timetable file.

        The route id is the upper-cased file stem. The first header cell says
        whether rows carry a route number: "route_number" means yes,
        "day_type" means no, otherwise yes when there is more than one header.
        Remaining columns are stops holding times or VIA markers.

        Returns:
            Number of trips added.
        """
        if not rows:
            return 0

        route_id = Path(route_file_name).stem.strip().upper()
        if not route_id:
            return 0
        if operator and operator.strip():
            self.route_operators[route_id] = operator.strip().upper()

        headers = rows[0]
        first_header = _cell(headers, 0).lower()
        include_route_number = first_header == "route_number" or (
            first_header != "day_type" and len(headers) > 1
        )
        day_type_idx = 1 if include_route_number else 0
        data_start = 2 if include_route_number else 1
        trip_prefix = "BUS" if include_route_number else "GABS"

        stop_columns = [
            (col, _cell(headers, col))
            for col in range(data_start, len(headers))
            if _cell(headers, col)
        ]

        added = 0
        for row_number, row in enumerate(rows[1:], start=1):
            if len(row) <= day_type_idx:
                continue
            raw_day_type = _cell(row, day_type_idx)
            if not raw_day_type:
                continue
            day_type = normalize_day_type(raw_day_type)

            minutes: list[int | None] = []
            via_markers: list[bool] = []
            for col, _ in stop_columns:
                value = _cell(row, col)
                if value and is_timetable_time(value):
                    minutes.append(clock_time_to_minutes(value, MAX_TIMETABLE_HOUR))
                    via_markers.append(False)
                else:
                    minutes.append(None)
                    via_markers.append(bool(value) and is_via_marker(value))

            interpolate_via_times(minutes, via_markers)

            stop_times = [
                StopTime(self.stop_id_for(stop_name), value)
                for (_, stop_name), value in zip(stop_columns, minutes)
                if value is not None
            ]

            trip_id = f"{trip_prefix}_{route_id}_{day_type.value}_{row_number}"
            if self._add_trip(trip_id, route_id, day_type, TransportMode.BUS, stop_times):
                added += 1

        return added

    # ============= Route validity =============

    def purge_invalid_routes(self) -> set[str]:
        """Remove routes serving any stop without coordinates.

        Drops the routes, their operators and trips, and removes them from
        every stop's route list.

        Returns:
            The purged route ids.
        """
        flagged = set(self.invalid_routes)
        routes_before = len(self.routes)
        trips_before = len(self.trips)

        for route_id in flagged:
            self.routes.pop(route_id, None)
            self.route_operators.pop(route_id, None)

        for stop_id in list(self.stop_routes):
            kept = [r for r in self.stop_routes[stop_id] if r not in flagged]
            if kept:
                self.stop_routes[stop_id] = kept
            else:
                del self.stop_routes[stop_id]

        self.trips = {
            trip_id: trip for trip_id, trip in self.trips.items() if trip.route_id not in flagged
        }

        self.purged_routes |= flagged
        self.invalid_routes.clear()
        self._purged = True

        if flagged:
            logger.warning(
                f"Purged {len(flagged)} routes with unresolved stop coordinates: "
                f"routes {routes_before} -> {len(self.routes)}, "
                f"trips {trips_before} -> {len(self.trips)}"
            )
        return flagged

    # ============= Walking graph =============

    def build_walking_edges(self, max_distance_km: float | None = None) -> int:
        """Connect every pair of located stops within walking distance.

        Edges are created in both directions with duration
        ceil(distance / walking speed * 60) minutes, at least one.
        Stops are swept in latitude order so only pairs inside the
        latitude band are measured.

        Returns:
            Number of directed edges created.
        """
        if max_distance_km is None:
            max_distance_km = self.config.max_consecutive_walk_km
        speed = self.config.walking_speed_kmh

        located = sorted(
            (stop for stop in self.stops if stop.has_coordinates),
            key=lambda stop: (stop.lat, stop.stop_id),
        )
        lat_window = degrees_latitude(max_distance_km) * (1 + 1e-9)

        edges: dict[int, list[WalkingEdge]] = {}
        for i, a in enumerate(located):
            for b in located[i + 1 :]:
                if b.lat - a.lat > lat_window:
                    break
                distance = haversine_km(a.lat, a.lon, b.lat, b.lon)
                if distance <= 0 or distance > max_distance_km:
                    continue
                minutes = walk_minutes(distance, speed)
                edges.setdefault(a.stop_id, []).append(
                    WalkingEdge(a.stop_id, b.stop_id, minutes, distance)
                )
                edges.setdefault(b.stop_id, []).append(
                    WalkingEdge(b.stop_id, a.stop_id, minutes, distance)
                )

        for stop_edges in edges.values():
            stop_edges.sort(key=lambda edge: edge.to_stop)
        self.walking_edges = dict(sorted(edges.items()))
        self._edges_built = True

        count = sum(len(stop_edges) for stop_edges in edges.values())
        logger.info(f"Built {count} walking edges between {len(located)} located stops")
        return count

    # ============= Snapshot =============

    def build(self) -> TransitNetwork:
        """Purge invalid routes, build footpaths and freeze the network."""
        if not self._purged or self.invalid_routes:
            self.purge_invalid_routes()
        if not self._edges_built:
            self.build_walking_edges()

        return TransitNetwork(
            stops=tuple(self.stops),
            stop_ids_by_name=dict(self.stop_ids_by_name),
            routes={route_id: tuple(stops) for route_id, stops in self.routes.items()},
            stop_routes={stop_id: tuple(routes) for stop_id, routes in self.stop_routes.items()},
            trips=dict(self.trips),
            walking_edges={
                stop_id: tuple(stop_edges) for stop_id, stop_edges in self.walking_edges.items()
            },
            route_operators=dict(self.route_operators),
            purged_routes=frozenset(self.purged_routes),
        )
