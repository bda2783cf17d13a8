"""Tests for the round-based and connection-scan search engines."""

import random

import pytest

from journey_planner.data.config import PlannerConfig
from journey_planner.models.network import DayType, TransitNetwork
from journey_planner.models.preferences import QueryPreferences
from journey_planner.services.csa import build_connections, run_connection_scan
from journey_planner.services.path_builder import reconstruct_segments, within_walking_budget
from journey_planner.services.raptor import group_trips_by_route, run_raptor
from journey_planner.services.search import (
    WALK_TRIP_ID,
    Label,
    SearchState,
    cheapest_boarding,
    is_better_state,
)
from tests.conftest import WALK_CHAIN_COORDS, bus_rows, make_builder

NAMES = ["ATHLONE", "BELLVILLE", "BELLVILLE NORTH", "CLAREMONT", "DIEP RIVER"]


def _ids(network: TransitNetwork) -> dict[str, int]:
    return {name: network.stop_by_name(name).stop_id for name in NAMES}


class TestDominance:
    """Three-way state comparison."""

    def test_earlier_arrival_wins(self) -> None:
        assert is_better_state(500, 5.0, 1.0, 501, 0.0, 0.0)
        assert not is_better_state(502, 0.0, 0.0, 501, 5.0, 1.0)

    def test_less_walking_breaks_ties(self) -> None:
        assert is_better_state(500, 0.2, 0.2, 500, 0.3, 0.0)
        assert not is_better_state(500, 0.3, 0.0, 500, 0.2, 0.2)

    def test_shorter_run_breaks_remaining_ties(self) -> None:
        assert is_better_state(500, 0.3, 0.1, 500, 0.3, 0.3)
        assert not is_better_state(500, 0.3, 0.3, 500, 0.3, 0.1)

    def test_tolerance(self) -> None:
        assert not is_better_state(500, 0.3 - 1e-9, 0.1, 500, 0.3, 0.1)


class TestSearchState:
    def test_seed(self) -> None:
        state = SearchState(3, algorithm="raptor")
        origin = state.seed(1, 480)
        assert state.arrival_at(1) == 480
        assert state.is_reached(1)
        assert not state.is_reached(0)
        assert state.arrival_at(2) is None
        assert state.best_label(1) is origin
        assert origin.predecessor is None
        assert state.best_label(0) is None

    def test_keeps_labels_neither_dominates(self) -> None:
        state = SearchState(2, algorithm="csa")
        state.seed(0, 480)
        on_foot = Label(stop=1, arrival=497, total_walk=0.6, consecutive_walk=0.6)
        by_bus = Label(stop=1, arrival=500, total_walk=0.0, consecutive_walk=0.0)

        assert state.add(on_foot)
        assert state.add(by_bus)
        assert state.labels_at(1) == [on_foot, by_bus]
        assert state.arrival_at(1) == 497
        assert state.best_label(1) is on_foot

    def test_dominated_label_rejected(self) -> None:
        state = SearchState(2, algorithm="csa")
        state.seed(0, 480)
        assert state.add(Label(stop=1, arrival=500, total_walk=0.2, consecutive_walk=0.0))
        assert not state.add(Label(stop=1, arrival=505, total_walk=0.3, consecutive_walk=0.1))
        assert not state.add(Label(stop=1, arrival=500, total_walk=0.2 + 1e-9, consecutive_walk=0.0))

    def test_dominating_label_evicts(self) -> None:
        state = SearchState(2, algorithm="csa")
        state.seed(0, 480)
        slow = Label(stop=1, arrival=505, total_walk=0.3, consecutive_walk=0.3)
        fast = Label(stop=1, arrival=500, total_walk=0.3, consecutive_walk=0.0)
        state.add(slow)
        state.add(fast)
        assert state.labels_at(1) == [fast]
        assert not state.holds(slow)
        assert state.best_label(1) is fast

    def test_cheapest_boarding(self) -> None:
        early_walk = Label(stop=1, arrival=497, total_walk=0.6, consecutive_walk=0.6)
        late_ride = Label(stop=1, arrival=500, total_walk=0.0, consecutive_walk=0.0)
        labels = [early_walk, late_ride]
        assert cheapest_boarding(labels, 498) is early_walk
        assert cheapest_boarding(labels, 500) is late_ride
        assert cheapest_boarding(labels, 490) is None


class TestRaptor:
    """Round-based search over the transfer network."""

    def test_earliest_arrivals(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        state = run_raptor(
            transfer_network, ids["ATHLONE"], 475, trips, QueryPreferences.baseline(config)
        )

        assert state.arrival_at(ids["ATHLONE"]) == 475
        assert state.arrival_at(ids["BELLVILLE"]) == 495
        assert state.arrival_at(ids["BELLVILLE NORTH"]) == 499
        assert state.arrival_at(ids["CLAREMONT"]) == 520
        assert state.arrival_at(ids["DIEP RIVER"]) == 535

    def test_round_limit(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        """One boarding reaches the train and the walk, not the second bus."""
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        state = run_raptor(
            transfer_network,
            ids["ATHLONE"],
            475,
            trips,
            QueryPreferences.baseline(config),
            max_rounds=1,
        )
        assert state.arrival_at(ids["DIEP RIVER"]) == 570
        assert state.arrival_at(ids["BELLVILLE NORTH"]) == 499

        two_rounds = run_raptor(
            transfer_network,
            ids["ATHLONE"],
            475,
            trips,
            QueryPreferences.baseline(config),
            max_rounds=2,
        )
        assert two_rounds.arrival_at(ids["DIEP RIVER"]) == 535

    def test_missed_departure(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        state = run_raptor(
            transfer_network, ids["ATHLONE"], 490, trips, QueryPreferences.baseline(config)
        )
        assert not state.is_reached(ids["DIEP RIVER"])

    def test_groups_trips(self, transfer_network: TransitNetwork) -> None:
        grouped = group_trips_by_route(transfer_network.trips.values())
        assert set(grouped) == {"R1", "R2", "SOUTHERN"}


class TestConnectionScan:
    """Connection scan over the transfer network."""

    def test_connections_sorted(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        connections = build_connections(
            transfer_network.trips.values(), QueryPreferences.baseline(config)
        )
        assert [(c.departure_time, c.arrival_time) for c in connections] == [
            (480, 495),
            (485, 570),
            (505, 520),
            (520, 535),
        ]

    def test_mode_filter(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        preferences = QueryPreferences.from_raw_inputs("train", None, config)
        connections = build_connections(transfer_network.trips.values(), preferences)
        assert [c.trip_id for c in connections] == ["T1_WEEKDAY"]

    def test_earliest_arrival(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        state = run_connection_scan(
            transfer_network,
            ids["ATHLONE"],
            ids["DIEP RIVER"],
            475,
            trips,
            QueryPreferences.baseline(config),
        )
        assert state.arrival_at(ids["ATHLONE"]) == 475
        assert state.arrival_at(ids["BELLVILLE NORTH"]) == 499
        assert state.arrival_at(ids["DIEP RIVER"]) == 535

    def test_walk_from_source(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        """Footpaths are followed right after seeding."""
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        state = run_connection_scan(
            transfer_network,
            ids["BELLVILLE"],
            ids["DIEP RIVER"],
            490,
            trips,
            QueryPreferences.baseline(config),
        )
        assert state.arrival_at(ids["BELLVILLE NORTH"]) == 494
        assert state.arrival_at(ids["DIEP RIVER"]) == 535


class TestEngineAgreement:
    """Both engines agree on arrival times with all modes allowed."""

    def test_agree_on_every_target(self, transfer_network: TransitNetwork, config: PlannerConfig) -> None:
        ids = _ids(transfer_network)
        trips = transfer_network.filter_trips(DayType.WEEKDAY)
        preferences = QueryPreferences.baseline(config)

        for departure in (470, 480, 485, 500):
            raptor = run_raptor(transfer_network, ids["ATHLONE"], departure, trips, preferences)
            for name in NAMES:
                csa = run_connection_scan(
                    transfer_network, ids["ATHLONE"], ids[name], departure, trips, preferences
                )
                assert csa.arrival_at(ids[name]) == raptor.arrival_at(ids[name]), (departure, name)

    def test_strictly_advancing_trips(self, config: PlannerConfig) -> None:
        """A trip whose next stop time equals the boarding time cannot be boarded there."""
        builder = make_builder(config=config)
        builder.add_bus_rows(
            bus_rows(["ATHLONE", "CLAREMONT", "DIEP RIVER"], ["Weekday", "08:00", "08:00", "08:10"]),
            "R1.csv",
        )
        network = builder.build()
        athlone = network.stop_by_name("ATHLONE").stop_id
        claremont = network.stop_by_name("CLAREMONT").stop_id
        diep = network.stop_by_name("DIEP RIVER").stop_id
        trips = network.filter_trips(DayType.WEEKDAY)
        preferences = QueryPreferences.baseline(config)

        raptor = run_raptor(network, athlone, 470, trips, preferences)
        csa = run_connection_scan(network, athlone, diep, 470, trips, preferences)
        assert not raptor.is_reached(claremont)
        assert not csa.is_reached(claremont)
        assert raptor.arrival_at(diep) == csa.arrival_at(diep)

        from_claremont = run_raptor(network, claremont, 470, trips, preferences)
        assert from_claremont.arrival_at(diep) == 490


class TestWalkingLabels:
    """An earlier arrival on foot must not hide a later arrival by vehicle."""

    def _ids(self, network: TransitNetwork) -> dict[str, int]:
        return {name: network.stop_by_name(name).stop_id for name in WALK_CHAIN_COORDS}

    def test_raptor_walks_on_after_the_ride(
        self, walk_chain_network: TransitNetwork, config: PlannerConfig
    ) -> None:
        network = walk_chain_network
        ids = self._ids(network)
        state = run_raptor(
            network,
            ids["MOWBRAY"],
            470,
            network.filter_trips(DayType.WEEKDAY),
            QueryPreferences.baseline(config),
        )

        assert state.arrival_at(ids["RONDEBOSCH"]) == 497
        assert state.arrival_at(ids["NEWLANDS"]) == 507
        arrivals = sorted(label.arrival for label in state.labels_at(ids["RONDEBOSCH"]))
        assert arrivals == [497, 500]

    def test_connection_scan_walks_on_after_the_ride(
        self, walk_chain_network: TransitNetwork, config: PlannerConfig
    ) -> None:
        network = walk_chain_network
        ids = self._ids(network)
        state = run_connection_scan(
            network,
            ids["MOWBRAY"],
            ids["NEWLANDS"],
            470,
            network.filter_trips(DayType.WEEKDAY),
            QueryPreferences.from_raw_inputs(None, 800, config),
        )
        assert state.arrival_at(ids["NEWLANDS"]) == 507

    def test_path_respects_walking_caps(
        self, walk_chain_network: TransitNetwork, config: PlannerConfig
    ) -> None:
        network = walk_chain_network
        ids = self._ids(network)
        preferences = QueryPreferences.baseline(config)
        state = run_raptor(
            network, ids["MOWBRAY"], 470, network.filter_trips(DayType.WEEKDAY), preferences
        )

        segments = reconstruct_segments(network, state, ids["NEWLANDS"])

        assert [segment.trip_id for segment in segments] == ["BUS_R2_WEEKDAY_1", WALK_TRIP_ID]
        assert within_walking_budget(
            segments, preferences.max_cumulative_walk_km, preferences.max_consecutive_walk_km
        )


class TestRepeatedVisits:
    def test_board_at_second_visit(self, config: PlannerConfig) -> None:
        """A loop trip can be boarded where it passes a stop the second time."""
        builder = make_builder(config=config)
        builder.add_bus_rows(
            bus_rows(
                ["ATHLONE", "BELLVILLE", "ATHLONE", "CLAREMONT"],
                ["Weekday", "08:00", "08:10", "08:20", "08:30"],
            ),
            "L1.csv",
        )
        network = builder.build()
        athlone = network.stop_by_name("ATHLONE").stop_id
        claremont = network.stop_by_name("CLAREMONT").stop_id
        trips = network.filter_trips(DayType.WEEKDAY)
        preferences = QueryPreferences.baseline(config)

        raptor = run_raptor(network, athlone, 495, trips, preferences)
        csa = run_connection_scan(network, athlone, claremont, 495, trips, preferences)

        assert raptor.arrival_at(claremont) == 510
        assert csa.arrival_at(claremont) == 510
        (ride,) = reconstruct_segments(network, raptor, claremont)
        assert [step.time for step in ride.steps] == [500, 510]


GRID_ROWS = "ABC"
GRID_COLUMNS = 4


def _grid_network(seed: int, config: PlannerConfig) -> TransitNetwork:
    """Random bus routes over a grid of stops roughly 0.46-0.56 km apart.

    Neighbouring and diagonal stops are linked by footpaths; stops two apart
    are not, so walking runs regularly hit the consecutive cap.
    """
    rng = random.Random(seed)
    coords = {
        f"GRID {row}{column}": (-33.900 - 0.005 * r, 18.400 + 0.005 * column)
        for r, row in enumerate(GRID_ROWS)
        for column in range(GRID_COLUMNS)
    }
    builder = make_builder(coords, config)
    for route in range(4):
        stops = rng.sample(sorted(coords), rng.randint(3, 5))
        timetable = []
        for _ in range(rng.randint(2, 3)):
            minute = rng.randint(7 * 60, 9 * 60)
            row = ["Weekday"]
            for _ in stops:
                row.append(f"{minute // 60:02d}:{minute % 60:02d}")
                minute += rng.randint(2, 9)
            timetable.append(row)
        builder.add_bus_rows(bus_rows(stops, *timetable), f"G{route}.csv")
    return builder.build()


def _tight_preferences(config: PlannerConfig) -> QueryPreferences:
    return QueryPreferences(
        allowed_modes=None,
        max_consecutive_walk_km=config.max_consecutive_walk_km,
        max_cumulative_walk_km=1.2,
    )


class TestGeneratedNetworks:
    """Properties over randomly generated networks with overlapping footpaths."""

    @pytest.mark.parametrize("seed", range(20))
    def test_engines_agree(self, seed: int, config: PlannerConfig) -> None:
        network = _grid_network(seed, config)
        trips = network.filter_trips(DayType.WEEKDAY)
        unbounded = len(trips) + 1

        for preferences in (QueryPreferences.baseline(config), _tight_preferences(config)):
            for departure in (7 * 60, 8 * 60):
                for source in range(network.stop_count):
                    raptor = run_raptor(
                        network, source, departure, trips, preferences, max_rounds=unbounded
                    )
                    for target in range(network.stop_count):
                        csa = run_connection_scan(
                            network, source, target, departure, trips, preferences
                        )
                        assert csa.arrival_at(target) == raptor.arrival_at(target), (
                            source,
                            target,
                            departure,
                        )

    @pytest.mark.parametrize("seed", range(20))
    def test_reached_targets_have_compliant_paths(self, seed: int, config: PlannerConfig) -> None:
        network = _grid_network(seed, config)
        trips = network.filter_trips(DayType.WEEKDAY)

        for preferences in (QueryPreferences.baseline(config), _tight_preferences(config)):
            for source in range(network.stop_count):
                raptor = run_raptor(network, source, 7 * 60, trips, preferences)
                for target in range(network.stop_count):
                    csa = run_connection_scan(network, source, target, 7 * 60, trips, preferences)
                    for state in (raptor, csa):
                        if not state.is_reached(target):
                            continue
                        segments = reconstruct_segments(network, state, target)
                        assert within_walking_budget(
                            segments,
                            preferences.max_cumulative_walk_km,
                            preferences.max_consecutive_walk_km,
                        ), (state.algorithm, source, target)
                        assert segments[0].steps[0].stop_id == source
                        assert segments[-1].steps[-1].time == state.arrival_at(target)
