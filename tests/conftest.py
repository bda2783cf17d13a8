"""Shared fixtures: small hand-built networks around Cape Town."""

import asyncio
from pathlib import Path

import pytest

from journey_planner.data.config import PlannerConfig
from journey_planner.data.network_builder import NetworkBuilder
from journey_planner.data.store import NetworkStore
from journey_planner.matching.coordinate_matcher import CoordinateResolver
from journey_planner.models.network import TransitNetwork

# Stops roughly 2 km apart along a north-south line, plus one stop a short
# walk south of BELLVILLE.
COORDS = {
    "ATHLONE": (-33.900, 18.400),
    "BELLVILLE": (-33.920, 18.400),
    "BELLVILLE NORTH": (-33.9227, 18.400),  # ~0.3 km from BELLVILLE
    "CLAREMONT": (-33.950, 18.400),
    "DIEP RIVER": (-33.970, 18.400),
}

# Stops about 0.56 km apart: a ride then one walk fits the consecutive cap,
# two walks in a row do not
WALK_CHAIN_COORDS = {
    "MOWBRAY": (-33.900, 18.470),
    "ROSEBANK": (-33.950, 18.470),
    "RONDEBOSCH": (-33.955, 18.470),
    "NEWLANDS": (-33.960, 18.470),
}


def make_builder(
    coords: dict[str, tuple[float, float]] | None = None,
    config: PlannerConfig | None = None,
) -> NetworkBuilder:
    resolver = CoordinateResolver()
    for name, (lat, lon) in (coords if coords is not None else COORDS).items():
        resolver.add(name, lat, lon)
    return NetworkBuilder(resolver, config=config or PlannerConfig())


def bus_rows(stops: list[str], *trips: list[str]) -> list[list[str]]:
    """Bus timetable with a route-number column; each trip is [day type, time...]."""
    return [["route_number", "day_type", *stops], *(["R", *trip] for trip in trips)]


def write_csv(path: Path, rows: list[list[str]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(",".join(row) for row in rows) + "\n", encoding="utf-8")


@pytest.fixture
def dataset_dir(tmp_path: Path) -> Path:
    """A miniature dataset with one train line and one bus route per operator."""
    write_csv(
        tmp_path / "metrorail-stations.csv",
        [
            ["name", "id", "lat", "lon"],
            ["Cape Town", "CPT", "-33.9220", "18.4250"],
            ["Woodstock", "WDS", "-33.9260", "18.4460"],
            ["Salt River", "SRV", "-33.9280", "18.4640"],
        ],
    )
    write_csv(
        tmp_path / "myciti-bus-stops.csv",
        [
            ["id", "name", "lon", "lat"],
            ["1", "Civic Centre", "18.4255", "-33.9215"],
            ["2", "Gardens", "18.4130", "-33.9330"],
        ],
    )
    write_csv(
        tmp_path / "ga-bus-stops.csv",
        [
            ["OBJECTID", "BUSSTOPDES", "XCOORD", "YCOORD"],
            ["1", "Voortrekker Rd", "18.4700", "-33.9290"],
        ],
    )
    write_csv(
        tmp_path / "train-schedules-2014" / "southern-line.csv",
        [
            ["train", "day", "direction", "route", "CAPE TOWN", "WOODSTOCK", "SALT RIVER"],
            ["0201", "Mon-Fri", "Outbound", "SOUTHERN", "07:00", "07:05", "07:10"],
            ["0202", "Mon-Fri", "Inbound", "SOUTHERN", "07:40", "07:35", "07:30"],
        ],
    )
    write_csv(
        tmp_path / "myciti-bus-schedules" / "t01.csv",
        [
            ["route_number", "day_type", "GARDENS", "CIVIC CENTRE"],
            ["T01", "Weekday", "06:50", "07:00"],
        ],
    )
    write_csv(
        tmp_path / "ga-bus-schedules" / "gab1.csv",
        [
            ["day_type", "SALT RIVER", "VOORTREKKER ROAD"],
            ["Weekday", "07:15", "07:25"],
        ],
    )
    return tmp_path


@pytest.fixture
def config() -> PlannerConfig:
    return PlannerConfig()


@pytest.fixture
def transfer_network(config: PlannerConfig) -> TransitNetwork:
    """Bus A->B, walk B->B NORTH, bus B NORTH->C->D, and a slow train A->D."""
    builder = make_builder(config=config)
    builder.add_bus_rows(bus_rows(["ATHLONE", "BELLVILLE"], ["Weekday", "08:00", "08:15"]), "R1.csv", "MYCITI")
    builder.add_bus_rows(
        bus_rows(
            ["BELLVILLE NORTH", "CLAREMONT", "DIEP RIVER"],
            ["Weekday", "08:25", "08:40", "08:55"],
        ),
        "R2.csv",
        "GOLDENARROW",
    )
    builder.add_train_rows(
        [
            ["train", "day", "direction", "route", "ATHLONE", "DIEP RIVER"],
            ["T1", "Mon-Fri", "outbound", "SOUTHERN", "08:05", "09:30"],
        ]
    )
    return builder.build()


@pytest.fixture
def walk_chain_network(config: PlannerConfig) -> TransitNetwork:
    """Bus MOWBRAY->ROSEBANK, a slower bus MOWBRAY->RONDEBOSCH, then walks to NEWLANDS."""
    builder = make_builder(WALK_CHAIN_COORDS, config)
    builder.add_bus_rows(bus_rows(["MOWBRAY", "ROSEBANK"], ["Weekday", "08:00", "08:10"]), "R1.csv")
    builder.add_bus_rows(bus_rows(["MOWBRAY", "RONDEBOSCH"], ["Weekday", "08:05", "08:20"]), "R2.csv")
    builder.add_bus_rows(bus_rows(["NEWLANDS", "MOWBRAY"], ["Weekday", "06:00", "06:30"]), "R3.csv")
    return builder.build()


@pytest.fixture(autouse=True)
def reset_network_store():
    """Each test starts without a published network."""
    NetworkStore._lock = asyncio.Lock()
    NetworkStore._network = None
    NetworkStore._data_dir = None
    NetworkStore._loaded_at = None
    yield
    NetworkStore._network = None
    NetworkStore._data_dir = None
    NetworkStore._loaded_at = None
