"""Dataset discovery: reads the timetable and coordinate CSVs from disk."""

import csv
import logging
from pathlib import Path

from journey_planner.data.config import PlannerConfig, get_config
from journey_planner.data.network_builder import NetworkBuilder
from journey_planner.models.network import TransitNetwork

logger = logging.getLogger(__name__)

STATION_COORDINATES_FILE = "metrorail-stations.csv"
MYCITI_STOPS_FILE = "myciti-bus-stops.csv"
GOLDEN_ARROW_STOPS_FILE = "ga-bus-stops.csv"

TRAIN_SCHEDULE_DIR = "train-schedules-2014"

# Bus schedule directory -> operator label
BUS_SCHEDULE_DIRS: dict[str, str] = {
    "myciti-bus-schedules": "MYCITI",
    "ga-bus-schedules": "GOLDENARROW",
}


def read_csv_rows(path: Path) -> list[list[str]]:
    """Read a CSV file into rows of trimmed cells."""
    with open(path, encoding="utf-8-sig", newline="") as f:
        return [[cell.strip() for cell in row] for row in csv.reader(f)]


def _schedule_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        logger.warning(f"Schedule directory {directory} not found")
        return []
    return sorted(directory.glob("*.csv"))


def load_network(data_dir: Path | str | None = None, config: PlannerConfig | None = None) -> TransitNetwork:
    """Build a transit network from a dataset directory.

    Coordinate tables are loaded first, then train and bus timetables in
    file-name order, then invalid routes are purged and footpaths built.

    Args:
        data_dir: Dataset root. Uses JOURNEY_DATA_DIR if not provided.
        config: Planner configuration. Uses the cached default if not provided.

    Returns:
        An immutable TransitNetwork.

    Raises:
        FileNotFoundError: If the dataset directory does not exist.
        ValueError: If no trips could be loaded.
    """
    config = config or get_config()
    data_dir = Path(data_dir if data_dir is not None else config.data_dir)
    if not data_dir.is_dir():
        raise FileNotFoundError(f"Dataset directory not found: {data_dir}")

    logger.info(f"Loading transit network from {data_dir}...")
    builder = NetworkBuilder(config=config)
    resolver = builder.resolver

    coordinate_loaders = (
        (STATION_COORDINATES_FILE, resolver.load_station_rows),
        (MYCITI_STOPS_FILE, resolver.load_myciti_rows),
        (GOLDEN_ARROW_STOPS_FILE, resolver.load_golden_arrow_rows),
    )
    for filename, load_rows in coordinate_loaders:
        path = data_dir / filename
        if path.exists():
            load_rows(read_csv_rows(path))
        else:
            logger.warning(f"Coordinate file {filename} not found")
    logger.info(f"Loaded coordinates for {len(resolver)} named locations")

    for path in _schedule_files(data_dir / TRAIN_SCHEDULE_DIR):
        added = builder.add_train_rows(read_csv_rows(path))
        logger.info(f"Loaded {added} train trips from {path.name}")

    for dirname, operator in BUS_SCHEDULE_DIRS.items():
        for path in _schedule_files(data_dir / dirname):
            added = builder.add_bus_rows(read_csv_rows(path), path.name, operator)
            logger.debug(f"Loaded {added} {operator} trips from {path.name}")

    if not builder.trips:
        raise ValueError(f"No trips loaded from {data_dir}")

    network = builder.build()
    logger.info(f"Transit network ready: {network.stats()}")
    return network
