"""Name-based coordinate lookup for timetable stops.

Timetables name their stops but carry no coordinates, so each stop is
matched against the coordinate tables published for stations and bus stops.
Every heuristic lives behind ``CoordinateResolver.resolve`` and runs in a
fixed rule order, so the same inputs always produce the same coordinates.
"""

import logging
from collections.abc import Sequence

from journey_planner.matching.normalizers import clean_name, normalize_stop_name

logger = logging.getLogger(__name__)

Coordinates = tuple[float, float]


def _parse_float(value: str) -> float | None:
    try:
        return float(value.strip())
    except ValueError:
        return None


class CoordinateResolver:
    """Resolve stop names to (lat, lon) using station and bus-stop tables.

    Resolution order, first hit wins:
        1. Exact normalized name.
        2. Cleaned name (street suffixes and whitespace removed).
        3. Known station without coordinates: unresolved.
        4. Cleaned-name equality or containment, when both cleaned names
           are at least ``min_contains_length`` long.
        5. Cleaned-name prefix, when lengths differ by at most
           ``max_prefix_length_diff``.

    Rules 4 and 5 scan station names in load order, then station ids.
    """

    def __init__(self, min_contains_length: int = 5, max_prefix_length_diff: int = 2) -> None:
        self.min_contains_length = min_contains_length
        self.max_prefix_length_diff = max_prefix_length_diff

        self.by_name: dict[str, Coordinates] = {}  # normalized name -> coords
        self.by_clean_name: dict[str, Coordinates] = {}  # cleaned name -> first coords
        self.by_station_id: dict[str, Coordinates] = {}
        self.without_coordinates: set[str] = set()

    def __len__(self) -> int:
        return len(self.by_name)

    def add(self, name: str, lat: float, lon: float, station_id: str | None = None) -> None:
        """Store coordinates under a name (and optionally a station id)."""
        normalized = normalize_stop_name(name)
        if not normalized:
            return
        self.by_name[normalized] = (lat, lon)
        cleaned = clean_name(normalized)
        if cleaned:
            self.by_clean_name.setdefault(cleaned, (lat, lon))
        if station_id:
            self.by_station_id[normalize_stop_name(station_id)] = (lat, lon)

    def add_without_coordinates(self, name: str) -> None:
        normalized = normalize_stop_name(name)
        if normalized:
            self.without_coordinates.add(normalized)

    def load_station_rows(self, rows: Sequence[Sequence[str]]) -> int:
        """Load station rows of [name, id, lat, lon] or a bare [name].

        The first row is a header. Returns the number of rows skipped as
        malformed.
        """
        skipped = 0
        for row in rows[1:]:
            if len(row) >= 4:
                lat = _parse_float(row[2])
                lon = _parse_float(row[3])
                if lat is None or lon is None:
                    skipped += 1
                    continue
                self.add(row[0], lat, lon, station_id=row[1].strip())
            elif row and row[0].strip():
                self.add_without_coordinates(row[0])
        if skipped:
            logger.warning(f"Skipped {skipped} station rows with unreadable coordinates")
        return skipped

    def load_myciti_rows(self, rows: Sequence[Sequence[str]]) -> int:
        """Load MyCiTi stop rows of [id, name, lon, lat] after a header row."""
        skipped = 0
        for row in rows[1:]:
            if len(row) < 4 or not row[1].strip():
                skipped += 1
                continue
            lon = _parse_float(row[2])
            lat = _parse_float(row[3])
            if lat is None or lon is None:
                skipped += 1
                continue
            self.add(row[1], lat, lon)
        if skipped:
            logger.warning(f"Skipped {skipped} MyCiTi stop rows")
        return skipped

    def load_golden_arrow_rows(self, rows: Sequence[Sequence[str]]) -> int:
        """Load Golden Arrow stop rows using the BUSSTOPDES/XCOORD/YCOORD headers."""
        if not rows:
            return 0

        headers = [cell.strip().upper() for cell in rows[0]]
        try:
            name_idx = headers.index("BUSSTOPDES")
            lon_idx = headers.index("XCOORD")
            lat_idx = headers.index("YCOORD")
        except ValueError:
            logger.warning("Golden Arrow stop table is missing BUSSTOPDES/XCOORD/YCOORD headers")
            return len(rows) - 1

        max_idx = max(name_idx, lon_idx, lat_idx)
        skipped = 0
        for row in rows[1:]:
            if len(row) <= max_idx or not row[name_idx].strip():
                skipped += 1
                continue
            lon = _parse_float(row[lon_idx])
            lat = _parse_float(row[lat_idx])
            if lat is None or lon is None:
                skipped += 1
                continue
            self.add(row[name_idx], lat, lon)
        if skipped:
            logger.warning(f"Skipped {skipped} Golden Arrow stop rows")
        return skipped

    def _contains_match(self, cleaned: str, candidate: str) -> bool:
        other = clean_name(candidate)
        if not other:
            return False
        if cleaned == other:
            return True
        if min(len(cleaned), len(other)) < self.min_contains_length:
            return False
        return cleaned in other or other in cleaned

    def _prefix_match(self, cleaned: str, candidate: str) -> bool:
        other = clean_name(candidate)
        if not other or abs(len(cleaned) - len(other)) > self.max_prefix_length_diff:
            return False
        return cleaned.startswith(other) or other.startswith(cleaned)

    def resolve(self, name: str) -> Coordinates | None:
        """Find coordinates for a stop name, or None when unresolved."""
        normalized = normalize_stop_name(name)
        if normalized in self.by_name:
            return self.by_name[normalized]

        cleaned = clean_name(normalized)
        if cleaned in self.by_clean_name:
            return self.by_clean_name[cleaned]

        if normalized in self.without_coordinates or not cleaned:
            return None

        tables = (self.by_name, self.by_station_id)
        for matches in (self._contains_match, self._prefix_match):
            for table in tables:
                for candidate, coords in table.items():
                    if matches(cleaned, candidate):
                        return coords

        return None
