import logging
import re
from functools import lru_cache

from journey_planner.models.network import DayType

logger = logging.getLogger(__name__)

# Street-type tokens dropped when comparing stop names
STREET_SUFFIX_TOKENS = frozenset({"ROAD", "RD", "STREET", "ST"})

# Timetable cells standing in for an unpublished passing time
VIA_MARKERS = frozenset({"VIA", "VIA.", "VIA*"})

NON_LETTERS = re.compile(r"[^A-Z]")

# Collapsed (letters only) day-type labels -> canonical day type
DAY_TYPE_ALIASES: dict[str, DayType] = {
    "SATURDAY": DayType.SATURDAY,
    "SATURDAYS": DayType.SATURDAY,
    "SAT": DayType.SATURDAY,
    "SUNDAY": DayType.SUNDAY,
    "SUNDAYS": DayType.SUNDAY,
    "SUN": DayType.SUNDAY,
    "SUNDAYSANDPUBLICHOLIDAYS": DayType.SUNDAY,
    "SUNDAYANDPUBLICHOLIDAYS": DayType.SUNDAY,
    "PUBLICHOLIDAY": DayType.PUBLIC_HOLIDAY,
    "PUBLICHOLIDAYS": DayType.PUBLIC_HOLIDAY,
    "WEEKDAY": DayType.WEEKDAY,
    "WEEKDAYS": DayType.WEEKDAY,
    "MONDAY": DayType.WEEKDAY,
    "MONDAYS": DayType.WEEKDAY,
    "TUESDAY": DayType.WEEKDAY,
    "TUESDAYS": DayType.WEEKDAY,
    "WEDNESDAY": DayType.WEEKDAY,
    "WEDNESDAYS": DayType.WEEKDAY,
    "THURSDAY": DayType.WEEKDAY,
    "THURSDAYS": DayType.WEEKDAY,
    "FRIDAY": DayType.WEEKDAY,
    "FRIDAYS": DayType.WEEKDAY,
    "MONFRI": DayType.WEEKDAY,
    "MONDAYFRIDAY": DayType.WEEKDAY,
    "MONDAYTOFRIDAY": DayType.WEEKDAY,
    "MONDAYSTOFRIDAY": DayType.WEEKDAY,
    "MONDAYSTOFRIDAYS": DayType.WEEKDAY,
    "MONDAYTOFRIDAYS": DayType.WEEKDAY,
    "MONDAYSTOTHURSDAY": DayType.WEEKDAY,
    "MONDAYSTOTHURSDAYS": DayType.WEEKDAY,
}


def normalize_stop_name(name: str) -> str:
    """Canonical stop name: trimmed and upper-cased.

    Example: "  Cape Town " -> "CAPE TOWN"
    """
    return name.strip().upper()


@lru_cache(maxsize=8192)
def clean_name(name: str) -> str:
    """Reduce a stop name to a comparison key.

    Upper-cases, drops street-type tokens and removes all whitespace.

    Examples:
        "Main Road" -> "MAIN"
        "Adderley St." -> "ADDERLEY"
        "Cape Town" -> "CAPETOWN"
    """
    tokens = [token.rstrip(".") for token in name.upper().split()]
    return "".join(token for token in tokens if token and token not in STREET_SUFFIX_TOKENS)


def normalize_query(query: str) -> str:
    """Normalize a rider's stop query for lookup.

    Upper-cases, removes commas and cuts everything from "STATION" onward,
    since riders often add or omit it.

    Example: "Mowbray Station, Cape Town" -> "MOWBRAY"
    """
    normalized = query.upper().replace(",", "")
    station_at = normalized.find("STATION")
    if station_at > 0:
        normalized = normalized[:station_at]
    return " ".join(normalized.split())


def normalize_day_type(raw_label: str | None) -> DayType:
    """Collapse a raw timetable day-type label to a canonical DayType.

    Unrecognized labels fall back to WEEKDAY with a warning.

    Examples:
        "Mon-Fri" -> WEEKDAY
        "Saturdays" -> SATURDAY
        "Sundays and Public Holidays" -> SUNDAY
    """
    if raw_label is None or not raw_label.strip():
        return DayType.WEEKDAY

    collapsed = NON_LETTERS.sub("", raw_label.upper())
    day_type = DAY_TYPE_ALIASES.get(collapsed)
    if day_type is not None:
        return day_type
    if "HOLIDAY" in collapsed:
        return DayType.PUBLIC_HOLIDAY

    logger.warning(f"Unknown day type {raw_label!r}, defaulting to WEEKDAY")
    return DayType.WEEKDAY


def is_via_marker(cell: str) -> bool:
    return cell.strip().upper() in VIA_MARKERS
