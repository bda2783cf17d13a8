"""Stop-name matching for timetables and rider queries."""

from journey_planner.matching.coordinate_matcher import CoordinateResolver
from journey_planner.matching.models import (
    MatchConfidence,
    MatchType,
    StopMatch,
    StopResolutionResponse,
)
from journey_planner.matching.normalizers import (
    clean_name,
    normalize_day_type,
    normalize_query,
    normalize_stop_name,
)
from journey_planner.matching.stop_matcher import resolve_stop

__all__ = [
    # Matchers
    "resolve_stop",
    "CoordinateResolver",
    # Models
    "MatchConfidence",
    "MatchType",
    "StopMatch",
    "StopResolutionResponse",
    # Normalizers
    "clean_name",
    "normalize_day_type",
    "normalize_query",
    "normalize_stop_name",
]
