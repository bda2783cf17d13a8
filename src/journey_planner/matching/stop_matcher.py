from rapidfuzz import fuzz

from journey_planner.data.config import get_config
from journey_planner.matching.models import (
    MatchConfidence,
    MatchType,
    StopMatch,
    StopResolutionResponse,
    confidence_from_score,
)
from journey_planner.matching.normalizers import normalize_query
from journey_planner.models.network import Stop, TransitNetwork

# Shortest stop name allowed to match by appearing inside a longer query
MIN_CONTAINED_NAME_LENGTH = 3


def _to_match(stop: Stop, score: float, match_type: MatchType) -> StopMatch:
    return StopMatch(
        stop_id=stop.stop_id,
        stop_name=stop.name,
        stop_lat=stop.lat if stop.has_coordinates else None,
        stop_lon=stop.lon if stop.has_coordinates else None,
        score=round(score, 1),
        confidence=confidence_from_score(score, match_type),
        match_type=match_type,
    )


def _contains(query: str, name: str) -> bool:
    if query in name:
        return True
    return len(name) >= MIN_CONTAINED_NAME_LENGTH and name in query


def _response(query: str, matches: list[StopMatch]) -> StopResolutionResponse:
    best_match = matches[0] if matches else None
    resolved = best_match is not None and best_match.confidence in (
        MatchConfidence.EXACT,
        MatchConfidence.HIGH,
    )
    return StopResolutionResponse(
        query=query,
        matches=matches,
        best_match=best_match,
        resolved=resolved,
    )


def resolve_stop(
    network: TransitNetwork,
    query: str,
    limit: int = 5,
    min_score: float | None = None,
) -> StopResolutionResponse:
    """Resolve a stop query to ranked stop matches.

    Matching stages, first stage with results wins:
    1. Exact name after normalization ("Mowbray Station" -> "MOWBRAY")
    2. Containment in either direction, ranked by fuzzy score
    3. Fuzzy similarity (rapidfuzz WRatio) at or above ``min_score``

    Ties are broken by lowest stop id, so results are deterministic.

    Args:
        network: Network whose stops are searched.
        query: Stop name as typed by the rider.
        limit: Maximum number of results to return.
        min_score: Minimum fuzzy score. Uses the configured default if not provided.

    Returns:
        StopResolutionResponse with matches and resolution status.
    """
    if min_score is None:
        min_score = get_config().stop_match_min_score

    normalized = normalize_query(query)
    if not normalized:
        return _response(query, [])

    exact = network.stop_by_name(query) or network.stop_by_name(normalized)
    if exact is not None:
        return _response(query, [_to_match(exact, 100.0, MatchType.EXACT_NAME)])

    contained = [
        (fuzz.WRatio(normalized, stop.name), stop)
        for stop in network.stops
        if stop.name and _contains(normalized, stop.name)
    ]
    if contained:
        contained.sort(key=lambda item: (-item[0], item[1].stop_id))
        return _response(
            query,
            [_to_match(stop, score, MatchType.CONTAINS) for score, stop in contained[:limit]],
        )

    scored = []
    for stop in network.stops:
        score = fuzz.WRatio(normalized, stop.name)
        if score >= min_score:
            scored.append((score, stop))
    scored.sort(key=lambda item: (-item[0], item[1].stop_id))
    return _response(
        query,
        [_to_match(stop, score, MatchType.FUZZY_NAME) for score, stop in scored[:limit]],
    )
