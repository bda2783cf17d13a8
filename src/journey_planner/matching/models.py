from enum import Enum

from pydantic import BaseModel, Field


class MatchConfidence(str, Enum):
    """Confidence level for a match.

    - EXACT: exact stop name
    - HIGH: score >= 85
    - MEDIUM: score >= 70
    - LOW: below 70
    """

    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class MatchType(str, Enum):
    """Type of match found."""

    EXACT_NAME = "exact_name"  # Normalized name equality
    CONTAINS = "contains"  # Query inside stop name or the reverse
    FUZZY_NAME = "fuzzy_name"  # rapidfuzz similarity


def confidence_from_score(score: float, match_type: MatchType) -> MatchConfidence:
    """Determine confidence level from score and match type."""
    if match_type == MatchType.EXACT_NAME:
        return MatchConfidence.EXACT
    if score >= 85:
        return MatchConfidence.HIGH
    if score >= 70:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


class StopMatch(BaseModel):
    """A matched stop with confidence information."""

    stop_id: int
    stop_name: str
    stop_lat: float | None = None
    stop_lon: float | None = None
    score: float = Field(description="Match score (0-100)")
    confidence: MatchConfidence = Field(description="Confidence level of the match")
    match_type: MatchType = Field(description="Type of match")


class StopResolutionResponse(BaseModel):
    """Response from resolve_stop tool."""

    query: str = Field(description="Original query string")
    matches: list[StopMatch] = Field(description="Matched stops, ordered by score")
    best_match: StopMatch | None = Field(
        default=None, description="Best match (always set to top match when matches exist)"
    )
    resolved: bool = Field(
        description="True if best_match has EXACT or HIGH confidence (safe to auto-use)"
    )
