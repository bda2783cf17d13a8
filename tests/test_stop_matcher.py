"""Tests for rider stop-name resolution."""

from journey_planner.matching.models import MatchConfidence, MatchType, confidence_from_score
from journey_planner.matching.stop_matcher import resolve_stop
from journey_planner.models.network import TransitNetwork


class TestConfidence:
    def test_levels(self) -> None:
        assert confidence_from_score(50, MatchType.EXACT_NAME) == MatchConfidence.EXACT
        assert confidence_from_score(90, MatchType.FUZZY_NAME) == MatchConfidence.HIGH
        assert confidence_from_score(75, MatchType.CONTAINS) == MatchConfidence.MEDIUM
        assert confidence_from_score(40, MatchType.FUZZY_NAME) == MatchConfidence.LOW


class TestResolveStop:
    """Matching stages in order: exact, containment, fuzzy."""

    def test_exact_name(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "athlone")
        assert result.resolved
        assert result.best_match.stop_name == "ATHLONE"
        assert result.best_match.match_type == MatchType.EXACT_NAME
        assert result.best_match.confidence == MatchConfidence.EXACT
        assert len(result.matches) == 1

    def test_station_suffix_ignored(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "Bellville Station, Cape Town")
        assert result.best_match.stop_name == "BELLVILLE"
        assert result.best_match.match_type == MatchType.EXACT_NAME

    def test_containment(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "Diep")
        assert result.best_match.stop_name == "DIEP RIVER"
        assert result.best_match.match_type == MatchType.CONTAINS
        assert [m.stop_name for m in result.matches] == ["DIEP RIVER"]

    def test_containment_limit(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "e", limit=2)
        assert len(result.matches) == 2
        assert all(m.match_type == MatchType.CONTAINS for m in result.matches)

    def test_fuzzy(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "Claremnt")
        assert result.best_match.stop_name == "CLAREMONT"
        assert result.best_match.match_type == MatchType.FUZZY_NAME
        assert result.resolved

    def test_fuzzy_threshold(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "Claremnt", min_score=99)
        assert result.matches == []
        assert not result.resolved

    def test_no_match(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "QQQQ ZZZZ")
        assert result.best_match is None
        assert not result.resolved

    def test_blank_query(self, transfer_network: TransitNetwork) -> None:
        result = resolve_stop(transfer_network, "   ")
        assert result.matches == []

    def test_coordinates_reported(self, transfer_network: TransitNetwork) -> None:
        match = resolve_stop(transfer_network, "CLAREMONT").best_match
        assert (match.stop_lat, match.stop_lon) == (-33.950, 18.400)
