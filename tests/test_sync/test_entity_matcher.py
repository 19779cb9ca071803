"""Unit tests for EntityMatcher.

Test Strategy:
1. Test exact matches win immediately
2. Test the strict threshold (a score equal to the threshold is rejected)
3. Test deterministic tie-breaks by provider id
4. Test unmatched targets return None
5. Test kind mismatches are rejected
"""
import pytest

from sportsync.models.canonical import CanonicalLeague, CanonicalTeam
from sportsync.services.sync.matchers.entity_matcher import (
    DEFAULT_THRESHOLDS,
    EntityMatcher,
    order_candidates,
)


def team(provider, provider_id, name, country="South Korea"):
    return CanonicalTeam(provider=provider, provider_id=str(provider_id), name=name, country=country)


@pytest.fixture
def matcher():
    return EntityMatcher()


@pytest.fixture
def target():
    return team("api_football", 2763, "Jeonbuk Hyundai Motors", country="South-Korea")


class TestEntityMatcher:
    """Test suite for cross-provider matching."""

    # Exact Matches
    # ─────────────────────────────────────────────────────────────

    def test_exact_match_wins(self, matcher, target):
        """Should return the exact-name candidate with confidence 1.0."""
        pool = [team("highlightly", 5, "Jeonbuk Motors"), team("highlightly", 9, "Jeonbuk Hyundai Motors")]
        result = matcher.match(target, pool)
        assert result.candidate.provider_id == "9"
        assert result.score == 1.0
        assert result.method == "exact"

    # Threshold
    # ─────────────────────────────────────────────────────────────

    def test_fuzzy_match_above_threshold(self, matcher, target):
        """Should accept the contained-token spelling with confidence >= 0.85."""
        pool = [team("highlightly", 5, "Jeonbuk Motors"), team("highlightly", 6, "Ulsan HD")]
        result = matcher.match(target, pool)
        assert result is not None
        assert result.candidate.provider_id == "5"
        assert result.score >= 0.85

    def test_score_equal_to_threshold_rejected(self, matcher, target):
        """Should never return a candidate whose score equals the threshold."""
        candidate = team("highlightly", 5, "Jeonbuk Motors")
        score, _ = matcher.score(target, candidate)
        assert matcher.match(target, [candidate], threshold=score) is None
        assert matcher.match(target, [candidate], threshold=score - 0.01) is not None

    @pytest.mark.parametrize("threshold", [0.0, 0.5, 0.8, 0.9, 0.99])
    def test_never_returns_candidate_at_or_below_threshold(self, matcher, target, threshold):
        """Should only ever return candidates scoring strictly above the threshold."""
        pool = [
            team("highlightly", 1, "Jeonbuk Motors"),
            team("highlightly", 2, "Jeonbuk"),
            team("highlightly", 3, "Jeju United"),
            team("highlightly", 4, "Unknown FC"),
        ]
        result = matcher.match(target, pool, threshold=threshold)
        if result is not None:
            assert result.score > threshold
        for candidate in pool:
            score, _ = matcher.score(target, candidate)
            if score <= threshold:
                assert result is None or result.candidate is not candidate

    def test_unknown_team_unmapped(self, matcher):
        """Should leave a low-scoring candidate unmatched (no mapping for 'Unknown FC')."""
        pool = [team("highlightly", 99, "Unknown FC")]
        targets = [
            team("api_football", 2763, "Jeonbuk Hyundai Motors"),
            team("api_football", 2762, "Ulsan HD"),
            team("api_football", 2767, "Pohang Steelers"),
        ]
        for primary in targets:
            assert matcher.match(primary, pool) is None

    def test_empty_pool(self, matcher, target):
        """Should return None for an empty candidate pool."""
        assert matcher.match(target, []) is None

    # Tie-breaks
    # ─────────────────────────────────────────────────────────────

    def test_tie_resolved_by_lowest_provider_id(self, matcher, target):
        """Should prefer the lowest numeric provider id on equal scores, regardless of fetch order."""
        pool = [team("highlightly", 20, "Jeonbuk Motors"), team("highlightly", 3, "Jeonbuk Motors")]
        assert matcher.match(target, pool).candidate.provider_id == "3"
        assert matcher.match(target, list(reversed(pool))).candidate.provider_id == "3"

    def test_order_candidates_numeric_first(self):
        """Should sort numeric ids numerically before non-numeric ids."""
        pool = [team("highlightly", "b7", "x"), team("highlightly", 10, "x"), team("highlightly", 9, "x")]
        assert [c.provider_id for c in order_candidates(pool)] == ["9", "10", "b7"]

    # Configuration / Errors
    # ─────────────────────────────────────────────────────────────

    def test_thresholds_override(self):
        """Should merge custom thresholds over the defaults."""
        custom = EntityMatcher({"team": 0.9})
        assert custom.threshold_for("team") == 0.9
        assert custom.threshold_for("league") == DEFAULT_THRESHOLDS["league"]

    def test_kind_mismatch(self, matcher, target):
        """Should refuse to compare different entity kinds."""
        league = CanonicalLeague(provider="highlightly", provider_id="1", name="K League 1")
        with pytest.raises(ValueError):
            matcher.score(target, league)
