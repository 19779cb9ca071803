"""Similarity and composite confidence scoring for cross-provider matching.

Calculates confidence scores (0.0 to 1.0) for pairs of canonical records of
the same entity kind. Higher scores indicate more reliable matches.

Score ladder per kind:
- League: exact name 1.0; different country 0.0; otherwise name similarity
  with a 1.2 boost when the countries agree
- Team: exact name 1.0; equal short name 0.95; equal code 0.9; otherwise
  name similarity with a 1.1 boost when the countries agree
- Player: exact name 1.0; equal first+last name 0.95; otherwise name
  similarity with 1.1 boosts for equal position group and equal shirt number
- Fixture: 0.0 when kickoff dates are more than a day apart; otherwise the
  mean of the two per-side team scores with a 1.1 boost when kickoffs are
  within 120 minutes

All composite scores are clamped to [0, 1].
"""
from datetime import timedelta
from typing import Dict, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from sportsync.models.canonical import CanonicalFixture, CanonicalLeague, CanonicalPlayer, CanonicalTeam
from sportsync.services.sync.utils.name_normalizer import (
    normalize,
    normalize_country,
    normalize_team_name,
    tokens,
)
from sportsync.services.sync.utils.positions import classify_position

# Match methods reported alongside a score
METHOD_EXACT = "exact"
METHOD_SHORT_NAME = "short_name"
METHOD_CODE = "code"
METHOD_NAME_PARTS = "name_parts"
METHOD_NAME_AND_NUMBER = "name_and_number"
METHOD_MAPPED = "mapped"
METHOD_FUZZY = "fuzzy"

# Score when the shorter name's tokens appear in order inside the longer one
ORDERED_TOKEN_SCORE = 0.85

LEAGUE_COUNTRY_BOOST = 1.2
TEAM_COUNTRY_BOOST = 1.1
PLAYER_POSITION_BOOST = 1.1
PLAYER_NUMBER_BOOST = 1.1
FIXTURE_KICKOFF_BOOST = 1.1

FIXTURE_DATE_WINDOW = timedelta(days=1)
FIXTURE_KICKOFF_WINDOW = timedelta(minutes=120)


def clamp(score: float) -> float:
    """Clamp a score to [0, 1]."""
    return max(0.0, min(1.0, score))


def levenshtein_similarity(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity: 1 - distance / max(len(a), len(b)).

    Returns 1.0 for identical strings (including two empty strings) and 0.0
    when one side is empty. Symmetric.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    distance = Levenshtein.distance(a, b)
    longest = max(len(a), len(b))
    return clamp(1.0 - distance / longest)


def _tokens_in_order(short: list, long: list) -> bool:
    """True if every token of ``short`` appears in ``long`` in the same order."""
    position = 0
    for token in short:
        try:
            position = long.index(token, position) + 1
        except ValueError:
            return False
    return True


def name_similarity(a: Optional[str], b: Optional[str], team: bool = False) -> float:
    """
    Similarity of two display names after normalization.

    The larger of the Levenshtein similarity and the ordered-token score:
    "Jeonbuk Motors" is contained token by token in "Jeonbuk Hyundai Motors"
    and scores 0.85 even though the edit distance is large. The ordered-token
    rule needs at least two tokens on the shorter side so that a lone city
    name ("Seoul") never claims a longer club name.

    Args:
        a: First name
        b: Second name
        team: If True, strip generic club affixes (FC, SC, ...) first
    """
    prepare = normalize_team_name if team else normalize
    prepared_a = prepare(a)
    prepared_b = prepare(b)

    score = levenshtein_similarity(prepared_a, prepared_b)
    if score == 1.0:
        return score

    tokens_a = tokens(prepared_a)
    tokens_b = tokens(prepared_b)
    short, long = (tokens_a, tokens_b) if len(tokens_a) <= len(tokens_b) else (tokens_b, tokens_a)
    if len(short) >= 2 and _tokens_in_order(short, long):
        score = max(score, ORDERED_TOKEN_SCORE)

    return score


def _same(a: Optional[str], b: Optional[str]) -> bool:
    """Both values present and equal after normalization."""
    if a is None or b is None:
        return False
    norm_a = normalize(str(a))
    return bool(norm_a) and norm_a == normalize(str(b))


def same_country(a: Optional[str], b: Optional[str]) -> Optional[bool]:
    """
    Compare two country names.

    Returns:
        True/False when both are known, None when either is missing
    """
    norm_a = normalize_country(a)
    norm_b = normalize_country(b)
    if not norm_a or not norm_b:
        return None
    return norm_a == norm_b


def score_league(target: CanonicalLeague, candidate: CanonicalLeague) -> Tuple[float, str]:
    """Composite score for two league records."""
    country_match = same_country(target.country, candidate.country)
    if country_match is False:
        return 0.0, METHOD_FUZZY

    if _same(target.name, candidate.name):
        return 1.0, METHOD_EXACT

    score = name_similarity(target.name, candidate.name)
    if country_match:
        score *= LEAGUE_COUNTRY_BOOST
    return clamp(score), METHOD_FUZZY


def score_team(target: CanonicalTeam, candidate: CanonicalTeam) -> Tuple[float, str]:
    """Composite score for two team records."""
    if _same(target.name, candidate.name):
        return 1.0, METHOD_EXACT

    if _same(target.short_name, candidate.short_name):
        return 0.95, METHOD_SHORT_NAME

    if _same(target.code, candidate.code):
        return 0.9, METHOD_CODE

    score = name_similarity(target.name, candidate.name, team=True)
    if same_country(target.country, candidate.country):
        score *= TEAM_COUNTRY_BOOST
    return clamp(score), METHOD_FUZZY


def score_player(target: CanonicalPlayer, candidate: CanonicalPlayer) -> Tuple[float, str]:
    """Composite score for two player records."""
    if _same(target.name, candidate.name):
        return 1.0, METHOD_EXACT

    if _same(target.firstname, candidate.firstname) and _same(target.lastname, candidate.lastname):
        return 0.95, METHOD_NAME_PARTS

    method = METHOD_FUZZY
    score = name_similarity(target.name, candidate.name)

    if (target.position and candidate.position
            and classify_position(target.position) == classify_position(candidate.position)):
        score *= PLAYER_POSITION_BOOST

    if (target.jersey_number is not None and candidate.jersey_number is not None
            and target.jersey_number == candidate.jersey_number):
        score *= PLAYER_NUMBER_BOOST
        method = METHOD_NAME_AND_NUMBER

    return clamp(score), method


def _side_score(
    target_team_id: Optional[str],
    target_team_name: Optional[str],
    candidate_team_id: Optional[str],
    candidate_team_name: Optional[str],
    team_id_map: Dict[str, str],
) -> Tuple[float, bool]:
    """Score one side of a fixture; second value tells whether the team mapping decided it."""
    if candidate_team_id is not None and target_team_id is not None:
        mapped = team_id_map.get(str(candidate_team_id))
        if mapped is not None and mapped == str(target_team_id):
            return 1.0, True

    if not target_team_name or not candidate_team_name:
        return 0.0, False
    return name_similarity(target_team_name, candidate_team_name, team=True), False


def score_fixture(
    target: CanonicalFixture,
    candidate: CanonicalFixture,
    team_id_map: Optional[Dict[str, str]] = None,
) -> Tuple[float, str]:
    """
    Composite score for two fixture records.

    Args:
        target: Primary provider fixture
        candidate: Secondary provider fixture
        team_id_map: Secondary team id -> primary team id, from the mapping registry
    """
    team_id_map = team_id_map or {}

    if target.kickoff_at is None or candidate.kickoff_at is None:
        return 0.0, METHOD_FUZZY

    if abs(target.kickoff_at.date() - candidate.kickoff_at.date()) > FIXTURE_DATE_WINDOW:
        return 0.0, METHOD_FUZZY

    home, home_mapped = _side_score(
        target.home_team_id, target.home_team_name,
        candidate.home_team_id, candidate.home_team_name, team_id_map,
    )
    away, away_mapped = _side_score(
        target.away_team_id, target.away_team_name,
        candidate.away_team_id, candidate.away_team_name, team_id_map,
    )

    score = (home + away) / 2
    if abs(target.kickoff_at - candidate.kickoff_at) <= FIXTURE_KICKOFF_WINDOW:
        score *= FIXTURE_KICKOFF_BOOST

    method = METHOD_MAPPED if home_mapped and away_mapped else METHOD_FUZZY
    return clamp(score), method
